"""Directed dependency graph keyed by task id.

An edge ``A -> B`` means *A is a prerequisite of B*: the list stored under A
enumerates everything that cannot proceed until A is done.  Vertices are
created implicitly by :meth:`add_vertex` or :meth:`add_edge` and carry no
reference to the task records themselves.

Both traversals run on an explicit stack of ``(vertex, neighbour-iterator)``
pairs instead of recursion so long dependency chains cannot exhaust the
interpreter stack.  Vertices and edges are visited in insertion order, which
makes the topological order deterministic for a given insertion sequence.
"""

from __future__ import annotations

from typing import Iterator


class CycleDetectedError(ValueError):
    """Raised by :meth:`DependencyGraph.topological_sort` on a cyclic graph."""

    def __init__(self, vertex: str) -> None:
        super().__init__(f"Cycle detected in dependency graph at {vertex!r}")
        self.vertex = vertex


class DependencyGraph:
    def __init__(self) -> None:
        self._adjacency: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_vertex(self, vertex: str) -> None:
        if vertex not in self._adjacency:
            self._adjacency[vertex] = []

    def add_edge(self, prerequisite: str, dependent: str) -> None:
        """Record that *dependent* cannot start before *prerequisite* is done."""
        self.add_vertex(dependent)
        self.add_vertex(prerequisite)
        dependents = self._adjacency[prerequisite]
        if dependent not in dependents:
            dependents.append(dependent)

    def remove_edge(self, prerequisite: str, dependent: str) -> None:
        dependents = self._adjacency.get(prerequisite)
        if dependents and dependent in dependents:
            dependents.remove(dependent)

    def remove_vertex(self, vertex: str) -> None:
        """Delete *vertex* and every edge pointing at it."""
        for key, dependents in self._adjacency.items():
            if vertex in dependents:
                self._adjacency[key] = [d for d in dependents if d != vertex]
        self._adjacency.pop(vertex, None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_dependents(self, vertex: str) -> list[str]:
        return list(self._adjacency.get(vertex, []))

    def vertices(self) -> list[str]:
        return list(self._adjacency)

    def edge_count(self) -> int:
        return sum(len(d) for d in self._adjacency.values())

    def _neighbours(self, vertex: str) -> Iterator[str]:
        return iter(self._adjacency.get(vertex, []))

    def has_cycle(self) -> bool:
        visited: set[str] = set()
        on_stack: set[str] = set()

        for start in self._adjacency:
            if start in visited:
                continue
            visited.add(start)
            on_stack.add(start)
            stack: list[tuple[str, Iterator[str]]] = [(start, self._neighbours(start))]
            while stack:
                vertex, neighbours = stack[-1]
                advanced = False
                for neighbour in neighbours:
                    if neighbour in on_stack:
                        return True
                    if neighbour not in visited:
                        visited.add(neighbour)
                        on_stack.add(neighbour)
                        stack.append((neighbour, self._neighbours(neighbour)))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    on_stack.discard(vertex)
        return False

    def topological_sort(self) -> list[str]:
        """Return every vertex with prerequisites before their dependents.

        Raises :class:`CycleDetectedError` instead of returning a partial
        order when the graph contains a cycle.
        """
        finished: list[str] = []
        done: set[str] = set()
        in_progress: set[str] = set()

        for start in self._adjacency:
            if start in done:
                continue
            in_progress.add(start)
            stack: list[tuple[str, Iterator[str]]] = [(start, self._neighbours(start))]
            while stack:
                vertex, neighbours = stack[-1]
                advanced = False
                for neighbour in neighbours:
                    if neighbour in in_progress:
                        raise CycleDetectedError(neighbour)
                    if neighbour not in done:
                        in_progress.add(neighbour)
                        stack.append((neighbour, self._neighbours(neighbour)))
                        advanced = True
                        break
                if not advanced:
                    stack.pop()
                    in_progress.discard(vertex)
                    done.add(vertex)
                    finished.append(vertex)

        # Postorder reversed == each vertex prepended as its subtree finishes.
        finished.reverse()
        return finished

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)
