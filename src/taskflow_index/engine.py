"""Canonical task store plus search, ordering and dependency indexes.

This is the entry point the UI layer calls.  Every record is fanned out into
one :class:`PrefixIndex` per searchable field and into a
:class:`DependencyGraph`; queries come back through the same structures and
are resolved against the store, silently dropping ids whose record is gone.

All public operations hold one re-entrant lock, so a multi-threaded host never
observes a record that is in the store but not yet in its indexes (or the
reverse).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger

from .config import IndexConfig, load_index_config
from .logging_utils import configure_logging, pretty, summarize_index
from .model import SortKey, Task, TaskStatus
from .structures import CycleDetectedError, DependencyGraph, PrefixIndex, PriorityQueue


@dataclass(frozen=True)
class _IndexedFields:
    """What was written into the indexes for one id, used to retract it."""

    title: str
    description: str
    tags: tuple[str, ...]
    dependencies: tuple[str, ...]

    @classmethod
    def of(cls, task: Task) -> "_IndexedFields":
        return cls(
            title=task.title,
            description=task.description,
            tags=tuple(task.tags),
            dependencies=tuple(task.dependencies),
        )


def _by_priority(a: Task, b: Task) -> int:
    # Higher priority first.
    return b.priority - a.priority


def _by_due_date(a: Task, b: Task) -> int:
    # Earlier due date first.
    ta, tb = a.due_timestamp, b.due_timestamp
    return (ta > tb) - (ta < tb)


_COMPARATORS = {
    SortKey.PRIORITY: _by_priority,
    SortKey.DUE_DATE: _by_due_date,
}


class TaskIndex:
    """In-memory task store with prefix search and dependency ordering.

    Parameters
    ----------
    config:
        Behaviour switches; defaults to :class:`IndexConfig()`.
    """

    def __init__(self, config: Optional[IndexConfig] = None) -> None:
        self.config = config or IndexConfig()
        self._lock = threading.RLock()
        self._tasks: dict[str, Task] = {}
        self._indexed: dict[str, _IndexedFields] = {}
        self._title_index = PrefixIndex()
        self._description_index = PrefixIndex()
        self._tag_index = PrefixIndex()
        self._graph = DependencyGraph()

    @classmethod
    def from_config_file(cls, path: Path, *, sink: Any = None) -> "TaskIndex":
        """Build an index from a YAML config and set up logging at its level.

        Args:
            path: A YAML file, or a directory containing ``taskflow.yaml``.
            sink: Optional loguru sink passed to :func:`configure_logging`.

        A missing file means defaults; an unreadable one is logged and
        ignored.
        """
        config, err = load_index_config(Path(path))
        configure_logging(config.log_level, sink=sink)
        if err:
            logger.warning("Ignoring index config: {}", err)
        logger.debug("Index config:\n{}", pretty(config))
        return cls(config=config)

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_task(self, task: Task) -> None:
        """Store *task* (a copy of it) and index it, overwriting any same-id record."""
        with self._lock:
            previous = self._indexed.get(task.id)
            if previous is not None:
                if self.config.reindex_on_overwrite:
                    self._unindex(task.id, previous)
                    logger.debug("Re-indexing task {} on overwrite", task.id)
                else:
                    logger.debug("Overwriting task {} without retracting old index entries", task.id)

            record = task.copy()
            self._tasks[task.id] = record
            self._indexed[task.id] = _IndexedFields.of(record)

            self._title_index.insert(record.title, record.id)
            self._description_index.insert(record.description, record.id)
            for tag in record.tags:
                self._tag_index.insert(tag, record.id)

            self._graph.add_vertex(record.id)
            for dep_id in record.dependencies:
                self._graph.add_edge(dep_id, record.id)

            logger.debug("Indexed task {}: {}", record.id, record.title)

    def remove_task(self, task_id: str) -> None:
        """Drop a task from the store and every index.  Unknown ids are ignored."""
        with self._lock:
            indexed = self._indexed.get(task_id)
            if indexed is None or task_id not in self._tasks:
                return
            # Retract using the indexed text before the record goes away.
            self._unindex(task_id, indexed)
            self._graph.remove_vertex(task_id)
            del self._indexed[task_id]
            del self._tasks[task_id]
            logger.debug("Removed task {}", task_id)

    def update_task_status(self, task_id: str, new_status: TaskStatus | str) -> None:
        """Overwrite only the status; status is not indexed."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return
            task.status = TaskStatus(new_status)
            logger.debug("Task {} -> {}", task_id, task.status.value)

    def _unindex(self, task_id: str, indexed: _IndexedFields) -> None:
        self._title_index.remove_id(indexed.title, task_id)
        self._description_index.remove_id(indexed.description, task_id)
        for tag in indexed.tags:
            self._tag_index.remove_id(tag, task_id)
        for dep_id in indexed.dependencies:
            self._graph.remove_edge(dep_id, task_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return self._tasks.get(task_id)

    def get_all_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._tasks.values())

    def _resolve(self, ids: Iterable[str]) -> list[Task]:
        # Store order; ids without a record are dropped.
        wanted = set(ids)
        return [task for task_id, task in self._tasks.items() if task_id in wanted]

    def search_tasks(self, query: str) -> list[Task]:
        """Tasks whose title, description or any tag starts with *query*."""
        with self._lock:
            if not query:
                return self.get_all_tasks()
            matched = (
                self._title_index.search_prefix(query)
                | self._description_index.search_prefix(query)
                | self._tag_index.search_prefix(query)
            )
            return self._resolve(matched)

    def get_dependents(self, task_id: str) -> list[str]:
        """Ids of known tasks that list *task_id* as a dependency."""
        with self._lock:
            return [d for d in self._graph.get_dependents(task_id) if d in self._tasks]

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def sort_tasks(self, tasks: Iterable[Task], key: SortKey | str) -> list[Task]:
        """Reorder a caller-provided subset by priority (desc) or due date (asc)."""
        comparator = _COMPARATORS[SortKey.coerce(key)]
        queue: PriorityQueue[Task] = PriorityQueue(comparator)
        for task in tasks:
            queue.enqueue(task)
        ordered: list[Task] = []
        while not queue.is_empty():
            task = queue.dequeue()
            if task is not None:
                ordered.append(task)
        return ordered

    def get_tasks_in_dependency_order(self) -> list[Task]:
        """All tasks with prerequisites first.

        A dependency cycle is logged and the unordered listing returned
        instead, unless ``strict_dependency_order`` is configured, in which
        case :class:`CycleDetectedError` propagates.
        """
        with self._lock:
            try:
                ordered_ids = self._graph.topological_sort()
            except CycleDetectedError as exc:
                if self.config.strict_dependency_order:
                    raise
                logger.warning("Circular dependency detected: {}; returning tasks unordered", exc)
                logger.opt(lazy=True).debug("Index state:\n{}", lambda: pretty(summarize_index(self)))
                return self.get_all_tasks()
            return [self._tasks[i] for i in ordered_ids if i in self._tasks]

    def can_start_task(self, task_id: str) -> bool:
        """True iff the task exists and every dependency exists and is completed."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return False
            for dep_id in task.dependencies:
                dep = self._tasks.get(dep_id)
                if dep is None or not dep.is_completed:
                    return False
            return True

    # ------------------------------------------------------------------
    # List view
    # ------------------------------------------------------------------

    def query(
        self,
        search: str = "",
        *,
        status: TaskStatus | str | None = None,
        sort_key: SortKey | str | None = None,
    ) -> list[Task]:
        """Search, optionally filter by status, then sort, as the board list view does."""
        with self._lock:
            tasks = self.search_tasks(search)
            if status is not None:
                wanted = TaskStatus(status)
                tasks = [t for t in tasks if t.status == wanted]
            return self.sort_tasks(tasks, sort_key or self.config.default_sort_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks
