"""Binary-heap priority queue ordered by a caller-supplied comparator."""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

Comparator = Callable[[T, T], int]


class PriorityQueue(Generic[T]):
    """Min-heap over a list used as a complete binary tree.

    The element the comparator ranks first (most negative) is served first.
    Ties are not stable.

    Parameters
    ----------
    comparator:
        ``(a, b) -> int``; negative when *a* should precede *b*.
    """

    def __init__(self, comparator: Comparator[T]) -> None:
        self._heap: list[T] = []
        self._comparator = comparator

    # -- index helpers --------------------------------------------------------

    @staticmethod
    def _parent(index: int) -> int:
        return (index - 1) // 2

    @staticmethod
    def _left(index: int) -> int:
        return 2 * index + 1

    @staticmethod
    def _right(index: int) -> int:
        return 2 * index + 2

    def _swap(self, i: int, j: int) -> None:
        self._heap[i], self._heap[j] = self._heap[j], self._heap[i]

    def _sift_up(self, index: int) -> None:
        current = index
        while current > 0:
            parent = self._parent(current)
            if self._comparator(self._heap[current], self._heap[parent]) >= 0:
                break
            self._swap(current, parent)
            current = parent

    def _sift_down(self, index: int) -> None:
        current = index
        size = len(self._heap)
        while True:
            left = self._left(current)
            if left >= size:
                break
            right = self._right(current)
            smallest = left
            if right < size and self._comparator(self._heap[right], self._heap[left]) < 0:
                smallest = right
            if self._comparator(self._heap[current], self._heap[smallest]) <= 0:
                break
            self._swap(current, smallest)
            current = smallest

    # -- public API -----------------------------------------------------------

    def enqueue(self, value: T) -> None:
        self._heap.append(value)
        self._sift_up(len(self._heap) - 1)

    def dequeue(self) -> Optional[T]:
        """Remove and return the first-ranked element, or ``None`` if empty."""
        if not self._heap:
            return None
        result = self._heap[0]
        last = self._heap.pop()
        if self._heap:
            self._heap[0] = last
            self._sift_down(0)
        return result

    def peek(self) -> Optional[T]:
        return self._heap[0] if self._heap else None

    def is_empty(self) -> bool:
        return not self._heap

    def size(self) -> int:
        return len(self._heap)

    def to_list(self) -> list[T]:
        """Snapshot of the underlying heap array (heap order, not sorted)."""
        return list(self._heap)

    def __len__(self) -> int:
        return len(self._heap)
