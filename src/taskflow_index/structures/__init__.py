"""Task-agnostic building blocks used by :class:`~taskflow_index.engine.TaskIndex`."""

from .graph import CycleDetectedError, DependencyGraph
from .priority_queue import PriorityQueue
from .trie import PrefixIndex

__all__ = ["CycleDetectedError", "DependencyGraph", "PrefixIndex", "PriorityQueue"]
