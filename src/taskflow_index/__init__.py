"""Provide the public `taskflow_index` package exports."""

from __future__ import annotations

from .config import IndexConfig, load_index_config
from .engine import TaskIndex
from .model import SortKey, Task, TaskStatus
from .structures import CycleDetectedError

__all__ = [
    "CycleDetectedError",
    "IndexConfig",
    "SortKey",
    "Task",
    "TaskIndex",
    "TaskStatus",
    "load_index_config",
]
