"""Configure loguru output and summarize index state for log lines."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger

from .constants import DEFAULT_LOG_LEVEL

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
    "{message}"
)


def configure_logging(level: str = DEFAULT_LOG_LEVEL, sink: Any = None) -> int:
    """Replace loguru's handlers with a single sink at *level*.

    Args:
        level: Minimum level name, case-insensitive.
        sink: Any loguru sink; defaults to ``sys.stderr``.

    Returns:
        The handler id, so callers can ``logger.remove()`` it later.
    """
    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level=level.upper(),
        format=LOG_FORMAT,
    )


def summarize_index(index: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of a task index.

    Args:
        index: A ``TaskIndex`` (or None).

    Returns:
        Task counts per status plus dependency graph shape.
    """
    if index is None:
        return {"index": None}

    tasks = index.get_all_tasks()
    by_status: dict[str, int] = {}
    for task in tasks:
        key = getattr(task.status, "value", str(task.status))
        by_status[key] = by_status.get(key, 0) + 1

    graph = index.graph
    return {
        "tasks": len(tasks),
        "by_status": by_status,
        "vertices": len(graph),
        "edges": graph.edge_count(),
        "has_cycle": graph.has_cycle(),
    }


def _jsonable(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Render tasks, configs and summaries as indented JSON for log lines.

    Records go through ``to_dict``, other dataclasses through ``asdict``;
    enums, datetimes and sets get plain JSON forms. Anything JSON still
    rejects (a self-referencing dict, say) falls back to ``str(obj)``.
    """
    try:
        return json.dumps(obj, indent=indent, default=_jsonable)
    except (TypeError, ValueError):
        return str(obj)
