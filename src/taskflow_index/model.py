"""Task record model for the task index.

The UI collaborator builds :class:`Task` records and hands them to
:class:`~taskflow_index.engine.TaskIndex`.  The model itself does no
validation on construction; :meth:`Task.validate_dict` is available to callers
that want to check raw payloads before building a record.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Board status.  Only ``completed`` unblocks dependents."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class SortKey(str, Enum):
    """Orderings supported by ``TaskIndex.sort_tasks``."""

    PRIORITY = "priority"  # highest first
    DUE_DATE = "due_date"  # earliest first

    @classmethod
    def coerce(cls, raw: "SortKey | str") -> "SortKey":
        if isinstance(raw, SortKey):
            return raw
        value = str(raw).strip()
        if value == "dueDate":
            return cls.DUE_DATE
        return cls(value)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # Naive timestamps are taken to be UTC.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    if isinstance(raw, str) and raw:
        try:
            return _as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A single task as seen by the index.

    ``id`` is assigned by the caller and must be unique within one index.
    ``dependencies`` lists the ids that must reach ``completed`` before this
    task may leave ``todo``.
    """

    id: str
    title: str = ""
    description: str = ""
    priority: int = 1
    status: TaskStatus = TaskStatus.TODO
    due_date: datetime = field(default_factory=_now)
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.due_date, datetime):
            self.due_date = _as_utc(self.due_date)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def due_timestamp(self) -> float:
        """Due date as POSIX seconds; naive values count as UTC."""
        return _as_utc(self.due_date).timestamp()

    def copy(self) -> "Task":
        """Copy with independent ``dependencies``/``tags`` lists."""
        return replace(self, dependencies=list(self.dependencies), tags=list(self.tags))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @classmethod
    def validate_dict(cls, data: dict[str, Any]) -> list[str]:
        """Check a raw task payload and return error strings (empty = valid).

        The index never calls this; malformed records are the caller's
        responsibility.
        """
        errors: list[str] = []
        if not isinstance(data, dict):
            return ["Expected a dict"]
        if not data.get("id"):
            errors.append("'id' is required and must be non-empty")
        for text_field in ("title", "description"):
            val = data.get(text_field)
            if val is not None and not isinstance(val, str):
                errors.append(f"'{text_field}' must be a string")
        priority = data.get("priority")
        if priority is not None:
            if isinstance(priority, bool) or not isinstance(priority, int) or priority < 0:
                errors.append("'priority' must be a non-negative integer")
        status = data.get("status")
        if status is not None:
            valid_statuses = {e.value for e in TaskStatus}
            if status not in valid_statuses:
                errors.append(f"'status' must be one of {sorted(valid_statuses)}, got '{status}'")
        due = data.get("due_date", data.get("dueDate"))
        if due is not None and _parse_datetime(due) is None:
            errors.append("'due_date' must be an ISO-8601 timestamp")
        for list_field in ("dependencies", "tags"):
            val = data.get(list_field)
            if val is not None and not isinstance(val, list):
                errors.append(f"'{list_field}' must be an array")
        return errors

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for k, v in asdict(self).items():
            if isinstance(v, Enum):
                data[k] = v.value
            elif isinstance(v, datetime):
                data[k] = v.isoformat()
            else:
                data[k] = v
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Build a task from a plain dict, coercing fields gracefully."""
        d = dict(data)

        status_raw = d.pop("status", None)
        try:
            status = TaskStatus(str(status_raw)) if status_raw is not None else TaskStatus.TODO
        except ValueError:
            status = TaskStatus.TODO

        due_raw = d.pop("due_date", None)
        if due_raw is None:
            due_raw = d.pop("dueDate", None)
        due_date = _parse_datetime(due_raw) or _now()

        try:
            priority = int(d.pop("priority", 1))
        except (TypeError, ValueError):
            priority = 1

        return cls(
            id=str(d.pop("id")),
            title=str(d.pop("title", "") or ""),
            description=str(d.pop("description", "") or ""),
            priority=priority,
            status=status,
            due_date=due_date,
            dependencies=[str(x) for x in d.pop("dependencies", []) or []],
            tags=[str(x) for x in d.pop("tags", []) or []],
        )
