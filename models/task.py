# planner/models/task.py
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Union

from sqlmodel import Field, SQLModel

from core.priorities import DEFAULT_PRIORITY, normalize_priority

RECORD_FIELDS = (
    "id",
    "title",
    "description",
    "completed",
    "due_date",
    "priority",
    "calendar_event_id",
    "created_at",
    "updated_at",
)
MUTABLE_FIELDS = (
    "title",
    "description",
    "completed",
    "due_date",
    "priority",
    "calendar_event_id",
)

# SQLite INTEGER is a signed 64-bit value.
SQLITE_INTEGER_MIN = -(2**63)
SQLITE_INTEGER_MAX = 2**63 - 1

TaskId = Union[int, float]


class TaskRow(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    completed: int = 0
    due_date: Optional[str] = Field(default=None, index=True)
    priority: str = DEFAULT_PRIORITY
    calendar_event_id: Optional[str] = None
    created_at: str = Field(index=True)
    updated_at: str

    def to_record(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in RECORD_FIELDS}


@dataclass(frozen=True)
class Task:
    """Normalised task as seen by the presentation layer."""

    id: TaskId
    title: str
    description: str = ""
    completed: bool = False
    due_date: Optional[str] = None
    priority: str = DEFAULT_PRIORITY
    calendar_event_id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_input(self) -> Dict[str, Any]:
        data = asdict(self)
        return {name: data[name] for name in MUTABLE_FIELDS}


def coerce_record_id(value: Any) -> Optional[TaskId]:
    """Return ``value`` as a finite number, or ``None`` when it is not one.

    Integral values come back as ``int``; anything else finite stays a float.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def coerce_task_id(value: Any) -> Optional[int]:
    """Return ``value`` as a storable integer id, or ``None`` when it is not one."""
    number = coerce_record_id(value)
    if not isinstance(number, int):
        return None
    if not SQLITE_INTEGER_MIN <= number <= SQLITE_INTEGER_MAX:
        return None
    return number


def is_completed(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value == "1" or value.lower() == "true"
    return False


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_task(raw: Optional[Mapping[str, Any]]) -> Optional[Task]:
    """Turn a raw backend record into a :class:`Task`.

    Records whose id is not a finite number are dropped (``None``).
    """

    if not raw:
        return None
    task_id = coerce_record_id(raw.get("id"))
    if task_id is None:
        return None
    return Task(
        id=task_id,
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
        completed=is_completed(raw.get("completed")),
        due_date=_optional_text(raw.get("due_date")),
        priority=normalize_priority(raw.get("priority")),
        calendar_event_id=_optional_text(raw.get("calendar_event_id")),
        created_at=str(raw.get("created_at") or ""),
        updated_at=str(raw.get("updated_at") or ""),
    )


__all__ = [
    "MUTABLE_FIELDS",
    "RECORD_FIELDS",
    "Task",
    "TaskRow",
    "TaskId",
    "coerce_record_id",
    "coerce_task_id",
    "is_completed",
    "normalize_task",
]
