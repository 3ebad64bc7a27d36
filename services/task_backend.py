"""Storage contract shared by the SQLite and key-value task backends."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from core.errors import ConsistencyError, ValidationError
from core.priorities import normalize_priority
from models.task import coerce_record_id, coerce_task_id, is_completed
from utils.datetime_utils import to_iso_timestamp, utc_now

logger = logging.getLogger("planner.storage")

Record = Dict[str, Any]
Clock = Callable[[], datetime]


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _clean_optional(value: Any) -> Optional[str]:
    text = _clean_text(value)
    return text or None


def prepare_task_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Trim and default the mutable fields of an add/update payload."""

    title = _clean_text(data.get("title"))
    if not title:
        raise ValidationError("Task title is required", field="title")
    return {
        "title": title,
        "description": _clean_text(data.get("description")),
        "completed": 1 if is_completed(data.get("completed")) else 0,
        "due_date": _clean_optional(data.get("due_date")),
        "priority": normalize_priority(data.get("priority")),
        "calendar_event_id": _clean_optional(data.get("calendar_event_id")),
    }


def sort_records(records: List[Record]) -> List[Record]:
    """Newest first; equal timestamps fall back to the higher id."""

    return sorted(
        records,
        key=lambda r: (str(r.get("created_at") or ""), coerce_record_id(r.get("id")) or 0),
        reverse=True,
    )


class TaskBackend(ABC):
    """CRUD over task records.

    Records are plain dicts with every field of the persisted shape present.
    ``completed`` leaves the backend as stored (0/1); callers normalise.
    """

    name = "abstract"

    def __init__(self, *, clock: Optional[Clock] = None):
        self._clock = clock or utc_now

    def _now(self) -> str:
        return to_iso_timestamp(self._clock())

    @abstractmethod
    async def add_task(self, data: Mapping[str, Any]) -> Record:
        ...

    @abstractmethod
    async def update_task(self, task_id: Any, data: Mapping[str, Any]) -> None:
        ...

    @abstractmethod
    async def get_task_by_id(self, task_id: Any) -> Optional[Record]:
        ...

    @abstractmethod
    async def get_all_tasks(self) -> List[Record]:
        ...

    @abstractmethod
    async def get_tasks_by_date(self, date: str) -> List[Record]:
        ...

    @abstractmethod
    async def _delete(self, task_id: int) -> None:
        ...

    async def delete_task(self, task_id: Any) -> None:
        """Remove ``task_id``; missing ids are a no-op.

        The record is read back afterwards and a survivor raises
        :class:`ConsistencyError`.
        """

        normalized = coerce_task_id(task_id)
        if normalized is None:
            logger.debug("delete_task ignored unparsable id %r (%s)", task_id, self.name)
            return
        await self._delete(normalized)
        if await self.get_task_by_id(normalized) is not None:
            logger.error("Task %s still present after delete (%s)", normalized, self.name)
            raise ConsistencyError(
                "Task still exists after delete",
                task_id=normalized,
                backend=self.name,
            )
        logger.debug("Task deleted: %s (%s)", normalized, self.name)


__all__ = ["Record", "TaskBackend", "prepare_task_fields", "sort_records"]
