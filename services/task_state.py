# planner/services/task_state.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, List, Mapping, Optional, Set, Tuple

from core.errors import NotFoundError, ValidationError
from models.task import MUTABLE_FIELDS, Task, TaskId, coerce_record_id, normalize_task
from services.task_repository import TaskRepository

logger = logging.getLogger("planner.state")

Listener = Callable[[Tuple[Task, ...]], None]


def _sorted(tasks: Iterable[Task]) -> List[Task]:
    return sorted(tasks, key=lambda t: (t.created_at, t.id), reverse=True)


def _merge_payload(data: Optional[Mapping[str, Any]], fields: Mapping[str, Any]) -> dict:
    payload = dict(data or {})
    payload.update(fields)
    return payload


class TaskState:
    """In-memory task list the presentation layer renders from.

    Reads never raise (a failed load leaves an empty list); writes propagate
    their errors. ``delete_task`` is optimistic and restores its snapshot when
    the backend call fails.
    """

    def __init__(self, repository: TaskRepository):
        self._repo = repository
        self._tasks: List[Task] = []
        self._listeners: Set[Listener] = set()
        self.is_loading = False

    # ------------------------------------------------------------------
    # Observation
    @property
    def tasks(self) -> Tuple[Task, ...]:
        return tuple(self._tasks)

    def get(self, task_id: Any) -> Optional[Task]:
        normalized = coerce_record_id(task_id)
        if normalized is None:
            return None
        for task in self._tasks:
            if task.id == normalized:
                return task
        return None

    def subscribe(self, callback: Listener) -> None:
        self._listeners.add(callback)

    def unsubscribe(self, callback: Listener) -> None:
        self._listeners.discard(callback)

    def _set_tasks(self, tasks: List[Task]) -> None:
        self._tasks = tasks
        snapshot = self.tasks
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Task listener %r failed", listener)

    def _require(self, task_id: Any) -> Task:
        task = self.get(task_id)
        if task is None:
            raise NotFoundError(f"Task with id {task_id} not found in state", task_id=task_id)
        return task

    # ------------------------------------------------------------------
    # Operations
    async def load_tasks(self) -> None:
        self.is_loading = True
        try:
            records = await self._repo.get_all_tasks()
            tasks = [task for task in (normalize_task(r) for r in records) if task is not None]
            logger.info("Tasks loaded: %s", len(tasks))
            self._set_tasks(_sorted(tasks))
        except Exception:
            logger.exception("Error loading tasks, falling back to an empty list")
            self._set_tasks([])
        finally:
            self.is_loading = False

    async def add_task(self, data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Optional[TaskId]:
        record = await self._repo.add_task(_merge_payload(data, fields))
        task = normalize_task(record)
        if task is None:
            logger.warning("Backend returned an unusable record: %r", record)
            return None
        remaining = [t for t in self._tasks if t.id != task.id]
        self._set_tasks(_sorted([*remaining, task]))
        return task.id

    async def update_task(
        self,
        task_id: Any,
        changes: Optional[Mapping[str, Any]] = None,
        **fields: Any,
    ) -> Task:
        current = self._require(task_id)
        payload = _merge_payload(changes, fields)
        unknown = sorted(set(payload) - set(MUTABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unsupported task fields: {', '.join(unknown)}",
                task_id=current.id,
                fields=unknown,
            )
        merged = replace(current, **payload)

        await self._repo.update_task(current.id, merged.to_input())
        persisted = await self._repo.get_task_by_id(current.id)
        updated = normalize_task(persisted) or merged

        self._set_tasks(_sorted(updated if t.id == current.id else t for t in self._tasks))
        return updated

    async def delete_task(self, task_id: Any) -> None:
        snapshot = list(self._tasks)
        normalized = coerce_record_id(task_id)
        self._set_tasks([t for t in snapshot if t.id != normalized])
        try:
            await self._repo.delete_task(task_id)
        except Exception:
            logger.exception("Error deleting task %s, restoring previous state", task_id)
            self._set_tasks(snapshot)
            raise

    async def toggle_task(self, task_id: Any) -> Task:
        task = self._require(task_id)
        return await self.update_task(task.id, completed=not task.completed)


__all__ = ["TaskState"]
