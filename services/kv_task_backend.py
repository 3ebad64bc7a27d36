"""Task backend on a synchronous key-value store (browser ``localStorage`` style)."""
from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, Optional

from core.errors import NotFoundError
from core.settings import STORAGE
from models.task import coerce_task_id
from services.task_backend import Clock, Record, TaskBackend, prepare_task_fields, sort_records
from storage.kv import KeyValueStore

logger = logging.getLogger("planner.storage.kv")


class KeyValueTaskBackend(TaskBackend):
    """All tasks live in one JSON document: ``{"tasks": [...]}``.

    Every mutation rebuilds the list, saves it and only then swaps it in, so a
    failed write leaves the in-memory copy untouched.
    """

    name = "key_value"

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = STORAGE.tasks_key,
        clock: Optional[Clock] = None,
    ):
        super().__init__(clock=clock)
        self._store = store
        self._key = key
        self._tasks: List[Record] = self._load()
        self._next_id = self._derive_next_id(self._tasks)
        logger.info(
            "Key-value task store loaded: %s tasks, next id %s", len(self._tasks), self._next_id
        )

    # ------------------------------------------------------------------
    # Persistence helpers
    def _load(self) -> List[Record]:
        try:
            payload = self._store.get_item(self._key)
        except Exception as exc:  # host storage may refuse access entirely
            logger.error("Error reading tasks from key-value store: %s", exc)
            return []
        if not payload:
            return []
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.error("Stored tasks are not valid JSON, starting empty: %s", exc)
            return []
        tasks = data.get("tasks") if isinstance(data, dict) else None
        if not isinstance(tasks, list):
            return []
        return [dict(item) for item in tasks if isinstance(item, dict)]

    @staticmethod
    def _derive_next_id(tasks: List[Record]) -> int:
        ids = [coerce_task_id(item.get("id")) or 0 for item in tasks]
        return max(ids, default=0) + 1

    def _save(self, tasks: List[Record]) -> None:
        payload = json.dumps({"tasks": tasks}, ensure_ascii=False)
        self._store.set_item(self._key, payload)
        self._tasks = tasks
        logger.debug("Key-value task store saved: %s tasks", len(tasks))

    def _index_of(self, task_id: Optional[int]) -> int:
        if task_id is None:
            return -1
        for index, item in enumerate(self._tasks):
            if coerce_task_id(item.get("id")) == task_id:
                return index
        return -1

    # ------------------------------------------------------------------
    # Contract
    async def add_task(self, data: Mapping[str, Any]) -> Record:
        fields = prepare_task_fields(data)
        fields["completed"] = 0
        now = self._now()
        record: Record = {"id": self._next_id, **fields, "created_at": now, "updated_at": now}
        self._save([*self._tasks, record])
        self._next_id += 1
        logger.debug("Task created: %s", record["id"])
        return dict(record)

    async def update_task(self, task_id: Any, data: Mapping[str, Any]) -> None:
        fields = prepare_task_fields(data)
        normalized = coerce_task_id(task_id)
        index = self._index_of(normalized)
        if index == -1:
            raise NotFoundError("Task not found", task_id=task_id, backend=self.name)
        updated = list(self._tasks)
        updated[index] = {**updated[index], **fields, "updated_at": self._now()}
        self._save(updated)
        logger.debug("Task updated: %s", normalized)

    async def _delete(self, task_id: int) -> None:
        remaining = [item for item in self._tasks if coerce_task_id(item.get("id")) != task_id]
        logger.debug(
            "delete_task before=%s after=%s id=%s", len(self._tasks), len(remaining), task_id
        )
        if len(remaining) != len(self._tasks):
            self._save(remaining)

    async def get_task_by_id(self, task_id: Any) -> Optional[Record]:
        index = self._index_of(coerce_task_id(task_id))
        return dict(self._tasks[index]) if index != -1 else None

    async def get_all_tasks(self) -> List[Record]:
        return [dict(item) for item in sort_records(self._tasks)]

    async def get_tasks_by_date(self, date: str) -> List[Record]:
        matching = [
            item
            for item in self._tasks
            if isinstance(item.get("due_date"), str) and item["due_date"].startswith(date)
        ]
        return [dict(item) for item in sort_records(matching)]


__all__ = ["KeyValueTaskBackend"]
