from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from services.cache_storage import CacheStorage
from services.task_backend import Record, TaskBackend

logger = logging.getLogger("planner.repository")


class TaskRepository:
    """Authoritative backend plus a read-through cache for list queries.

    Successful writes always invalidate every cached task query.
    """

    def __init__(self, backend: TaskBackend, cache: CacheStorage):
        self.backend = backend
        self.cache = cache

    async def get_task_by_id(self, task_id: Any) -> Optional[Record]:
        return await self.backend.get_task_by_id(task_id)

    async def get_all_tasks(self) -> List[Record]:
        cached = await self.cache.get_cached_tasks()
        if cached is not None:
            logger.debug("get_all_tasks served from cache: %s tasks", len(cached))
            return cached
        records = await self.backend.get_all_tasks()
        await self.cache.cache_tasks(records)
        return records

    async def get_tasks_by_date(self, date: str) -> List[Record]:
        cached = await self.cache.get_cached_tasks_by_date(date)
        if cached is not None:
            return cached
        records = await self.backend.get_tasks_by_date(date)
        await self.cache.cache_tasks_by_date(date, records)
        return records

    async def add_task(self, data: Mapping[str, Any]) -> Record:
        record = await self.backend.add_task(data)
        await self.cache.invalidate_tasks_cache()
        return record

    async def update_task(self, task_id: Any, data: Mapping[str, Any]) -> None:
        await self.backend.update_task(task_id, data)
        await self.cache.invalidate_tasks_cache()

    async def delete_task(self, task_id: Any) -> None:
        await self.backend.delete_task(task_id)
        await self.cache.invalidate_tasks_cache()


__all__ = ["TaskRepository"]
