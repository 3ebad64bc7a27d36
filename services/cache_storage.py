"""Time-bounded read cache for task queries.

The cache is best effort: every public method logs and swallows failures, so
a broken cache costs at most one extra authoritative read.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from core.settings import CACHE
from models.cache_entry import CacheEntry
from storage.kv import KeyValueStore

logger = logging.getLogger("planner.cache")


def cache_key(kind: str, ident: str = "") -> str:
    return f"{CACHE.key_prefix}{kind}_{ident}"


TASKS_ALL_KEY = cache_key("tasks", "all")


def tasks_by_date_key(date: str) -> str:
    return cache_key("tasks", f"date_{date}")


@dataclass
class StoredEntry:
    value: str
    timestamp: float
    expires_at: Optional[float]


class SqlCacheSubstrate:
    """Entries in the ``app_cache`` table of a dedicated SQLite file."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def read(self, key: str) -> Optional[StoredEntry]:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is None:
                return None
            return StoredEntry(row.value, row.timestamp, row.expires_at)

    def write(self, key: str, entry: StoredEntry) -> None:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is None:
                row = CacheEntry(key=key, value=entry.value, timestamp=entry.timestamp)
            row.value = entry.value
            row.timestamp = entry.timestamp
            row.expires_at = entry.expires_at
            session.add(row)
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is not None:
                session.delete(row)
                session.commit()

    def delete_prefix(self, prefix: str) -> int:
        with self._session_factory() as session:
            stmt = select(CacheEntry).where(CacheEntry.key.startswith(prefix, autoescape=True))
            rows = list(session.exec(stmt))
            for row in rows:
                session.delete(row)
            if rows:
                session.commit()
            return len(rows)

    def purge_expired(self, now: float) -> int:
        with self._session_factory() as session:
            stmt = select(CacheEntry).where(CacheEntry.expires_at < now)
            rows = list(session.exec(stmt))
            for row in rows:
                session.delete(row)
            if rows:
                session.commit()
            return len(rows)

    def evict_oldest(self, keep: int) -> int:
        with self._session_factory() as session:
            total = int(session.exec(select(func.count()).select_from(CacheEntry)).one())
            excess = total - keep
            if excess <= 0:
                return 0
            stmt = select(CacheEntry).order_by(CacheEntry.timestamp.asc()).limit(excess)
            rows = list(session.exec(stmt))
            for row in rows:
                session.delete(row)
            session.commit()
            return len(rows)


class KeyValueCacheSubstrate:
    """One key per entry in the shared key-value store."""

    def __init__(self, store: KeyValueStore, *, namespace: str = CACHE.key_prefix):
        self._store = store
        self._namespace = namespace

    def _entries(self) -> List[tuple[str, StoredEntry]]:
        result = []
        for key in self._store.keys():
            if not key.startswith(self._namespace):
                continue
            entry = self.read(key)
            if entry is not None:
                result.append((key, entry))
        return result

    def read(self, key: str) -> Optional[StoredEntry]:
        payload = self._store.get_item(key)
        if not payload:
            return None
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self._store.remove_item(key)
            return None
        if not isinstance(data, dict) or "value" not in data:
            return None
        return StoredEntry(
            value=json.dumps(data["value"]),
            timestamp=float(data.get("timestamp") or 0),
            expires_at=data.get("expires_at"),
        )

    def write(self, key: str, entry: StoredEntry) -> None:
        payload = {
            "value": json.loads(entry.value),
            "timestamp": entry.timestamp,
            "expires_at": entry.expires_at,
        }
        self._store.set_item(key, json.dumps(payload, ensure_ascii=False))

    def delete(self, key: str) -> None:
        self._store.remove_item(key)

    def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._store.keys() if key.startswith(prefix)]
        for key in keys:
            self._store.remove_item(key)
        return len(keys)

    def purge_expired(self, now: float) -> int:
        expired = [
            key
            for key, entry in self._entries()
            if entry.expires_at is not None and entry.expires_at < now
        ]
        for key in expired:
            self._store.remove_item(key)
        return len(expired)

    def evict_oldest(self, keep: int) -> int:
        entries = sorted(self._entries(), key=lambda item: item[1].timestamp)
        excess = len(entries) - keep
        if excess <= 0:
            return 0
        for key, _entry in entries[:excess]:
            self._store.remove_item(key)
        return excess


class CacheStorage:
    def __init__(
        self,
        substrate,
        *,
        default_ttl: float = CACHE.ttl_seconds,
        max_entries: int = CACHE.max_entries,
        clock: Callable[[], float] = time.time,
    ):
        self._substrate = substrate
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock

    # ------------------------------------------------------------------
    # Generic API
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        lifetime = self.default_ttl if ttl is None else ttl
        try:
            entry = StoredEntry(
                value=json.dumps(value, ensure_ascii=False),
                timestamp=now,
                expires_at=now + lifetime,
            )
            self._substrate.write(key, entry)
            self._substrate.purge_expired(now)
            evicted = self._substrate.evict_oldest(self.max_entries)
            if evicted:
                logger.debug("Cache evicted %s oldest entries", evicted)
        except Exception as exc:
            logger.warning("Error setting cache %s: %s", key, exc)

    async def get(self, key: str) -> Any:
        try:
            entry = self._substrate.read(key)
            if entry is None:
                return None
            if entry.expires_at is not None and self._clock() > entry.expires_at:
                self._substrate.delete(key)
                return None
            return json.loads(entry.value)
        except Exception as exc:
            logger.warning("Error getting cache %s: %s", key, exc)
            return None

    async def remove(self, key: str) -> None:
        try:
            self._substrate.delete(key)
        except Exception as exc:
            logger.warning("Error removing cache %s: %s", key, exc)

    async def clear(self) -> None:
        try:
            self._substrate.delete_prefix(CACHE.key_prefix)
        except Exception as exc:
            logger.warning("Error clearing cache: %s", exc)

    async def cleanup(self) -> int:
        try:
            return self._substrate.purge_expired(self._clock())
        except Exception as exc:
            logger.warning("Error cleaning up cache: %s", exc)
            return 0

    # ------------------------------------------------------------------
    # Task queries
    async def cache_tasks(self, tasks: List[dict]) -> None:
        await self.set(TASKS_ALL_KEY, tasks)

    async def get_cached_tasks(self) -> Optional[List[dict]]:
        return await self.get(TASKS_ALL_KEY)

    async def cache_tasks_by_date(self, date: str, tasks: List[dict]) -> None:
        await self.set(tasks_by_date_key(date), tasks)

    async def get_cached_tasks_by_date(self, date: str) -> Optional[List[dict]]:
        return await self.get(tasks_by_date_key(date))

    async def invalidate_tasks_cache(self) -> None:
        try:
            removed = self._substrate.delete_prefix(CACHE.tasks_prefix)
            logger.debug("Task cache invalidated: %s entries", removed)
        except Exception as exc:
            logger.warning("Error invalidating task cache: %s", exc)


class NullCacheSubstrate:
    """Stand-in when the cache database cannot be opened: every read misses."""

    def read(self, key: str) -> Optional[StoredEntry]:
        return None

    def write(self, key: str, entry: StoredEntry) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def delete_prefix(self, prefix: str) -> int:
        return 0

    def purge_expired(self, now: float) -> int:
        return 0

    def evict_oldest(self, keep: int) -> int:
        return 0


__all__ = [
    "CacheStorage",
    "KeyValueCacheSubstrate",
    "NullCacheSubstrate",
    "SqlCacheSubstrate",
    "StoredEntry",
    "TASKS_ALL_KEY",
    "cache_key",
    "tasks_by_date_key",
]
