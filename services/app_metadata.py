"""Onboarding flag and user preferences, persisted next to the tasks."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from sqlmodel import Session

from core.settings import APP_VERSION, STORAGE
from models.metadata_entry import MetadataEntry
from storage.kv import KeyValueStore
from utils.datetime_utils import to_iso_timestamp

logger = logging.getLogger("planner.metadata")

METADATA_DOCUMENT = "metadata"

DEFAULT_METADATA: Dict[str, Any] = {
    "last_launch_date": None,
    "app_version": APP_VERSION,
    "onboarding_completed": False,
    "preferences": {
        "theme": "light",
        "notifications": True,
        "language": "pl",
        "user_data": {"first_name": "", "last_name": "", "age": None},
        "schedule": {"wake_time": "08:00", "bed_time": "22:00"},
    },
}


def default_metadata() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_METADATA)


class SqlMetadataSubstrate:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def read(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.get(MetadataEntry, key)
            return row.value if row else None

    def write(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            row = session.get(MetadataEntry, key)
            now = to_iso_timestamp()
            if row is None:
                row = MetadataEntry(key=key, value=value, updated_at=now)
            else:
                row.value = value
                row.updated_at = now
            session.add(row)
            session.commit()


class KeyValueMetadataSubstrate:
    """Single key in the shared store; the document key is ignored."""

    def __init__(self, store: KeyValueStore, *, key: str = STORAGE.metadata_key):
        self._store = store
        self._key = key

    def read(self, key: str) -> Optional[str]:
        value = self._store.get_item(self._key)
        if value in (None, "", "null", "undefined"):
            return None
        return value

    def write(self, key: str, value: str) -> None:
        self._store.set_item(self._key, value)


class AppMetadataStore:
    def __init__(self, substrate, *, clock: Callable[[], str] = to_iso_timestamp):
        self._substrate = substrate
        self._clock = clock
        self._write_lock = asyncio.Lock()

    # ----- persistence -----
    def _read(self) -> Optional[Dict[str, Any]]:
        try:
            payload = self._substrate.read(METADATA_DOCUMENT)
        except Exception as exc:
            logger.error("Error reading metadata: %s", exc)
            return None
        if not payload:
            return None
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.error("Stored metadata is not valid JSON: %s", exc)
            return None
        return data if isinstance(data, dict) else None

    async def _write(self, metadata: Dict[str, Any]) -> None:
        async with self._write_lock:
            try:
                self._substrate.write(METADATA_DOCUMENT, json.dumps(metadata, ensure_ascii=False))
            except Exception as exc:
                logger.error("Error saving metadata: %s", exc)

    # ----- public API -----
    async def initialize(self) -> Tuple[Dict[str, Any], bool]:
        """Return ``(metadata, is_first_launch)``; first launch stores defaults."""

        existing = self._read()
        if existing is not None:
            return existing, False
        metadata = default_metadata()
        metadata["last_launch_date"] = self._clock()
        await self._write(metadata)
        logger.info("First launch detected, metadata initialized")
        return metadata, True

    async def get_metadata(self) -> Dict[str, Any]:
        return self._read() or default_metadata()

    async def update_preferences(self, **preferences: Any) -> Dict[str, Any]:
        current = await self.get_metadata()
        updated = {
            **current,
            "preferences": {**current.get("preferences", {}), **preferences},
        }
        await self._write(updated)
        return updated

    async def update_metadata(self, **changes: Any) -> Dict[str, Any]:
        current = await self.get_metadata()
        updated = {**current, **changes}
        await self._write(updated)
        return updated

    async def reset_metadata(self) -> Dict[str, Any]:
        metadata = default_metadata()
        metadata["last_launch_date"] = self._clock()
        await self._write(metadata)
        logger.info("Metadata reset to defaults")
        return metadata


__all__ = [
    "AppMetadataStore",
    "DEFAULT_METADATA",
    "KeyValueMetadataSubstrate",
    "SqlMetadataSubstrate",
    "default_metadata",
]
