"""Process-wide choice between the native SQLite backend and the key-value fallback."""
from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from typing import Mapping, Optional

from core.settings import STORAGE

logger = logging.getLogger("planner.selector")


class StorageMode(str, Enum):
    NATIVE = "native"
    KEY_VALUE = "key_value"


_ALIASES = {
    "native": StorageMode.NATIVE,
    "sqlite": StorageMode.NATIVE,
    "sql": StorageMode.NATIVE,
    "key_value": StorageMode.KEY_VALUE,
    "keyvalue": StorageMode.KEY_VALUE,
    "kv": StorageMode.KEY_VALUE,
    "web": StorageMode.KEY_VALUE,
    "local_storage": StorageMode.KEY_VALUE,
}

_selected: Optional[StorageMode] = None


def parse_storage_mode(value: "str | StorageMode") -> StorageMode:
    if isinstance(value, StorageMode):
        return value
    key = str(value).strip().lower().replace("-", "_")
    try:
        return _ALIASES[key]
    except KeyError:
        raise ValueError(f"Unsupported storage backend: {value!r}") from None


def _parse_or_none(value: "str | StorageMode", source: str) -> Optional[StorageMode]:
    try:
        return parse_storage_mode(value)
    except ValueError:
        logger.warning("Ignoring unknown storage backend %r from %s", value, source)
        return None


def detect_storage_mode(
    *,
    preferred: "str | StorageMode | None" = None,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> StorageMode:
    """Decide which backend this runtime should use.

    The environment variable beats ``preferred`` (which usually comes from
    ``config.json``); without either, sandboxed interpreters such as Pyodide
    get the key-value store and everything else gets SQLite. Unknown values
    are logged and skipped.
    """

    environ = os.environ if env is None else env
    forced = environ.get(STORAGE.backend_env_var)
    if forced:
        mode = _parse_or_none(forced, STORAGE.backend_env_var)
        if mode is not None:
            return mode
    if preferred:
        mode = _parse_or_none(preferred, "config")
        if mode is not None:
            return mode
    platform_id = (platform or sys.platform).lower()
    if platform_id in STORAGE.sandboxed_platforms:
        return StorageMode.KEY_VALUE
    return StorageMode.NATIVE


def select_storage_mode(preferred: "str | StorageMode | None" = None) -> StorageMode:
    """Return the storage mode for this process, deciding it on first use."""

    global _selected
    if _selected is None:
        _selected = detect_storage_mode(preferred=preferred)
        logger.info("Storage backend selected: %s", _selected.value)
        return _selected
    if preferred and _parse_or_none(preferred, "config") is not _selected:
        logger.warning(
            "Ignoring storage backend %r, %s was already selected for this process",
            preferred,
            _selected.value,
        )
    return _selected


def native_storage_available() -> bool:
    return select_storage_mode() is StorageMode.NATIVE


__all__ = [
    "StorageMode",
    "detect_storage_mode",
    "native_storage_available",
    "parse_storage_mode",
    "select_storage_mode",
]
