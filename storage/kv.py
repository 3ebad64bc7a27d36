"""Synchronous string key-value stores.

These mirror the browser ``localStorage`` contract (string keys, string
values, synchronous calls) so the key-value backends behave the same under
Pyodide and on a desktop interpreter.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class MemoryKeyValueStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileKeyValueStore:
    """All keys in one JSON object on disk, rewritten atomically on change."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, ensure_ascii=False, sort_keys=True)
        tmp = self.path.with_suffix(".tmp")
        try:
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        updated = dict(self._data)
        updated[key] = str(value)
        self._save(updated)
        self._data = updated

    def remove_item(self, key: str) -> None:
        if key not in self._data:
            return
        updated = dict(self._data)
        updated.pop(key)
        self._save(updated)
        self._data = updated

    def keys(self) -> List[str]:
        return list(self._data)


class BrowserKeyValueStore:
    """``window.localStorage`` when running under Pyodide."""

    def __init__(self, storage=None):
        if storage is None:
            import js  # only importable inside Pyodide

            storage = js.localStorage
        self._storage = storage

    def get_item(self, key: str) -> Optional[str]:
        value = self._storage.getItem(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        self._storage.setItem(key, str(value))

    def remove_item(self, key: str) -> None:
        self._storage.removeItem(key)

    def keys(self) -> List[str]:
        return [str(self._storage.key(i)) for i in range(int(self._storage.length))]


__all__ = [
    "BrowserKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
]
