"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``.

    ``PLANNER_DATA_DIR`` in the environment overrides the platform default.
    """

    platform_id = (platform or sys.platform).lower()
    environ = dict(os.environ if env is None else env)
    override = environ.get("PLANNER_DATA_DIR")
    if override:
        return Path(override).expanduser()

    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "FlineoPlanner"
APP_VERSION = "1.0.0"


DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"

DB_PATH = DATA_DIR / "planner.db"
CACHE_DB_PATH = DATA_DIR / "planner-cache.db"
METADATA_DB_PATH = DATA_DIR / "planner-metadata.db"
KV_STORE_PATH = DATA_DIR / "local-storage.json"
CONFIG_PATH = DATA_DIR / "config.json"
LOG_PATH = LOG_DIR / "planner.log"


def ensure_data_dirs(data_dir: Optional[Path] = None) -> Path:
    base = Path(data_dir or DATA_DIR)
    for _dir in (base, base / LOG_DIR.name):
        _dir.mkdir(parents=True, exist_ok=True)
    return base


@dataclass(frozen=True)
class CacheSettings:
    ttl_seconds: int = 5 * 60
    max_entries: int = 100
    key_prefix: str = "cache_"
    tasks_prefix: str = "cache_tasks_"
    table_name: str = "app_cache"


CACHE = CacheSettings()


@dataclass(frozen=True)
class StorageSettings:
    backend_env_var: str = "PLANNER_STORAGE_BACKEND"
    tasks_key: str = "flineo-planner-tasks"
    metadata_key: str = "flineo-planner-metadata"
    sandboxed_platforms: tuple[str, ...] = ("emscripten", "wasi")


STORAGE = StorageSettings()


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    max_bytes: int = 1_000_000
    backup_count: int = 3
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


LOGGING = LoggingSettings()


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "DATA_DIR",
    "LOG_DIR",
    "DB_PATH",
    "CACHE_DB_PATH",
    "METADATA_DB_PATH",
    "KV_STORE_PATH",
    "CONFIG_PATH",
    "LOG_PATH",
    "CACHE",
    "STORAGE",
    "LOGGING",
    "ensure_data_dirs",
    "get_default_data_dir",
]
