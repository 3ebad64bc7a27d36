"""Wire the task core once per process."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from core import settings
from core.backend_selector import StorageMode, parse_storage_mode, select_storage_mode
from core.logging_setup import configure_logging
from services.app_metadata import AppMetadataStore, KeyValueMetadataSubstrate, SqlMetadataSubstrate
from services.cache_storage import (
    CacheStorage,
    KeyValueCacheSubstrate,
    NullCacheSubstrate,
    SqlCacheSubstrate,
)
from services.kv_task_backend import KeyValueTaskBackend
from services.sql_task_backend import SqlTaskBackend
from services.task_backend import TaskBackend
from services.task_repository import TaskRepository
from services.task_state import TaskState
from storage.config import AppConfig, load_config
from storage.db import CACHE_TABLES, METADATA_TABLES, create_sqlite_engine, init_schema, session_factory
from storage.kv import (
    BrowserKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
)

logger = logging.getLogger("planner.bootstrap")


@dataclass
class PlannerServices:
    mode: StorageMode
    backend: TaskBackend
    cache: CacheStorage
    repository: TaskRepository
    tasks: TaskState
    metadata: AppMetadataStore


def _open_sqlite(path: Path, tables, label: str):
    """Return a session factory, or ``None`` when the database cannot be opened."""
    try:
        engine = create_sqlite_engine(path)
        init_schema(engine, tables)
    except (SQLAlchemyError, OSError) as exc:
        logger.error("%s database unavailable at %s: %s", label, path, exc)
        return None
    return session_factory(engine)


def default_kv_store(data_dir: Path) -> KeyValueStore:
    if sys.platform in settings.STORAGE.sandboxed_platforms:
        return BrowserKeyValueStore()
    return JsonFileKeyValueStore(data_dir / settings.KV_STORE_PATH.name)


def build_services(
    *,
    mode: Union[StorageMode, str, None] = None,
    data_dir: Union[str, Path, None] = None,
    kv_store: Optional[KeyValueStore] = None,
    config: Optional[AppConfig] = None,
) -> PlannerServices:
    """Construct the task core.

    ``mode`` bypasses the process-wide selector (tests, tooling); without it
    the frozen selection is used.
    """

    base = settings.ensure_data_dirs(Path(data_dir) if data_dir else None)
    cfg = config or load_config(base / settings.CONFIG_PATH.name)
    configure_logging(base / settings.LOG_DIR.name / settings.LOG_PATH.name, cfg.log_level)

    storage_mode = parse_storage_mode(mode) if mode else select_storage_mode(cfg.storage_backend)
    ttl = cfg.cache_ttl_seconds if cfg.cache_ttl_seconds is not None else settings.CACHE.ttl_seconds

    if storage_mode is StorageMode.NATIVE:
        backend = SqlTaskBackend(base / settings.DB_PATH.name)
        backend.open()
        cache_sessions = _open_sqlite(base / settings.CACHE_DB_PATH.name, CACHE_TABLES, "Cache")
        cache_substrate = (
            SqlCacheSubstrate(cache_sessions) if cache_sessions else NullCacheSubstrate()
        )
        metadata_sessions = _open_sqlite(
            base / settings.METADATA_DB_PATH.name, METADATA_TABLES, "Metadata"
        )
        metadata_substrate = (
            SqlMetadataSubstrate(metadata_sessions)
            if metadata_sessions
            else KeyValueMetadataSubstrate(MemoryKeyValueStore())
        )
    else:
        store = kv_store or default_kv_store(base)
        backend = KeyValueTaskBackend(store)
        cache_substrate = KeyValueCacheSubstrate(store)
        metadata_substrate = KeyValueMetadataSubstrate(store)

    cache = CacheStorage(cache_substrate, default_ttl=ttl)
    repository = TaskRepository(backend, cache)
    logger.info("Planner core ready (%s, data dir %s)", storage_mode.value, base)
    return PlannerServices(
        mode=storage_mode,
        backend=backend,
        cache=cache,
        repository=repository,
        tasks=TaskState(repository),
        metadata=AppMetadataStore(metadata_substrate),
    )


__all__ = ["PlannerServices", "build_services", "default_kv_store"]
