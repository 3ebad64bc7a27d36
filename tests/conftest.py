from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services.cache_storage import CacheStorage, KeyValueCacheSubstrate, SqlCacheSubstrate
from services.kv_task_backend import KeyValueTaskBackend
from services.sql_task_backend import SqlTaskBackend
from services.task_repository import TaskRepository
from services.task_state import TaskState
from storage.db import CACHE_TABLES, create_sqlite_engine, init_schema, session_factory
from storage.kv import MemoryKeyValueStore


class FakeClock:
    """Datetime clock for backends; advances one second per call."""

    def __init__(self, start: datetime = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(seconds=1)
        return value


class FakeTimer:
    """Epoch-seconds clock for the cache; only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture()
def sql_backend(tmp_path, clock) -> SqlTaskBackend:
    backend = SqlTaskBackend(tmp_path / "planner.db", clock=clock)
    assert backend.open()
    yield backend
    backend.close()


@pytest.fixture()
def kv_backend(kv_store, clock) -> KeyValueTaskBackend:
    return KeyValueTaskBackend(kv_store, clock=clock)


@pytest.fixture(params=["sqlite", "key_value"])
def backend(request):
    """Run a test against both backends."""
    if request.param == "sqlite":
        return request.getfixturevalue("sql_backend")
    return request.getfixturevalue("kv_backend")


@pytest.fixture()
def sql_cache_substrate(tmp_path) -> SqlCacheSubstrate:
    engine = create_sqlite_engine(tmp_path / "planner-cache.db")
    init_schema(engine, CACHE_TABLES)
    yield SqlCacheSubstrate(session_factory(engine))
    engine.dispose()


@pytest.fixture(params=["sqlite", "key_value"])
def cache(request, timer) -> CacheStorage:
    """A cache over each substrate, driven by the fake timer."""
    if request.param == "sqlite":
        substrate = request.getfixturevalue("sql_cache_substrate")
    else:
        substrate = KeyValueCacheSubstrate(request.getfixturevalue("kv_store"))
    return CacheStorage(substrate, default_ttl=300, max_entries=100, clock=timer)


@pytest.fixture()
def repository(kv_backend, kv_store, timer) -> TaskRepository:
    cache = CacheStorage(KeyValueCacheSubstrate(kv_store), clock=timer)
    return TaskRepository(kv_backend, cache)


@pytest.fixture()
def state(repository) -> TaskState:
    return TaskState(repository)
