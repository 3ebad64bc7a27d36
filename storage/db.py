# planner/storage/db.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Union

from sqlalchemy import Table
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from storage import migrations

# Ensure SQLModel metadata is populated
import models  # noqa: F401
from models.cache_entry import CacheEntry
from models.metadata_entry import MetadataEntry
from models.task import TaskRow

TASK_TABLES = [TaskRow.__table__]
CACHE_TABLES = [CacheEntry.__table__]
METADATA_TABLES = [MetadataEntry.__table__]


def create_sqlite_engine(path: Union[str, Path]) -> Engine:
    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{db_path.as_posix()}", echo=False)


def init_schema(engine: Engine, tables: Iterable[Table]) -> None:
    SQLModel.metadata.create_all(engine, tables=list(tables))
    migrations.run_all(engine)


def session_factory(engine: Engine) -> Callable[[], Session]:
    def _factory() -> Session:
        return Session(engine)

    return _factory


__all__ = [
    "CACHE_TABLES",
    "METADATA_TABLES",
    "TASK_TABLES",
    "create_sqlite_engine",
    "init_schema",
    "session_factory",
]
