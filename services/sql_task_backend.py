"""Task backend on the embedded SQLite engine."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.errors import BackendUnavailableError
from models.task import TaskRow, coerce_task_id
from services.task_backend import Clock, Record, TaskBackend, prepare_task_fields
from storage.db import TASK_TABLES, create_sqlite_engine, init_schema, session_factory

logger = logging.getLogger("planner.storage.sql")


class SqlTaskBackend(TaskBackend):
    name = "sqlite"

    def __init__(
        self,
        db_path: Union[str, Path, None] = None,
        *,
        engine: Optional[Engine] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(clock=clock)
        self._db_path = db_path
        self._engine = engine
        self._session_factory: Optional[Callable[[], Session]] = None
        self._init_error: Optional[BaseException] = None

    @property
    def available(self) -> bool:
        return self._session_factory is not None

    def open(self) -> bool:
        """Create the engine and schema. Returns ``False`` if that failed."""

        if self._session_factory is not None:
            return True
        try:
            engine = self._engine or create_sqlite_engine(self._db_path)
            init_schema(engine, TASK_TABLES)
        except (SQLAlchemyError, OSError) as exc:
            self._init_error = exc
            logger.error("SQLite task database unavailable: %s", exc)
            return False
        self._engine = engine
        self._session_factory = session_factory(engine)
        logger.info("SQLite task database ready: %s", engine.url)
        return True

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    def _session(self) -> Session:
        if self._session_factory is None:
            raise BackendUnavailableError(
                "Native task storage is not available",
                backend=self.name,
                cause=self._init_error or "not opened",
            )
        return self._session_factory()

    async def add_task(self, data: Mapping[str, Any]) -> Record:
        fields = prepare_task_fields(data)
        fields["completed"] = 0
        now = self._now()
        with self._session() as session:
            row = TaskRow(**fields, created_at=now, updated_at=now)
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.debug("Task created: %s", row.id)
            return row.to_record()

    async def update_task(self, task_id: Any, data: Mapping[str, Any]) -> None:
        fields = prepare_task_fields(data)
        normalized = coerce_task_id(task_id)
        with self._session() as session:
            row = session.get(TaskRow, normalized) if normalized is not None else None
            if row is None:
                # Zero rows affected; the caller decides whether that matters.
                logger.debug("update_task matched no row for id %r", task_id)
                return
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = self._now()
            session.add(row)
            session.commit()
            logger.debug("Task updated: %s", normalized)

    async def _delete(self, task_id: int) -> None:
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            if row is not None:
                session.delete(row)
                session.commit()

    async def get_task_by_id(self, task_id: Any) -> Optional[Record]:
        normalized = coerce_task_id(task_id)
        with self._session() as session:
            if normalized is None:
                return None
            row = session.get(TaskRow, normalized)
            return row.to_record() if row else None

    async def get_all_tasks(self) -> List[Record]:
        with self._session() as session:
            stmt = select(TaskRow).order_by(TaskRow.created_at.desc(), TaskRow.id.desc())
            return [row.to_record() for row in session.exec(stmt)]

    async def get_tasks_by_date(self, date: str) -> List[Record]:
        with self._session() as session:
            stmt = (
                select(TaskRow)
                .where(TaskRow.due_date.startswith(date, autoescape=True))
                .order_by(TaskRow.created_at.desc(), TaskRow.id.desc())
            )
            return [row.to_record() for row in session.exec(stmt)]


__all__ = ["SqlTaskBackend"]
