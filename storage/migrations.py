"""Ad-hoc database migrations for Planner."""

from __future__ import annotations

from sqlalchemy import text


def _table_exists(conn, table: str) -> bool:
    result = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"),
        {"name": table},
    )
    return result.first() is not None


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_task_columns(conn) -> None:
    if not _table_exists(conn, "tasks"):
        return
    columns = {
        "description": "TEXT NOT NULL DEFAULT ''",
        "completed": "INTEGER NOT NULL DEFAULT 0",
        "due_date": "TEXT",
        "priority": "TEXT NOT NULL DEFAULT 'medium'",
        "calendar_event_id": "TEXT",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "tasks", name):
            conn.execute(text(f"ALTER TABLE tasks ADD COLUMN {name} {ddl_type}"))

    conn.execute(
        text(
            """
            UPDATE tasks
            SET priority = 'medium'
            WHERE priority IS NULL OR priority NOT IN ('low', 'medium', 'high')
            """
        )
    )
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_created_at ON tasks (created_at)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_due_date ON tasks (due_date)"))


def ensure_cache_indexes(conn) -> None:
    if not _table_exists(conn, "app_cache"):
        return
    conn.execute(
        text(
            """
            CREATE INDEX IF NOT EXISTS ix_app_cache_expires_at
            ON app_cache (expires_at)
            """
        )
    )


def run_all(engine) -> None:
    with engine.begin() as conn:
        ensure_task_columns(conn)
        ensure_cache_indexes(conn)


__all__ = ["run_all"]
