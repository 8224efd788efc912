"""Database engine setup for SQLite with WAL mode.

SQLAlchemy Core (not ORM) is used because a form submission is one short
read-modify-write; there is no benefit from sessions or identity maps.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from formwright.infrastructure.database.schema import metadata


def now_iso() -> str:
    """Current UTC time as standard ISO 8601."""
    return datetime.now(UTC).isoformat()


def create_db_engine(db_path: Path | None = None) -> Engine:
    """Create a SQLite engine; ``None`` gives a shared in-memory database."""
    if db_path is None:
        engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(f"sqlite:///{db_path}", echo=False)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def init_database(db_path: Path | None = None) -> Engine:
    """Create the engine and every table. Idempotent.

    Returns the engine ready for use.
    """
    if db_path is not None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    return engine
