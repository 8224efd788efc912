"""Tests for engine creation and schema setup."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from formwright.infrastructure.database import init_database, now_iso


class TestInitDatabase:
    def test_creates_tables(self, db_engine: Engine) -> None:
        names = set(inspect(db_engine).get_table_names())
        assert {"options", "form_records", "form_registry"} <= names

    def test_file_database_uses_wal(self, db_engine: Engine) -> None:
        with db_engine.connect() as conn:
            mode = conn.execute(text("PRAGMA journal_mode")).scalar()
        assert mode == "wal"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "forms.db"
        engine = init_database(path)
        try:
            assert path.exists()
        finally:
            engine.dispose()

    def test_idempotent(self, tmp_path: Path) -> None:
        path = tmp_path / "forms.db"
        init_database(path).dispose()
        engine = init_database(path)
        try:
            assert "options" in inspect(engine).get_table_names()
        finally:
            engine.dispose()

    def test_in_memory_shared_across_connections(self, memory_engine: Engine) -> None:
        with memory_engine.begin() as conn:
            conn.execute(text("INSERT INTO options VALUES ('k', '1', 'now')"))
        with memory_engine.connect() as conn:
            assert conn.execute(text("SELECT value FROM options")).scalar() == "1"


def test_now_iso_is_utc() -> None:
    stamp = datetime.fromisoformat(now_iso())
    assert stamp.utcoffset() is not None
    assert stamp.utcoffset().total_seconds() == 0
