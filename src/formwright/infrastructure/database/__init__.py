"""SQLite database engine and schema via SQLAlchemy Core."""

from formwright.infrastructure.database.engine import create_db_engine, init_database, now_iso
from formwright.infrastructure.database.schema import (
    form_records,
    form_registry,
    metadata,
    options,
)

__all__ = [
    "create_db_engine",
    "form_records",
    "form_registry",
    "init_database",
    "metadata",
    "now_iso",
    "options",
]
