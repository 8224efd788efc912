"""SQLAlchemy Core table definitions for the formwright store.

Values and payloads are stored as JSON text; SQLite has no native JSON
column type worth depending on here.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, MetaData, Table, Text, UniqueConstraint

metadata = MetaData()

# Key-value store used by the options persistence backend.
options = Table(
    "options",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=False),  # JSON
    Column("modified", Text, nullable=False),
)

# One structured payload per (form_id, record_id).
form_records = Table(
    "form_records",
    metadata,
    Column("form_id", Text, nullable=False),
    Column("record_id", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON object
    Column("modified", Text, nullable=False),
    UniqueConstraint("form_id", "record_id"),
)

Index("ix_form_records_form", form_records.c.form_id)

# Serialized FormConfiguration documents, written on render.
form_registry = Table(
    "form_registry",
    metadata,
    Column("form_id", Text, primary_key=True),
    Column("document", Text, nullable=False),  # JSON
    Column("modified", Text, nullable=False),
)
