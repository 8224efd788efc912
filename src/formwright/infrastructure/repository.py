"""Form configuration repository — shared store of rendered forms.

A Form writes its configuration here when it renders, so out-of-band
callers (an async re-evaluation endpoint, the CLI) can look the form up
by id later. Writes are last-writer-wins; readers see the latest
complete configuration, never a partial one.

Hooks and callables do not survive the SQL round trip: a configuration
read back from :class:`SqlFormConfigRepository` is good for conditional
evaluation only.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from formwright.domain.configuration import FormConfiguration
from formwright.errors import PersistenceError
from formwright.infrastructure.database.engine import now_iso
from formwright.infrastructure.database.schema import form_registry

logger = logging.getLogger(__name__)


@runtime_checkable
class FormConfigRepository(Protocol):
    def get(self, form_id: str) -> FormConfiguration | None: ...

    def put(self, form_id: str, config: FormConfiguration) -> None: ...


class InMemoryFormConfigRepository:
    """Process-local repository; keeps live configurations including hooks."""

    def __init__(self) -> None:
        self._configs: dict[str, FormConfiguration] = {}
        self._lock = threading.Lock()

    def get(self, form_id: str) -> FormConfiguration | None:
        return self._configs.get(form_id)

    def put(self, form_id: str, config: FormConfiguration) -> None:
        with self._lock:
            self._configs[form_id] = config
        logger.debug("Registered form configuration: %s", form_id)

    def form_ids(self) -> list[str]:
        return sorted(self._configs)

    def __len__(self) -> int:
        return len(self._configs)


class SqlFormConfigRepository:
    """Repository persisted to the ``form_registry`` table as JSON documents."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, form_id: str) -> FormConfiguration | None:
        try:
            with self._engine.connect() as conn:
                raw = conn.execute(
                    select(form_registry.c.document).where(form_registry.c.form_id == form_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            msg = f"Could not read form configuration {form_id!r}"
            raise PersistenceError(msg) from exc
        if raw is None:
            return None
        try:
            return FormConfiguration.from_document(json.loads(raw))
        except ValueError as exc:
            msg = f"Stored form configuration {form_id!r} is unreadable"
            raise PersistenceError(msg) from exc

    def put(self, form_id: str, config: FormConfiguration) -> None:
        document = json.dumps(config.to_document())
        modified = now_iso()
        stmt = sqlite_insert(form_registry).values(
            form_id=form_id, document=document, modified=modified
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    stmt.on_conflict_do_update(
                        index_elements=[form_registry.c.form_id],
                        set_={"document": stmt.excluded.document, "modified": modified},
                    )
                )
        except SQLAlchemyError as exc:
            msg = f"Could not store form configuration {form_id!r}"
            raise PersistenceError(msg) from exc
        logger.debug("Stored form configuration: %s", form_id)

    def form_ids(self) -> list[str]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(form_registry.c.form_id).order_by(form_registry.c.form_id)
            ).fetchall()
        return [row.form_id for row in rows]
