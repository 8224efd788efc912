"""Persistence adapters — where submitted form data lives.

Three backends share the :class:`PersistenceAdapter` protocol:

- :class:`OptionStoreAdapter`: one key-value row per field, keyed
  ``prefix + field_id + suffix``. Repeater selections arrive already
  collapsed under their base id and are stored as one JSON list.
- :class:`RecordStoreAdapter`: one JSON object per ``(form_id, record_id)``,
  merged read-modify-write inside a single transaction.
- :class:`CallbackAdapter`: host-supplied ``load``/``save`` callables.

Backend failures surface as :class:`PersistenceError`; the detail goes to
the log, never to the submitter.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from formwright.domain.configuration import PersistenceBackend, PersistenceSpec
from formwright.errors import PersistenceError
from formwright.infrastructure.database.engine import now_iso
from formwright.infrastructure.database.schema import form_records, options

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Load and save one form's data by identity (the form id)."""

    def load(self, identity: str) -> dict[str, Any]: ...

    def save(self, identity: str, payload: dict[str, Any]) -> bool: ...


class OptionStoreAdapter:
    """Key-value backend over the ``options`` table."""

    def __init__(
        self,
        engine: Engine,
        *,
        prefix: str = "",
        suffix: str = "",
        keys: Iterable[str] | None = None,
    ) -> None:
        self._engine = engine
        self._prefix = prefix
        self._suffix = suffix
        self._keys = list(keys) if keys is not None else None

    def option_key(self, field_id: str) -> str:
        return f"{self._prefix}{field_id}{self._suffix}"

    def _field_id(self, option_key: str) -> str | None:
        if not option_key.startswith(self._prefix):
            return None
        rest = option_key[len(self._prefix) :]
        if self._suffix:
            if not rest.endswith(self._suffix):
                return None
            rest = rest[: -len(self._suffix)]
        return rest or None

    def load(self, identity: str) -> dict[str, Any]:
        stmt = select(options.c.key, options.c.value)
        if self._keys is not None:
            stmt = stmt.where(options.c.key.in_([self.option_key(k) for k in self._keys]))
        elif self._prefix:
            stmt = stmt.where(options.c.key.startswith(self._prefix, autoescape=True))
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError as exc:
            logger.error("Option load failed for %s: %s", identity, exc)
            msg = f"Could not load options for {identity!r}"
            raise PersistenceError(msg) from exc

        loaded: dict[str, Any] = {}
        for row in rows:
            field_id = self._field_id(row.key)
            if field_id is None:
                continue
            try:
                loaded[field_id] = json.loads(row.value)
            except ValueError as exc:
                logger.error("Corrupt option %s for %s: %s", row.key, identity, exc)
                msg = f"Could not decode option {row.key!r} for {identity!r}"
                raise PersistenceError(msg) from exc
        return loaded

    def save(self, identity: str, payload: dict[str, Any]) -> bool:
        modified = now_iso()
        try:
            with self._engine.begin() as conn:
                for field_id, value in payload.items():
                    stmt = sqlite_insert(options).values(
                        key=self.option_key(field_id),
                        value=json.dumps(value, default=str),
                        modified=modified,
                    )
                    conn.execute(
                        stmt.on_conflict_do_update(
                            index_elements=[options.c.key],
                            set_={"value": stmt.excluded.value, "modified": modified},
                        )
                    )
        except SQLAlchemyError as exc:
            logger.error("Option save failed for %s: %s", identity, exc)
            msg = f"Could not save options for {identity!r}"
            raise PersistenceError(msg) from exc
        logger.debug("Saved %d option(s) for %s", len(payload), identity)
        return True


class RecordStoreAdapter:
    """Structured-record backend over the ``form_records`` table."""

    def __init__(self, engine: Engine, *, record_id: str = "default") -> None:
        self._engine = engine
        self._record_id = record_id

    def _select(self, identity: str) -> Any:
        return select(form_records.c.payload).where(
            form_records.c.form_id == identity,
            form_records.c.record_id == self._record_id,
        )

    def load(self, identity: str) -> dict[str, Any]:
        try:
            with self._engine.connect() as conn:
                raw = conn.execute(self._select(identity)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Record load failed for %s/%s: %s", identity, self._record_id, exc)
            msg = f"Could not load record for {identity!r}"
            raise PersistenceError(msg) from exc
        return _decode_record(raw, identity)

    def save(self, identity: str, payload: dict[str, Any]) -> bool:
        """Merge *payload* over the stored record in one transaction."""
        modified = now_iso()
        try:
            with self._engine.begin() as conn:
                raw = conn.execute(self._select(identity)).scalar_one_or_none()
                merged = {**_decode_record(raw, identity), **payload}
                stmt = sqlite_insert(form_records).values(
                    form_id=identity,
                    record_id=self._record_id,
                    payload=json.dumps(merged, default=str),
                    modified=modified,
                )
                conn.execute(
                    stmt.on_conflict_do_update(
                        index_elements=[form_records.c.form_id, form_records.c.record_id],
                        set_={"payload": stmt.excluded.payload, "modified": modified},
                    )
                )
        except SQLAlchemyError as exc:
            logger.error("Record save failed for %s/%s: %s", identity, self._record_id, exc)
            msg = f"Could not save record for {identity!r}"
            raise PersistenceError(msg) from exc
        return True


def _decode_record(raw: str | None, identity: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        record = json.loads(raw)
    except ValueError as exc:
        msg = f"Could not decode stored record for {identity!r}"
        raise PersistenceError(msg) from exc
    if not isinstance(record, dict):
        msg = f"Stored record for {identity!r} is not an object"
        raise PersistenceError(msg)
    return record


class CallbackAdapter:
    """Delegates to host-supplied callables."""

    def __init__(
        self,
        save: Callable[[str, dict[str, Any]], Any],
        load: Callable[[str], dict[str, Any]] | None = None,
    ) -> None:
        self._save = save
        self._load = load

    def load(self, identity: str) -> dict[str, Any]:
        if self._load is None:
            return {}
        try:
            return dict(self._load(identity) or {})
        except Exception as exc:
            logger.error("Custom load failed for %s: %s", identity, exc)
            msg = f"Custom load failed for {identity!r}"
            raise PersistenceError(msg) from exc

    def save(self, identity: str, payload: dict[str, Any]) -> bool:
        try:
            result = self._save(identity, payload)
        except Exception as exc:
            logger.error("Custom save failed for %s: %s", identity, exc)
            msg = f"Custom save failed for {identity!r}"
            raise PersistenceError(msg) from exc
        # Callbacks that return nothing are treated as having succeeded.
        return result is None or bool(result)


def build_adapter(
    spec: PersistenceSpec,
    engine: Engine | None = None,
    *,
    keys: Iterable[str] | None = None,
    namespace: str = "",
) -> PersistenceAdapter:
    """Construct the adapter a :class:`PersistenceSpec` describes.

    *namespace* is prepended to every options key (the store-wide prefix
    from settings); *keys* limits option loads to the form's own fields.

    Raises:
        PersistenceError: If *spec* needs an engine or callbacks that were not given.
    """
    match spec.backend:
        case PersistenceBackend.CUSTOM:
            if spec.save is None:
                msg = "Custom persistence requires a save callable"
                raise PersistenceError(msg)
            return CallbackAdapter(spec.save, spec.load)
        case PersistenceBackend.RECORDS:
            if engine is None:
                msg = "Record persistence requires a database engine"
                raise PersistenceError(msg)
            return RecordStoreAdapter(engine, record_id=spec.record_id)
        case _:
            if engine is None:
                msg = "Option persistence requires a database engine"
                raise PersistenceError(msg)
            return OptionStoreAdapter(
                engine, prefix=namespace + spec.prefix, suffix=spec.suffix, keys=keys
            )
