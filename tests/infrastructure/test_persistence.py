"""Tests for the persistence adapters and build_adapter()."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.engine import Engine

from formwright.domain.configuration import PersistenceBackend, PersistenceSpec
from formwright.errors import PersistenceError
from formwright.infrastructure.database.schema import form_records, options
from formwright.infrastructure.persistence import (
    CallbackAdapter,
    OptionStoreAdapter,
    PersistenceAdapter,
    RecordStoreAdapter,
    build_adapter,
)


class TestOptionStoreAdapter:
    def test_keys_use_prefix_and_suffix(self, memory_engine: Engine) -> None:
        adapter = OptionStoreAdapter(memory_engine, prefix="acme_", suffix="_opt")
        adapter.save("settings", {"api_key": "secret123"})

        with memory_engine.connect() as conn:
            keys = conn.execute(select(options.c.key)).scalars().all()
        assert keys == ["acme_api_key_opt"]
        assert adapter.load("settings") == {"api_key": "secret123"}

    def test_values_stored_as_json(self, memory_engine: Engine) -> None:
        adapter = OptionStoreAdapter(memory_engine)
        adapter.save("settings", {"post_types": ["post", "page"], "count": 3, "on": True})
        assert adapter.load("settings") == {
            "post_types": ["post", "page"],
            "count": 3,
            "on": True,
        }

    def test_save_overwrites(self, memory_engine: Engine) -> None:
        adapter = OptionStoreAdapter(memory_engine)
        adapter.save("settings", {"a": "1"})
        adapter.save("settings", {"a": "2"})
        assert adapter.load("settings") == {"a": "2"}

    def test_prefix_scopes_loads(self, memory_engine: Engine) -> None:
        OptionStoreAdapter(memory_engine, prefix="one_").save("one", {"a": 1})
        OptionStoreAdapter(memory_engine, prefix="two_").save("two", {"a": 2})
        assert OptionStoreAdapter(memory_engine, prefix="one_").load("one") == {"a": 1}

    def test_keys_filter(self, memory_engine: Engine) -> None:
        OptionStoreAdapter(memory_engine).save("s", {"a": 1, "b": 2, "c": 3})
        assert OptionStoreAdapter(memory_engine, keys=["a", "c"]).load("s") == {"a": 1, "c": 3}

    def test_suffix_mismatch_skipped(self, memory_engine: Engine) -> None:
        OptionStoreAdapter(memory_engine, prefix="p_").save("s", {"a": 1})
        adapter = OptionStoreAdapter(memory_engine, prefix="p_", suffix="_x")
        assert adapter.load("s") == {}

    def test_option_key(self, memory_engine: Engine) -> None:
        adapter = OptionStoreAdapter(memory_engine, prefix="x_", suffix="_y")
        assert adapter.option_key("field") == "x_field_y"

    def test_missing_table_is_persistence_error(self) -> None:
        from formwright.infrastructure.database.engine import create_db_engine

        adapter = OptionStoreAdapter(create_db_engine())
        with pytest.raises(PersistenceError):
            adapter.save("settings", {"a": 1})
        with pytest.raises(PersistenceError):
            adapter.load("settings")

    def test_corrupt_value_is_persistence_error(self, memory_engine: Engine) -> None:
        with memory_engine.begin() as conn:
            conn.execute(options.insert().values(key="api_key", value="{not json", modified=""))
        with pytest.raises(PersistenceError, match="api_key"):
            OptionStoreAdapter(memory_engine).load("settings")


class TestRecordStoreAdapter:
    def test_empty_record(self, memory_engine: Engine) -> None:
        assert RecordStoreAdapter(memory_engine).load("settings") == {}

    def test_save_merges(self, memory_engine: Engine) -> None:
        adapter = RecordStoreAdapter(memory_engine)
        adapter.save("settings", {"a": 1, "b": 2})
        adapter.save("settings", {"b": 3})
        assert adapter.load("settings") == {"a": 1, "b": 3}

    def test_records_are_isolated(self, memory_engine: Engine) -> None:
        RecordStoreAdapter(memory_engine, record_id="alice").save("profile", {"n": "A"})
        RecordStoreAdapter(memory_engine, record_id="bob").save("profile", {"n": "B"})
        assert RecordStoreAdapter(memory_engine, record_id="alice").load("profile") == {"n": "A"}
        assert RecordStoreAdapter(memory_engine).load("other") == {}

    @pytest.mark.parametrize("payload", ["{not json", "[1, 2]"])
    def test_unreadable_record_is_persistence_error(
        self, memory_engine: Engine, payload: str
    ) -> None:
        with memory_engine.begin() as conn:
            conn.execute(
                form_records.insert().values(
                    form_id="settings", record_id="default", payload=payload, modified=""
                )
            )
        adapter = RecordStoreAdapter(memory_engine)
        with pytest.raises(PersistenceError):
            adapter.load("settings")
        with pytest.raises(PersistenceError):
            adapter.save("settings", {"a": 1})


class TestCallbackAdapter:
    def test_none_return_is_success(self) -> None:
        assert CallbackAdapter(lambda identity, payload: None).save("s", {}) is True

    def test_false_return_is_failure(self) -> None:
        assert CallbackAdapter(lambda identity, payload: False).save("s", {}) is False

    def test_load_without_callable(self) -> None:
        assert CallbackAdapter(lambda identity, payload: True).load("s") == {}

    def test_load_copies(self) -> None:
        stored = {"a": 1}
        loaded = CallbackAdapter(lambda i, p: True, lambda identity: stored).load("s")
        assert loaded == stored
        assert loaded is not stored

    def test_save_exception_wrapped(self) -> None:
        def explode(identity: str, payload: dict[str, Any]) -> bool:
            raise OSError("disk full")

        with pytest.raises(PersistenceError) as exc_info:
            CallbackAdapter(explode).save("s", {})
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_load_exception_wrapped(self) -> None:
        def explode(identity: str) -> dict[str, Any]:
            raise KeyError(identity)

        with pytest.raises(PersistenceError):
            CallbackAdapter(lambda i, p: True, explode).load("s")


class TestBuildAdapter:
    def test_options_with_namespace(self, memory_engine: Engine) -> None:
        adapter = build_adapter(PersistenceSpec(prefix="acme_"), memory_engine, namespace="site_")
        assert isinstance(adapter, OptionStoreAdapter)
        assert adapter.option_key("a") == "site_acme_a"

    def test_records(self, memory_engine: Engine) -> None:
        spec = PersistenceSpec(backend=PersistenceBackend.RECORDS, record_id="r1")
        adapter = build_adapter(spec, memory_engine)
        assert isinstance(adapter, RecordStoreAdapter)
        assert isinstance(adapter, PersistenceAdapter)

    def test_custom(self) -> None:
        spec = PersistenceSpec(backend=PersistenceBackend.CUSTOM, save=lambda i, p: True)
        assert isinstance(build_adapter(spec), CallbackAdapter)

    def test_custom_without_save(self) -> None:
        with pytest.raises(PersistenceError, match="save callable"):
            build_adapter(PersistenceSpec(backend=PersistenceBackend.CUSTOM))

    @pytest.mark.parametrize("backend", [PersistenceBackend.OPTIONS, PersistenceBackend.RECORDS])
    def test_engine_required(self, backend: PersistenceBackend) -> None:
        with pytest.raises(PersistenceError, match="database engine"):
            build_adapter(PersistenceSpec(backend=backend))
