"""Tests for field descriptors and the field-type registry."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import ValidationError as PydanticValidationError

from formwright.domain.fields import (
    BOOLEAN_TYPES,
    BUILTIN_TYPES,
    FieldDescriptor,
    FieldRegistry,
)
from formwright.errors import ConfigurationFrozenError, UnknownFieldTypeError


class TestFieldDescriptor:
    def test_defaults(self) -> None:
        d = FieldDescriptor(id="name", type="text")
        assert d.required is False
        assert d.rules == []
        assert d.visibility is None

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            FieldDescriptor(id="", type="text")

    def test_add_rule_keeps_order(self) -> None:
        d = FieldDescriptor(id="name", type="text")
        d.add_rule("min_length", 2)
        d.add_rule("max_length", 5, "Too long")
        assert [r.name for r in d.rules] == ["min_length", "max_length"]
        assert d.rules[1].message == "Too long"

    def test_frozen_descriptor_rejects_assignment(self) -> None:
        d = FieldDescriptor(id="name", type="text")
        d.freeze()
        assert d.is_frozen
        with pytest.raises(ConfigurationFrozenError, match="frozen"):
            d.label = "Name"
        with pytest.raises(ConfigurationFrozenError):
            d.add_rule("min_length", 2)

    def test_attributes_are_scalars(self) -> None:
        d = FieldDescriptor(id="name", type="text")
        d.set_attribute("rows", 4)
        assert d.attributes == {"rows": 4}
        with pytest.raises(PydanticValidationError):
            d.attributes = {"bad": ["list"]}


class TestFieldRegistry:
    def test_builtins_registered(self) -> None:
        registry = FieldRegistry()
        for type_name in BUILTIN_TYPES:
            assert registry.is_registered(type_name)

    def test_without_builtins(self) -> None:
        assert FieldRegistry(include_builtins=False).types() == []

    def test_create_builtin(self) -> None:
        d = FieldRegistry().create("email", "from_email", "From")
        assert d.type == "email"
        assert d.label == "From"

    def test_boolean_builtins_default_false(self) -> None:
        registry = FieldRegistry()
        for type_name in BOOLEAN_TYPES:
            assert registry.create(type_name, "flag").default is False

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(UnknownFieldTypeError) as exc_info:
            FieldRegistry().create("colour-wheel", "c")
        assert exc_info.value.type_name == "colour-wheel"

    def test_register_custom_factory(self) -> None:
        def create_rating(field_id: str, label: str = "", **options: Any) -> FieldDescriptor:
            return FieldDescriptor(id=field_id, type="rating", label=label, default=3, **options)

        registry = FieldRegistry()
        registry.register("rating", create_rating)
        d = registry.create("rating", "stars", "Stars")
        assert d.default == 3
        assert "rating" in registry.types()

    def test_factory_type_is_normalized(self) -> None:
        registry = FieldRegistry()
        registry.register("slug", lambda fid, label="", **kw: FieldDescriptor(id=fid, type="text"))
        assert registry.create("slug", "s").type == "slug"

    def test_register_rejects_bad_input(self) -> None:
        registry = FieldRegistry()
        with pytest.raises(ValueError):
            registry.register("", lambda *a, **k: None)
        with pytest.raises(TypeError):
            registry.register("thing", "not callable")  # type: ignore[arg-type]
