"""Field descriptors and the field-type registry.

A :class:`FieldDescriptor` is the declarative metadata for one form
field. Descriptors are mutable while the builder holds them open and are
frozen by the form once its lifecycle starts.

The :class:`FieldRegistry` maps a type name to a factory producing a
descriptor. Built-in HTML-ish types are pre-registered on every registry
instance; plugins and callers extend it at runtime with
:meth:`FieldRegistry.register`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from pydantic import BaseModel, Field, PrivateAttr

from formwright.domain.conditions import VisibilityRule
from formwright.errors import ConfigurationFrozenError, UnknownFieldTypeError

logger = logging.getLogger(__name__)

Scalar = str | int | float | bool | None


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


class ValidationRule(BaseModel):
    """One ``(rule_name, rule_args)`` pair, evaluated in declaration order."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    name: str
    args: Any = None
    message: str | None = None


class FieldDescriptor(BaseModel):
    """Declarative metadata for one form field.

    Attributes:
        id: Unique (per form) field identifier; also the persistence key.
        type: Registered field type name (``text``, ``email``, ...).
        label: Human label handed to the renderer.
        default: Value used when the persistence backend has nothing stored.
        required: Declared requiredness, before conditional evaluation.
        rules: Ordered validation rules.
        visibility: Optional conditional rule gating visibility/requiredness.
        options: Choice map for select/radio-like types.
        attributes: Scalar display attributes passed through to the renderer.
    """

    model_config = {"validate_assignment": True}

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    label: str = ""
    default: Any = None
    required: bool = False
    rules: list[ValidationRule] = Field(default_factory=list)
    visibility: VisibilityRule | None = None
    options: dict[str, str] = Field(default_factory=dict)
    description: str | None = None
    placeholder: str | None = None
    attributes: dict[str, Scalar] = Field(default_factory=dict)

    _frozen: bool = PrivateAttr(default=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and self._frozen:
            msg = f"Field {self.id!r} is frozen; cannot set {name!r}"
            raise ConfigurationFrozenError(msg)
        super().__setattr__(name, value)

    def freeze(self) -> None:
        """Reject further attribute assignment on this descriptor."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def add_rule(self, name: str, args: Any = None, message: str | None = None) -> None:
        """Append a validation rule (list assignment keeps the freeze check)."""
        self.rules = [*self.rules, ValidationRule(name=name, args=args, message=message)]

    def set_attribute(self, key: str, value: Scalar) -> None:
        self.attributes = {**self.attributes, key: value}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

FieldFactory: TypeAlias = Callable[..., FieldDescriptor]


def _simple_factory(type_name: str, **preset: Any) -> FieldFactory:
    """Factory producing a plain descriptor of *type_name* with *preset* values."""

    def factory(field_id: str, label: str = "", **options: Any) -> FieldDescriptor:
        return FieldDescriptor(id=field_id, type=type_name, label=label, **{**preset, **options})

    factory.__name__ = f"create_{type_name.replace('-', '_')}"
    return factory


# Types whose submitted value is a single boolean.
BOOLEAN_TYPES: frozenset[str] = frozenset({"checkbox", "switch", "toggle"})

# Types that carry a fixed option map.
CHOICE_TYPES: frozenset[str] = frozenset({"select", "radio"})

# Types that are displayed but never submitted.
DISPLAY_ONLY_TYPES: frozenset[str] = frozenset({"info"})

BUILTIN_TYPES: dict[str, dict[str, Any]] = {
    "text": {},
    "email": {},
    "password": {},
    "url": {},
    "number": {},
    "tel": {},
    "search": {},
    "color": {},
    "range": {},
    "textarea": {},
    "wysiwyg": {},
    "select": {},
    "radio": {},
    "checkbox": {"default": False},
    "switch": {"default": False},
    "toggle": {"default": False},
    "file": {},
    "date": {},
    "time": {},
    "datetime-local": {},
    "month": {},
    "week": {},
    "hidden": {},
    "info": {},
    "encrypted": {},
}


class FieldRegistry:
    """Type name -> descriptor factory mapping, extensible at runtime."""

    def __init__(self, *, include_builtins: bool = True) -> None:
        self._factories: dict[str, FieldFactory] = {}
        if include_builtins:
            for type_name, preset in BUILTIN_TYPES.items():
                self._factories[type_name] = _simple_factory(type_name, **preset)

    def register(self, type_name: str, factory: FieldFactory) -> None:
        """Register (or replace) the factory for *type_name*."""
        if not type_name:
            msg = "Field type name must be non-empty"
            raise ValueError(msg)
        if not callable(factory):
            msg = f"Factory for {type_name!r} must be callable"
            raise TypeError(msg)
        if type_name in self._factories:
            logger.debug("Replacing field type factory: %s", type_name)
        self._factories[type_name] = factory

    def is_registered(self, type_name: str) -> bool:
        return type_name in self._factories

    def types(self) -> list[str]:
        return list(self._factories)

    def create(
        self,
        type_name: str,
        field_id: str,
        label: str = "",
        **options: Any,
    ) -> FieldDescriptor:
        """Build a descriptor for *field_id* using the *type_name* factory.

        Raises:
            UnknownFieldTypeError: If *type_name* was never registered.
        """
        factory = self._factories.get(type_name)
        if factory is None:
            raise UnknownFieldTypeError(type_name)
        descriptor = factory(field_id, label, **options)
        if descriptor.type != type_name:
            descriptor.type = type_name
        return descriptor
