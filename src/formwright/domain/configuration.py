"""Form configuration — the mutable aggregate the builder writes into.

A :class:`FormConfiguration` is created empty by ``create_form()``,
filled through builder calls, and frozen by the Form once its lifecycle
starts. After freezing, structural mutation (adding or removing fields,
changing persistence) raises :class:`ConfigurationFrozenError`.

Hook callbacks live on the configuration but are excluded from
serialization: a configuration recovered from the form repository is
good for conditional evaluation, not for running a submission.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from formwright.domain.fields import FieldDescriptor
from formwright.domain.lifecycle import LifecycleEvent
from formwright.domain.repeater import RepeaterSpec
from formwright.errors import ConfigurationFrozenError, DuplicateFieldError

logger = logging.getLogger(__name__)


class Layout(StrEnum):
    """How the renderer should lay fields out."""

    TABLE = "table"
    DIV = "div"
    CUSTOM = "custom"


class PersistenceBackend(StrEnum):
    """Which persistence adapter the form saves to."""

    OPTIONS = "options"
    RECORDS = "records"
    CUSTOM = "custom"


class PersistenceSpec(BaseModel):
    """Where form data is loaded from and saved to.

    ``options`` keys each field as ``prefix + field_id + suffix``.
    ``records`` stores one JSON payload per ``(form_id, record_id)``.
    ``custom`` delegates to caller-supplied load/save callables.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    backend: PersistenceBackend = PersistenceBackend.OPTIONS
    prefix: str = ""
    suffix: str = ""
    record_id: str = "default"
    load: Callable[[str], dict[str, Any]] | None = Field(default=None, exclude=True)
    save: Callable[[str, dict[str, Any]], bool] | None = Field(default=None, exclude=True)


class Messages(BaseModel):
    """Form-level messages shown after submission."""

    model_config = {"frozen": True}

    success: str = "Settings saved successfully!"
    error: str = "Failed to save settings."


class SubmitSpec(BaseModel):
    """Submit button label and visual kind."""

    model_config = {"frozen": True}

    label: str = "Save"
    kind: str = "primary"


Hook = Callable[..., Any]


class FormConfiguration(BaseModel):
    """Declarative description of a single form."""

    model_config = {"validate_assignment": True, "arbitrary_types_allowed": True}

    form_id: str = Field(min_length=1)
    method: str = "POST"
    description: str | None = None
    layout: Layout = Layout.TABLE
    fields: dict[str, FieldDescriptor] = Field(default_factory=dict)
    persistence: PersistenceSpec = Field(default_factory=PersistenceSpec)
    messages: Messages = Field(default_factory=Messages)
    submit: SubmitSpec = Field(default_factory=SubmitSpec)
    repeaters: dict[str, RepeaterSpec] = Field(default_factory=dict)
    hooks: dict[LifecycleEvent, list[Hook]] = Field(default_factory=dict, exclude=True)
    custom_renderer: Callable[..., Any] | None = Field(default=None, exclude=True)

    _frozen: bool = PrivateAttr(default=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and self._frozen:
            self._reject(f"set {name!r}")
        super().__setattr__(name, value)

    # ------------------------------------------------------------------
    # Freezing
    # ------------------------------------------------------------------

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Freeze the configuration and every field descriptor it holds."""
        if self._frozen:
            return
        self._frozen = True
        for descriptor in self.fields.values():
            descriptor.freeze()
        logger.debug("Configuration frozen: %s (%d fields)", self.form_id, len(self.fields))

    def _reject(self, action: str) -> None:
        msg = f"Form {self.form_id!r} is frozen; cannot {action}"
        logger.warning(msg)
        raise ConfigurationFrozenError(msg)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def add_field(self, descriptor: FieldDescriptor) -> FieldDescriptor:
        """Append *descriptor*; raises on duplicate ids."""
        if self._frozen:
            self._reject(f"add field {descriptor.id!r}")
        if descriptor.id in self.fields:
            raise DuplicateFieldError(descriptor.id)
        # In-place so descriptors stay shared by reference with their builders.
        self.fields[descriptor.id] = descriptor
        return descriptor

    def remove_field(self, field_id: str) -> None:
        if self._frozen:
            self._reject(f"remove field {field_id!r}")
        self.fields.pop(field_id, None)

    def get_field(self, field_id: str) -> FieldDescriptor | None:
        return self.fields.get(field_id)

    def field_ids(self) -> list[str]:
        return list(self.fields)

    def add_repeater(self, spec: RepeaterSpec) -> None:
        if self._frozen:
            self._reject(f"add repeater {spec.base_field_id!r}")
        self.repeaters[spec.base_field_id] = spec

    def repeater_for(self, field_id: str) -> RepeaterSpec | None:
        """Repeater owning *field_id* (base id or expanded choice id), if any."""
        if field_id in self.repeaters:
            return self.repeaters[field_id]
        descriptor = self.fields.get(field_id)
        if descriptor is None:
            return None
        base = descriptor.attributes.get("repeater")
        return self.repeaters.get(str(base)) if base else None

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def add_hook(self, event: LifecycleEvent | str, callback: Hook) -> None:
        """Append *callback* to the ordered handler list for *event*."""
        if self._frozen:
            self._reject(f"add hook for {event}")
        if not callable(callback):
            msg = f"Hook for {event} must be callable"
            raise TypeError(msg)
        key = LifecycleEvent(event)
        self.hooks.setdefault(key, []).append(callback)

    def get_hooks(self, event: LifecycleEvent | str) -> list[Hook]:
        return list(self.hooks.get(LifecycleEvent(event), []))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """JSON-safe dump for the form repository.

        Callable rule arguments (``custom`` rules) cannot be serialized and
        are replaced by ``None``.
        """
        doc = self.model_dump(mode="python")
        for field_doc in doc["fields"].values():
            for rule in field_doc["rules"]:
                if callable(rule["args"]):
                    rule["args"] = None
        return self.__class__.model_validate(doc).model_dump(mode="json")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> FormConfiguration:
        return cls.model_validate(doc)
