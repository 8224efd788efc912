"""Typed lifecycle events handed to hook callbacks.

Each event is a mutable dataclass: handlers change the submission by
assigning to its attributes (``data`` on :class:`BeforeValidate`,
``payload`` on :class:`BeforeSave`). A handler may also return a mapping
from those two events to replace the value wholesale.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from formwright.domain.lifecycle import LifecycleEvent
from formwright.errors import ValidationError


@dataclass
class FormEvent:
    """Common shape: the form id and the sanitized candidate data."""

    name: ClassVar[LifecycleEvent]
    # Attribute a returned mapping replaces, if any.
    replaceable: ClassVar[str | None] = None

    form_id: str
    data: dict[str, Any] = field(default_factory=dict)

    def apply_return(self, value: Any) -> None:
        if value is None or self.replaceable is None:
            return
        if not isinstance(value, Mapping):
            msg = (
                f"{type(self).__name__} handlers may only return a mapping, "
                f"got {type(value).__name__}"
            )
            raise TypeError(msg)
        setattr(self, self.replaceable, dict(value))

    def payload_for_plugins(self) -> dict[str, Any]:
        """Keyword arguments for the matching pluggy hook."""
        return {"form_id": self.form_id, "event": self}


@dataclass
class BeforeValidate(FormEvent):
    """Raised before validation; handlers may edit ``data`` or raise ValidationHalt."""

    name: ClassVar[LifecycleEvent] = LifecycleEvent.BEFORE_VALIDATE
    replaceable: ClassVar[str | None] = "data"


@dataclass
class AfterValidate(FormEvent):
    name: ClassVar[LifecycleEvent] = LifecycleEvent.AFTER_VALIDATE

    errors: dict[str, ValidationError] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class BeforeSave(FormEvent):
    """Raised before persisting; ``payload`` is what the adapter will receive."""

    name: ClassVar[LifecycleEvent] = LifecycleEvent.BEFORE_SAVE
    replaceable: ClassVar[str | None] = "payload"

    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class AfterSave(FormEvent):
    name: ClassVar[LifecycleEvent] = LifecycleEvent.AFTER_SAVE

    result: bool = False


@dataclass
class OnSuccess(FormEvent):
    name: ClassVar[LifecycleEvent] = LifecycleEvent.ON_SUCCESS

    message: str = ""


@dataclass
class OnError(FormEvent):
    name: ClassVar[LifecycleEvent] = LifecycleEvent.ON_ERROR

    errors: dict[str, ValidationError] = field(default_factory=dict)
    message: str = ""
    cause: BaseException | None = None


EVENT_TYPES: dict[LifecycleEvent, type[FormEvent]] = {
    cls.name: cls
    for cls in (BeforeValidate, AfterValidate, BeforeSave, AfterSave, OnSuccess, OnError)
}
