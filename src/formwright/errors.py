"""Exception taxonomy for formwright.

Builder and construction errors are programmer errors: they propagate
immediately. Validation problems are collected as :class:`ValidationError`
values and never raised by the validator. Persistence and hook failures
are raised inside the lifecycle, caught at the phase boundary, and turned
into a failed lifecycle state plus a ``ServiceResult(ok=False)``.
"""

from __future__ import annotations

from collections.abc import Iterable


class FormwrightError(Exception):
    """Root of every error raised by formwright."""


# --- Builder / construction ---


class BuilderMisuseError(FormwrightError):
    """The fluent builder was driven in an invalid order or with invalid input."""


class NoActiveFieldError(BuilderMisuseError):
    """A field-level call was made while no field is open."""

    def __init__(self, method: str) -> None:
        super().__init__(f"'{method}' requires an open field; call add_field() first")
        self.method = method


class UnknownFieldTypeError(BuilderMisuseError):
    """The requested field type was never registered."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unknown field type: {type_name!r}")
        self.type_name = type_name


class DuplicateFieldError(BuilderMisuseError):
    """A field id was added twice to the same form."""

    def __init__(self, field_id: str) -> None:
        super().__init__(f"Field {field_id!r} is already defined on this form")
        self.field_id = field_id


class ConfigurationFrozenError(BuilderMisuseError):
    """Structural mutation was attempted after the lifecycle started."""


# --- Conditional logic ---


class ConditionCycleError(FormwrightError):
    """Field visibility rules reference each other in a cycle."""

    def __init__(self, field_ids: Iterable[str]) -> None:
        self.field_ids = list(field_ids)
        super().__init__("Conditional cycle between fields: " + " -> ".join(self.field_ids))


# --- Repeater ---


class RepeaterError(FormwrightError):
    """Base class for repeater choice-set problems."""


class EmptyChoiceSetError(RepeaterError):
    """A repeater was declared without any choices."""


class InvalidChoiceError(RepeaterError):
    """A choice key or label is not a scalar, or a submitted key is unknown."""


# --- Lifecycle ---


class ValidationError(FormwrightError):
    """A single field failed one of its validation rules.

    Instances are collected into the form's error map; the validator never
    raises them.
    """

    def __init__(self, field_id: str, code: str, message: str) -> None:
        super().__init__(message)
        self.field_id = field_id
        self.code = code
        self.message = message


class ValidationHalt(FormwrightError):
    """Raised by a before-validate handler to stop validation outright."""


class PersistenceError(FormwrightError):
    """The persistence adapter failed to load or save form data."""


class HookError(FormwrightError):
    """A lifecycle callback raised an exception."""

    def __init__(self, event: str, handler: str, cause: BaseException) -> None:
        super().__init__(f"Hook {handler!r} failed during {event}: {cause}")
        self.event = event
        self.handler = handler
        self.cause = cause
