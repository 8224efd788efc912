"""Repeater — one logical field rendered as N choices.

A repeater reconciles a fixed choice catalog against whatever selection
was persisted earlier:

- **Render set**: every catalog key mapped to a checked flag. Persisted
  keys that are no longer in the catalog ("stale" keys) are dropped and
  therefore never re-persisted: stale selections heal themselves on the
  next save.
- **Save set**: submitted keys intersected with the catalog. Keys outside
  the catalog are rejected with :class:`InvalidChoiceError`, not ignored.

``switch`` and ``checkbox`` repeaters expand into one boolean field per
choice, named ``{base}___{key}``. ``radio`` and ``select`` produce a
single field carrying the catalog as options and hold one key at most.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from formwright.domain.conditions import is_truthy
from formwright.errors import EmptyChoiceSetError, InvalidChoiceError

REPEATER_SEPARATOR = "___"


class RepeaterKind(StrEnum):
    """How the repeater is presented and how many keys it holds."""

    SWITCH = "switch"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"


SINGLE_CHOICE_KINDS: frozenset[str] = frozenset({RepeaterKind.RADIO, RepeaterKind.SELECT})


def _coerce_key(key: Any) -> str:
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        msg = f"Choice key must be a string or integer, got {type(key).__name__}"
        raise InvalidChoiceError(msg)
    text = str(key)
    if not text:
        msg = "Choice key must be non-empty"
        raise InvalidChoiceError(msg)
    return text


def _coerce_label(key: str, label: Any) -> str:
    if isinstance(label, bool) or not isinstance(label, (str, int, float)):
        msg = f"Choice label for key {key!r} must be a string or number"
        raise InvalidChoiceError(msg)
    return str(label)


def normalize_choices(choices: Mapping[Any, Any]) -> dict[str, str]:
    """Validate a choice catalog and coerce keys/labels to strings."""
    if not isinstance(choices, Mapping):
        msg = f"Choices must be a mapping, got {type(choices).__name__}"
        raise InvalidChoiceError(msg)
    if not choices:
        msg = "Repeater choice set cannot be empty"
        raise EmptyChoiceSetError(msg)
    normalized: dict[str, str] = {}
    for key, label in choices.items():
        text = _coerce_key(key)
        normalized[text] = _coerce_label(text, label)
    return normalized


def normalize_persisted(raw: Any) -> set[str] | None:
    """Normalize a persisted selection to a key set.

    ``None`` and empty values mean "nothing persisted yet" and return
    ``None`` so the default key applies. A bare string is a one-key set.
    """
    if raw is None:
        return None
    if isinstance(raw, (str, int)) and not isinstance(raw, bool):
        return {str(raw)} if str(raw) else None
    if isinstance(raw, Mapping):
        keys = {str(k) for k, v in raw.items() if is_truthy(v)}
        return keys or None
    if isinstance(raw, Iterable):
        keys = {str(item) for item in raw if item is not None and str(item)}
        return keys or None
    return None


class RepeaterSpec(BaseModel):
    """Declared repeater: base id, catalog, persisted selection, default."""

    model_config = {"frozen": True}

    base_field_id: str = Field(min_length=1)
    choices: dict[str, str]
    persisted_keys: frozenset[str] | None = None
    default_key: str | None = None
    rendered_as: RepeaterKind = RepeaterKind.CHECKBOX

    @field_validator("choices", mode="before")
    @classmethod
    def _validate_choices(cls, value: Any) -> dict[str, str]:
        return normalize_choices(value)

    @field_validator("persisted_keys", mode="before")
    @classmethod
    def _validate_persisted(cls, value: Any) -> frozenset[str] | None:
        keys = normalize_persisted(value)
        return frozenset(keys) if keys is not None else None

    @field_validator("default_key", mode="before")
    @classmethod
    def _validate_default(cls, value: Any) -> str | None:
        return None if value is None else _coerce_key(value)

    @property
    def single_choice(self) -> bool:
        return self.rendered_as in SINGLE_CHOICE_KINDS

    def field_name(self, key: str) -> str:
        """Expanded per-choice field id for switch/checkbox repeaters."""
        return f"{self.base_field_id}{REPEATER_SEPARATOR}{key}"


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def render_set(spec: RepeaterSpec) -> dict[str, bool]:
    """Map every catalog key to whether it renders checked.

    Persisted selection wins when present; otherwise only ``default_key``
    is checked. Single-choice repeaters check at most the first matching
    key in catalog order.
    """
    persisted = spec.persisted_keys
    result: dict[str, bool] = {}
    for key in spec.choices:
        if persisted is not None:
            checked = key in persisted
        else:
            checked = spec.default_key is not None and key == spec.default_key
        result[key] = checked

    if spec.single_choice:
        first = next((k for k, checked in result.items() if checked), None)
        result = {k: k == first for k in result}
    return result


def selected_key(spec: RepeaterSpec) -> str | None:
    """The key a radio/select repeater starts on, if any."""
    return next((k for k, checked in render_set(spec).items() if checked), None)


def stale_keys(spec: RepeaterSpec) -> set[str]:
    """Persisted keys that are no longer part of the catalog."""
    if spec.persisted_keys is None:
        return set()
    return set(spec.persisted_keys) - set(spec.choices)


def save_set(spec: RepeaterSpec, submitted: Any) -> list[str] | str | None:
    """Compute the payload to persist for a submission.

    Returns catalog-ordered keys for multi-choice repeaters, or one key
    (or ``None``) for radio/select.

    Raises:
        InvalidChoiceError: If a submitted key is not in the catalog, or a
            single-choice repeater received more than one key.
    """
    keys = normalize_persisted(submitted) or set()
    foreign = keys - set(spec.choices)
    if foreign:
        msg = f"Unknown choice(s) for {spec.base_field_id!r}: {', '.join(sorted(foreign))}"
        raise InvalidChoiceError(msg)

    ordered = [key for key in spec.choices if key in keys]
    if spec.single_choice:
        if len(ordered) > 1:
            msg = f"{spec.base_field_id!r} accepts a single choice, got {len(ordered)}"
            raise InvalidChoiceError(msg)
        return ordered[0] if ordered else None
    return ordered


def collapse_submission(spec: RepeaterSpec, data: Mapping[str, Any]) -> Any:
    """Read a repeater's submitted value out of flat form data.

    Multi-choice repeaters are submitted as ``{base}___{key}`` booleans;
    single-choice repeaters as ``{base}``.
    """
    if spec.single_choice:
        return data.get(spec.base_field_id)
    prefix = spec.field_name("")
    # Foreign keys are kept so save_set() can reject forged submissions.
    return [
        field_id[len(prefix) :]
        for field_id, value in data.items()
        if field_id.startswith(prefix) and is_truthy(value)
    ]


def expand_loaded(spec: RepeaterSpec) -> dict[str, Any]:
    """Flat field values for a loaded repeater, keyed by expanded field id."""
    if spec.single_choice:
        return {spec.base_field_id: selected_key(spec)}
    return {spec.field_name(key): checked for key, checked in render_set(spec).items()}


def split_field_name(field_id: str) -> tuple[str, str] | None:
    """Split ``base___key`` into ``(base, key)``; None for plain ids."""
    if REPEATER_SEPARATOR not in field_id:
        return None
    base, key = field_id.split(REPEATER_SEPARATOR, 1)
    return base, key
