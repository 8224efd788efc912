"""Submission lifecycle states and transition maps.

One Form instance walks these states once per request:

- Machine lifecycle: load -> submit -> validate -> persist, driven by the
  Form orchestrator and never set by callers directly.
- Rendering: allowed from any state; ``rendered`` closes the pass, so
  submission handling must happen before the renderer is built.

Transitions only move forward. :func:`is_valid_transition` rejects both
backward moves and re-entry into the current state; the Form makes a
repeated ``load()``, ``handle()`` or ``render()`` a no-op by checking its
state before it transitions.
"""

from __future__ import annotations

from enum import StrEnum

# --- States ---


class LifecycleState(StrEnum):
    """Lifecycle state of a single Form instance."""

    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    SUBMITTED = "submitted"
    VALIDATED_OK = "validated_ok"
    VALIDATED_FAILED = "validated_failed"
    PERSISTED_OK = "persisted_ok"
    PERSISTED_FAILED = "persisted_failed"
    RENDERED = "rendered"


class LifecycleEvent(StrEnum):
    """Hook points fired by the lifecycle, in firing order."""

    BEFORE_VALIDATE = "before_validate"
    AFTER_VALIDATE = "after_validate"
    BEFORE_SAVE = "before_save"
    AFTER_SAVE = "after_save"
    ON_SUCCESS = "on_success"
    ON_ERROR = "on_error"


# --- Transition map ---

FORM_TRANSITIONS: dict[str, list[str]] = {
    "uninitialized": ["loaded", "rendered"],
    "loaded": ["submitted", "rendered"],
    "submitted": ["validated_ok", "validated_failed", "rendered"],
    "validated_ok": ["persisted_ok", "persisted_failed", "rendered"],
    "validated_failed": ["rendered"],
    "persisted_ok": ["rendered"],
    "persisted_failed": ["rendered"],
    "rendered": [],
}

TERMINAL_STATES: frozenset[str] = frozenset(
    {
        LifecycleState.VALIDATED_FAILED,
        LifecycleState.PERSISTED_OK,
        LifecycleState.PERSISTED_FAILED,
    }
)

FAILED_STATES: frozenset[str] = frozenset(
    {LifecycleState.VALIDATED_FAILED, LifecycleState.PERSISTED_FAILED}
)


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = FORM_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed
