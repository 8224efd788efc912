"""Pluggy hook specifications for formwright lifecycle events and setup extensions.

Six lifecycle events mirror the per-form callbacks and are dispatched
synchronously after them. One setup-time hook lets plugins register
custom field types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from formwright.domain.fields import FieldFactory
    from formwright.plugins.events import (
        AfterSave,
        AfterValidate,
        BeforeSave,
        BeforeValidate,
        OnError,
        OnSuccess,
    )

hookspec = pluggy.HookspecMarker("formwright")
hookimpl = pluggy.HookimplMarker("formwright")


class FormwrightHookSpec:
    """Hook specifications for the formwright plugin system."""

    @hookspec
    def before_validate(self, form_id: str, event: BeforeValidate) -> None:
        """Called before a submission is validated."""

    @hookspec
    def after_validate(self, form_id: str, event: AfterValidate) -> None:
        """Called after validation, with the collected errors."""

    @hookspec
    def before_save(self, form_id: str, event: BeforeSave) -> None:
        """Called before the payload is handed to the persistence adapter."""

    @hookspec
    def after_save(self, form_id: str, event: AfterSave) -> None:
        """Called after the persistence adapter returns."""

    @hookspec
    def on_success(self, form_id: str, event: OnSuccess) -> None:
        """Called after a submission was persisted."""

    @hookspec
    def on_error(self, form_id: str, event: OnError) -> None:
        """Called after a submission failed in any phase."""

    @hookspec
    def register_field_types(self) -> dict[str, FieldFactory] | None:
        """Return type name -> descriptor factory mappings to extend the FieldRegistry."""
