"""Synchronous lifecycle event dispatch.

Per-form callbacks registered through the builder run first, in
registration order, then the matching pluggy hook fans out to plugins.

INVARIANT: A per-form callback failure aborts the phase as HookError.
Plugin observers are global; their failures are warnings, never errors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, TypeVar

from formwright.errors import HookError, ValidationHalt

if TYPE_CHECKING:
    from formwright.plugins.events import FormEvent
    from formwright.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="FormEvent")


def _handler_name(callback: Callable[..., Any]) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Dispatch typed :class:`FormEvent` objects to callbacks and plugins.

    Parameters:
        plugin_manager: Optional loaded PluginManager for global observers.
    """

    def __init__(self, plugin_manager: PluginManager | None = None) -> None:
        self._pm = plugin_manager

    @property
    def plugin_manager(self) -> PluginManager | None:
        return self._pm

    def emit(self, event: E, callbacks: Iterable[Callable[..., Any]] = ()) -> E:
        """Run *callbacks* then plugin hooks for *event*; return the (mutated) event.

        Raises:
            ValidationHalt: Propagated untouched from a before-validate callback.
            HookError: Any other exception raised by a per-form callback.
        """
        for callback in callbacks:
            try:
                event.apply_return(callback(event))
            except ValidationHalt:
                raise
            except Exception as exc:
                handler = _handler_name(callback)
                logger.warning("Hook %s failed during %s: %s", handler, event.name, exc)
                raise HookError(str(event.name), handler, exc) from exc

        self._notify_plugins(event)
        return event

    def _notify_plugins(self, event: FormEvent) -> None:
        if self._pm is None:
            return
        hook_fn = getattr(self._pm.hook, str(event.name), None)
        if hook_fn is None:
            return
        try:
            hook_fn(**event.payload_for_plugins())
        except Exception as exc:
            logger.warning("Plugin hook %s failed: %s", event.name, exc, exc_info=True)
