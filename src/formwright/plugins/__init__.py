"""Extension layer — typed lifecycle events and the plugin system via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints.
INVARIANT: Plugin failures are warnings, never errors.
"""

from formwright.plugins.event_bus import EventBus
from formwright.plugins.hookspecs import hookimpl
from formwright.plugins.manager import PluginManager

__all__ = ["EventBus", "PluginManager", "hookimpl"]
