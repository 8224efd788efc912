"""Rich console and theme shared by the renderers.

Renderers print into an in-memory buffer and hand back a string, so the
CLI decides where it goes. Rich drops color codes on its own when the
buffer is not a terminal.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DEFAULT_WIDTH = 120

FORMWRIGHT_THEME = Theme(
    {
        "fw.ok": "bold green",
        "fw.error": "bold red",
        "fw.warning": "bold yellow",
        "fw.op": "bold cyan",
        "fw.key": "dim",
        "fw.id": "bold blue",
        "fw.hidden": "dim",
        "fw.required": "bold magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Buffer-backed console; a fixed *width* keeps test output stable."""
    return Console(
        file=StringIO(),
        theme=FORMWRIGHT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or DEFAULT_WIDTH,
    )


def get_output(console: Console) -> str:
    buffer = console.file
    if not isinstance(buffer, StringIO):
        msg = "console was not created by create_console()"
        raise TypeError(msg)
    return buffer.getvalue()
