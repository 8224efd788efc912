"""Command: build a form definition and report what it declares."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from formwright.commands._base import FormwrightCommand

if TYPE_CHECKING:
    from formwright.commands._context import AppContext


@click.command(
    cls=FormwrightCommand,
    examples="""\
  formwright check forms/settings.yaml
  formwright --json check forms/settings.yaml""",
)
@click.argument("definition", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def check(app: AppContext, definition: Path) -> None:
    """Build DEFINITION and report fields, conditions and cycle errors."""
    app.emit(app.definitions().check(definition))
