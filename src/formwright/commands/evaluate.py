"""Command: evaluate conditional visibility for candidate data."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from formwright.commands._base import FormwrightCommand, parse_json_data

if TYPE_CHECKING:
    from formwright.commands._context import AppContext


@click.command(
    cls=FormwrightCommand,
    examples="""\
  formwright evaluate forms/settings.yaml --data '{"provider": "rest"}'
  formwright --json evaluate forms/settings.yaml --data '{"enabled": "on"}'""",
)
@click.argument("definition", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--data",
    "data",
    default=None,
    callback=parse_json_data,
    help="Candidate form data as a JSON object.",
)
@click.option("--submitter", default=None, help="Submitter identity for the verdict cache.")
@click.pass_obj
def evaluate(
    app: AppContext,
    definition: Path,
    data: dict[str, Any],
    submitter: str | None,
) -> None:
    """Print per-field visibility and requiredness for DEFINITION."""
    from formwright.infrastructure.repository import InMemoryFormConfigRepository
    from formwright.services.conditional import ConditionalService

    svc = app.definitions()
    result = svc.check(definition)
    if not result.ok:
        app.emit(result)
        return

    config = svc.load(definition)
    repository = InMemoryFormConfigRepository()
    repository.put(config.form_id, config)
    app.emit(ConditionalService(repository).evaluate(config.form_id, data, submitter=submitter))
