"""Command: run a full submission against the configured store."""

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
  formwright submit forms/settings.yaml --data '{"api_key": "abc123"}'
  formwright --json submit forms/settings.yaml --data '{"post_types___page": "on"}'""",
)
@click.argument("definition", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--data",
    "data",
    default=None,
    callback=parse_json_data,
    help="Submitted form data as a JSON object.",
)
@click.option("--submitter", default=None, help="Submitter identity recorded on the request.")
@click.pass_obj
def submit(
    app: AppContext,
    definition: Path,
    data: dict[str, Any],
    submitter: str | None,
) -> None:
    """Validate and persist DATA through the form in DEFINITION."""
    from formwright.infrastructure.repository import SqlFormConfigRepository
    from formwright.plugins.event_bus import EventBus
    from formwright.services.form import Form
    from formwright.services.request import FormRequest

    svc = app.definitions()
    result = svc.check(definition)
    if not result.ok:
        app.emit(result)
        return

    config = svc.load(definition)
    form = Form(
        config,
        engine=app.engine,
        repository=SqlFormConfigRepository(app.engine),
        event_bus=EventBus(app.plugins),
        namespace=app.settings.storage.options_table_prefix,
    )
    request = FormRequest(
        method=config.method,
        form_id=config.form_id,
        payload=data,
        submitter=submitter,
    )
    outcome = form.handle(request)
    form.render()
    app.emit(outcome)
