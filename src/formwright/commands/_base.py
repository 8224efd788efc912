"""Shared Click pieces for formwright commands.

``FormwrightCommand`` adds an eager ``--examples`` flag that prints sample
invocations and exits, keeping them out of ``--help``. ``parse_json_data``
is the callback behind every ``--data`` option.
"""

from __future__ import annotations

import json
from typing import Any

import click


class FormwrightCommand(click.Command):
    """Command that accepts ``examples=`` and exposes them via ``--examples``."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(
                click.Option(
                    ["--examples"],
                    is_flag=True,
                    is_eager=True,
                    expose_value=False,
                    callback=self._print_examples,
                    help="Print sample invocations and exit.",
                )
            )

    def _print_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if value:
            click.echo(f"Examples for '{ctx.command_path}':\n\n{self.examples}")
            ctx.exit(0)


def parse_json_data(
    _ctx: click.Context, param: click.Parameter, value: str | None
) -> dict[str, Any]:
    """Turn a ``--data`` JSON object string into a dict (empty when omitted)."""
    if not value:
        return {}
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        msg = f"not valid JSON: {exc.msg}"
        raise click.BadParameter(msg, param=param) from exc
    if not isinstance(data, dict):
        msg = "must be a JSON object"
        raise click.BadParameter(msg, param=param)
    return data
