"""Subcommand modules for formwright.

Provides register_commands() which uses deferred imports to keep
``formwright --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from formwright.commands.check import check
    from formwright.commands.evaluate import evaluate
    from formwright.commands.submit import submit

    cli.add_command(check)
    cli.add_command(evaluate)
    cli.add_command(submit)
