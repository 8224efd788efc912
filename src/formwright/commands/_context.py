"""AppContext — the object every command receives through ``@click.pass_obj``.

It owns the resolved settings, opens the store and loads plugins only when
a command asks for them, and turns a ServiceResult into output and an
exit status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from formwright.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from formwright.config.settings import FormwrightSettings
    from formwright.plugins.manager import PluginManager
    from formwright.services.definition import DefinitionService
    from formwright.services.result import ServiceResult


class AppContext:
    """Per-invocation state shared by the root group and its commands.

    The database engine and plugin manager are created lazily on first use
    so ``--help`` and ``--version`` never touch the disk or entry points.
    """

    def __init__(self, settings: FormwrightSettings) -> None:
        self.settings = settings
        self._engine: Engine | None = None
        self._plugins: PluginManager | None = None

        from formwright.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def engine(self) -> Engine:
        """SQLite engine for the configured store (created on first access)."""
        if self._engine is None:
            from formwright.infrastructure.database.engine import init_database

            self._engine = init_database(self.settings.database_path)
        return self._engine

    @property
    def plugins(self) -> PluginManager:
        """Loaded plugin manager; discovery is skipped when plugins are disabled."""
        if self._plugins is None:
            from formwright.plugins.manager import PluginManager

            self._plugins = PluginManager()
            if self.settings.plugins.enabled:
                local_dir = self.settings.plugins.local_dir
                if local_dir is not None and not local_dir.is_absolute():
                    local_dir = self.settings.project_root / local_dir
                self._plugins.discover_and_load(local_dir=local_dir)
        return self._plugins

    def definitions(self) -> DefinitionService:
        from formwright.services.definition import DefinitionService

        return DefinitionService(registry=self.plugins.registry, defaults=self.settings.forms)

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; a failed result goes to stderr and exits with status 1.

        Human-mode warnings also go to stderr so piped stdout stays clean;
        JSON output already carries them in ``warnings``.
        """
        output = format_result(
            result,
            settings=OutputSettings(
                json_output=self.settings.json_output, verbose=self.settings.verbose
            ),
        )
        if not result.ok:
            click.echo(output, err=True)
            raise SystemExit(1)

        click.echo(output)
        if self.settings.json_output:
            return
        for warning in result.warnings:
            click.secho(f"WARNING: {warning}", fg="yellow", err=True)
