"""Tests for the root CLI group."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from formwright import __version__
from formwright.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestCli:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_command_prints_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        for command in ("check", "evaluate", "submit"):
            assert command in result.output

    def test_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "--json" in result.output
