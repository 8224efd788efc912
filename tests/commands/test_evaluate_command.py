"""Tests for the evaluate command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from formwright.cli import cli

DEFINITION = """\
form_id: integrations
fields:
  - {id: provider, type: select, options: {rest: REST, soap: SOAP}}
  - id: endpoint
    type: url
    required: true
    show_when: {field: provider, value: rest}
"""


@pytest.fixture
def definition(tmp_path: Path) -> Path:
    path = tmp_path / "form.yaml"
    path.write_text(DEFINITION, encoding="utf-8")
    return path


@pytest.mark.usefixtures("_isolated_project")
class TestEvaluateCommand:
    def test_visible_branch(self, cli_runner: CliRunner, definition: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "evaluate", str(definition), "--data", '{"provider": "rest"}']
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)["data"]
        assert data["verdicts"]["endpoint"] == {"visible": True, "required": True}
        assert data["required"] == ["endpoint"]

    def test_hidden_branch(self, cli_runner: CliRunner, definition: Path) -> None:
        result = cli_runner.invoke(
            cli, ["--json", "evaluate", str(definition), "--data", '{"provider": "soap"}']
        )
        data = json.loads(result.output)["data"]
        assert data["verdicts"]["endpoint"] == {"visible": False, "required": False}

    def test_table_output(self, cli_runner: CliRunner, definition: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(definition)])
        assert result.exit_code == 0
        assert "endpoint" in result.output

    def test_rejects_non_object_data(self, cli_runner: CliRunner, definition: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(definition), "--data", "[1, 2]"])
        assert result.exit_code == 2
        assert "JSON object" in result.output

    def test_rejects_invalid_json(self, cli_runner: CliRunner, definition: Path) -> None:
        result = cli_runner.invoke(cli, ["evaluate", str(definition), "--data", "{nope"])
        assert result.exit_code == 2
