"""Shared pytest fixtures for formwright tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from formwright.builder import FormBuilder, create_form
from formwright.domain.configuration import FormConfiguration
from formwright.infrastructure.database.engine import init_database


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "formwright.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def memory_engine() -> Generator[Engine]:
    """Shared in-memory SQLite engine."""
    engine = init_database()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI commands from a temp project root with no inherited config.

    The empty ``formwright.toml`` pins walk-up discovery to *tmp_path*, so
    the SQLite store lands under ``tmp_path/.formwright``.
    """
    monkeypatch.delenv("FORMWRIGHT_CONFIG", raising=False)
    (tmp_path / "formwright.toml").write_text("[plugins]\nenabled = false\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)


class RecordingStore:
    """In-memory stand-in for a host persistence layer; counts calls."""

    def __init__(self, stored: dict[str, Any] | None = None, *, result: Any = True) -> None:
        self.stored: dict[str, Any] = dict(stored or {})
        self.saves: list[dict[str, Any]] = []
        self.result = result

    def load(self, identity: str) -> dict[str, Any]:
        return dict(self.stored)

    def save(self, identity: str, payload: dict[str, Any]) -> Any:
        self.saves.append(dict(payload))
        self.stored.update(payload)
        return self.result


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def settings_form() -> Callable[..., FormConfiguration]:
    """Factory for the two-required-field settings form used across tests."""

    def _build(form_id: str = "settings", **initial: Any) -> FormConfiguration:
        builder: FormBuilder = create_form(form_id, initial or None)
        return (
            builder.text("api_key", "API Key")
            .required()
            .min_length(8)
            .email("from_email", "From Email")
            .required()
            .build()
        )

    return _build
