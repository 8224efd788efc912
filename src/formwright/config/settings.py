"""FormwrightSettings — one object for CLI flags, env vars and formwright.toml.

Highest priority first:

1. keyword arguments (CLI flags)
2. ``FORMWRIGHT_*`` env vars, nested with ``__``
   (``FORMWRIGHT_STORAGE__DATABASE_PATH``)
3. ``formwright.toml``, explicit or found by walking up from the CWD
4. defaults on the section models
"""

from __future__ import annotations

import threading
import tomllib
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from formwright.config.discovery import find_config
from formwright.config.models import FormsConfig, PluginsConfig, StorageConfig

# pydantic-settings builds sources inside the constructor, so the TOML path
# travels through a thread-local for the duration of one construction.
_pending = threading.local()


@contextmanager
def _reading(toml_path: Path | None) -> Iterator[None]:
    _pending.toml_path = toml_path
    try:
        yield
    finally:
        _pending.toml_path = None


def read_toml(path: Path | None) -> dict[str, Any]:
    """Parse *path*; a missing file reads as empty.

    Raises:
        click.ClickException: If the file is not valid TOML.
    """
    if path is None or not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by one parsed ``formwright.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data = read_toml(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class FormwrightSettings(BaseSettings):
    """Resolved settings for the CLI and host integrations.

    ``project_root`` anchors relative storage paths: the directory holding
    ``formwright.toml``, or the CWD when there is none.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "FORMWRIGHT_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    storage: StorageConfig = Field(default_factory=StorageConfig)
    forms: FormsConfig = Field(default_factory=FormsConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml = TomlSettingsSource(settings_cls, getattr(_pending, "toml_path", None))
        return init_settings, env_settings, toml

    @property
    def database_path(self) -> Path:
        path = self.storage.database_path
        return path if path.is_absolute() else self.project_root / path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **flags: Any,
    ) -> FormwrightSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* that does not exist is ignored rather than
        falling back to discovery.
        """
        if config_path:
            explicit = Path(config_path)
            toml_path = explicit if explicit.is_file() else None
        else:
            toml_path = find_config(project_root)

        if project_root is None:
            project_root = toml_path.parent if toml_path is not None else Path.cwd()

        with _reading(toml_path):
            return cls(project_root=project_root, config_path=toml_path, **flags)
