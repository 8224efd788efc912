"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, formwright.toml only contains overrides.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from formwright.domain.configuration import Layout

# --- formwright.toml sections ---


class StorageConfig(BaseModel):
    """[storage] section."""

    model_config = {"frozen": True}

    # Relative paths resolve against the directory holding formwright.toml.
    database_path: Path = Path(".formwright/formwright.db")
    options_table_prefix: str = ""


class FormsConfig(BaseModel):
    """[forms] section — defaults applied to every form built from a definition."""

    model_config = {"frozen": True}

    default_layout: Layout = Layout.TABLE
    default_method: str = "POST"
    success_message: str = "Settings saved successfully!"
    error_message: str = "Failed to save settings."
    submit_label: str = "Save"


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: Path | None = None


class FormwrightConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    storage: StorageConfig = Field(default_factory=StorageConfig)
    forms: FormsConfig = Field(default_factory=FormsConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
