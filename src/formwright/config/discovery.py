"""Locate and read ``formwright.toml``.

``FORMWRIGHT_CONFIG`` names the file outright; otherwise the search walks
from the starting directory up to the filesystem root and takes the first
``formwright.toml`` it meets.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from formwright.config.models import FormwrightConfig

CONFIG_FILENAME = "formwright.toml"
CONFIG_ENV_VAR = "FORMWRIGHT_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: CWD), if any.

    A ``FORMWRIGHT_CONFIG`` pointing at a missing file yields None; it does
    not fall back to the walk.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None, cwd: Path | None = None) -> FormwrightConfig:
    """Validate the TOML sections without env or CLI overrides.

    Hosts embedding the engine use this to read ``[forms]`` and
    ``[storage]``; a missing file gives the defaults.
    """
    path = path or find_config(cwd)
    if path is None:
        return FormwrightConfig()
    with path.open("rb") as fh:
        return FormwrightConfig.model_validate(tomllib.load(fh))
