"""
Configuration loader — settings and filesystem layout.

Settings come from three places, highest precedence first:

    environment variables  >  config.yml  >  platform defaults

The config file is optional.  When present it is read as YAML and
validated against the ``Settings`` schema.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from dyst.core.errors import ConfigError
from dyst.core.models.package import RepositoryId

logger = logging.getLogger(__name__)

APP_NAME = "dyst"
CONFIG_FILE = "config.yml"
INDEX_FILE = "index.db"
DEFAULT_API_URL = "https://api.github.com"

# env var → settings field
_ENV_OVERRIDES = {
    "DYST_PACKAGE_STORE": "package_store",
    "DYST_BINARIES_PATH": "executables_path",
    "DYST_GITHUB_API_URL": "github_api_url",
    "GITHUB_TOKEN": "github_token",
    "DYST_GITHUB_TOKEN": "github_token",
}


class Settings(BaseModel):
    """Resolved runtime settings."""

    package_store: Path
    executables_path: Path
    github_api_url: str = DEFAULT_API_URL
    github_token: str | None = None
    timeout: float = 30.0


class FilesystemLayout(BaseModel):
    """Where packages, links and the index live on disk.

    ``package_store/author/name/`` holds an extracted package;
    ``executables_dir`` holds only symlinks into those trees.
    """

    package_store: Path
    executables_dir: Path

    @property
    def index_path(self) -> Path:
        return self.package_store / INDEX_FILE

    def author_dir(self, repository: RepositoryId) -> Path:
        return self.package_store / repository.author

    def package_dir(self, repository: RepositoryId) -> Path:
        return self.package_store / repository.author / repository.name

    @classmethod
    def from_settings(cls, settings: Settings) -> FilesystemLayout:
        return cls(
            package_store=settings.package_store,
            executables_dir=settings.executables_path,
        )


def _xdg_dir(env_var: str, fallback: str) -> Path:
    value = os.environ.get(env_var, "").strip()
    if value:
        return Path(value)
    return Path.home() / fallback


def default_package_store() -> Path:
    """Per-application data directory (``$XDG_DATA_HOME/dyst``)."""
    return _xdg_dir("XDG_DATA_HOME", ".local/share") / APP_NAME


def default_executables_path() -> Path:
    """Per-user executable directory (``$XDG_BIN_HOME`` or ``~/.local/bin``)."""
    return _xdg_dir("XDG_BIN_HOME", ".local/bin")


def default_config_path() -> Path:
    """``$DYST_CONFIG``, else ``$XDG_CONFIG_HOME/dyst/config.yml``."""
    explicit = os.environ.get("DYST_CONFIG", "").strip()
    if explicit:
        return Path(explicit)
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / APP_NAME / CONFIG_FILE


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        logger.debug("No config file at %s — using defaults", path)
        return {}

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    logger.debug("Loaded config from %s", path)
    return data


def load_settings(config_path: Path | None = None) -> Settings:
    """Resolve settings from the environment, config file and defaults.

    Args:
        config_path: Explicit config file.  Defaults to
            ``default_config_path()``.

    Raises:
        ConfigError: If the config file is unreadable or invalid.
    """
    path = config_path or default_config_path()
    data: dict[str, Any] = {
        "package_store": default_package_store(),
        "executables_path": default_executables_path(),
    }
    data.update(_read_config_file(path))

    for env_var, field in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var, "").strip()
        if value:
            data[field] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    settings.package_store = settings.package_store.expanduser()
    settings.executables_path = settings.executables_path.expanduser()
    logger.debug(
        "Package store: %s, executables: %s",
        settings.package_store, settings.executables_path,
    )
    return settings
