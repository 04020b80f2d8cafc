"""Configuration loading for db-archiver."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_archiver.config.models import ArchiverConfig
from db_archiver.errors import ConfigError

CONFIG_ENV_VAR = "DB_ARCHIVER_CONFIG"
DEFAULT_CONFIG_FILE = "db-archiver.toml"


def resolve_config_path(config_path: Path | str | None = None) -> Path:
    """Pick the config file: argument, then ``DB_ARCHIVER_CONFIG``, then cwd."""
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_config(config_path: Path | str | None = None) -> ArchiverConfig:
    """Load archiver configuration from a TOML file.

    Args:
        config_path: Path to the TOML file (default: ``DB_ARCHIVER_CONFIG``
            or ``./db-archiver.toml``)

    Returns:
        ArchiverConfig with all database bindings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If the file is not valid TOML or has an invalid shape
    """
    path = resolve_config_path(config_path)

    if not path.exists():
        raise FileNotFoundError(
            f"Archiver config not found: {path}\n"
            f"Create {DEFAULT_CONFIG_FILE} or set {CONFIG_ENV_VAR}."
        )

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {path}: {e}", details={"path": str(path)}) from e

    try:
        config = ArchiverConfig(**data)
    except ValidationError as e:
        raise ConfigError(
            f"invalid configuration in {path}", details=e.errors(include_url=False)
        ) from e

    if config.tracking is not None and config.tracking not in config.databases:
        raise ConfigError(
            f"tracking database '{config.tracking}' is not a configured binding",
            details={"tracking": config.tracking, "available": sorted(config.databases)},
        )

    return config
