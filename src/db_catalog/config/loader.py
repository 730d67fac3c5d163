"""Configuration loading from catalog.toml."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_catalog.config.models import EngineConfig
from db_catalog.exceptions import ConfigurationError

CONFIG_FILE_NAME = "catalog.toml"
CONFIG_ENV_VAR = "DB_CATALOG_CONFIG"


def default_config_path() -> Path:
    """Return the config path from ``DB_CATALOG_CONFIG`` or ``./catalog.toml``."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / CONFIG_FILE_NAME


def load_engine_config(config_path: Path | None = None) -> EngineConfig:
    """Load engine configuration from a TOML file.

    Args:
        config_path: Path to catalog.toml (default: ``default_config_path()``)

    Returns:
        EngineConfig with profiles, capabilities and dialect settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the TOML is invalid or fails validation
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Catalog config not found: {config_path}\n"
            f"Create {CONFIG_FILE_NAME} with a [profiles.<name>] section."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in {config_path.name}", cause=e
        ) from e

    schema_settings = data.get("schema", {})

    try:
        return EngineConfig(
            profiles=data.get("profiles", {}),
            capabilities=data.get("capabilities", {}),
            dialect=data.get("dialect", {}),
            default_schema=schema_settings.get("default", "public"),
        )
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path.name}",
            details={"errors": e.error_count()},
            cause=e,
        ) from e
