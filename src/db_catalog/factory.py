"""Catalog source and engine factory.

Resolves the active profile from catalog.toml and builds the objects the
CLI (or any caller) works with: a live catalog source, a schema loader and
a DDL generator configured with the profile's capability flags.

Usage:
    from db_catalog.factory import create_generator, create_loader, open_source
    from db_catalog.config import load_engine_config

    config = load_engine_config()
    with open_source("local", config=config) as source:
        loader = create_loader(source, config)
        results = loader.load_container(None, config.default_schema)
"""

import logging
import os
from urllib.parse import quote

from db_catalog.catalog.introspector import InformationSchemaSource
from db_catalog.catalog.loader import SchemaLoader
from db_catalog.catalog.source import CatalogSource, ProgressMonitor
from db_catalog.config.loader import load_engine_config
from db_catalog.config.models import EngineConfig, ProfileConfig
from db_catalog.ddl.dialect import SQLDialect
from db_catalog.ddl.generator import DDLGenerator
from db_catalog.exceptions import ConfigurationError, ProfileNotFoundError

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "DB_CATALOG_PROFILE"

_PASSWORD_PLACEHOLDER = "[YOUR-PASSWORD]"


# ============================================================================
# Profile resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the variable name (``APP_`` reads
            ``APP_DB_CATALOG_PROFILE``).

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    env_var = f"{env_prefix}{PROFILE_ENV_VAR}"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Run: {env_var}=<name> db-catalog inspect --table <name>"
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: EngineConfig | None = None,
) -> tuple[str, ProfileConfig]:
    """Get the profile name and its configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or it isn't in catalog.toml
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if config is None:
        config = load_engine_config()

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in catalog.toml",
            details={"available": ", ".join(config.profiles.keys()) or "none"},
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: ProfileConfig) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and _PASSWORD_PLACEHOLDER in url:
        url = url.replace(_PASSWORD_PLACEHOLDER, quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Engine objects
# ============================================================================


def open_source(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: EngineConfig | None = None,
) -> InformationSchemaSource:
    """Create (but don't connect) a catalog source for a profile.

    Use the result as a context manager to open the connection.

    Raises:
        ProfileNotFoundError: If the profile can't be resolved
        ConfigurationError: If the profile's provider has no catalog source
    """
    name, profile = get_active_profile(profile_name, env_prefix, config)
    if profile.provider != "postgres":
        raise ConfigurationError(
            f"Profile '{name}' uses unsupported provider '{profile.provider}'",
            details={"supported": "postgres"},
        )
    logger.debug(f"Opening catalog source for profile '{name}'")
    return InformationSchemaSource(resolve_url(profile))


def create_loader(
    source: CatalogSource,
    config: EngineConfig,
    monitor: ProgressMonitor | None = None,
) -> SchemaLoader:
    return SchemaLoader(source, capabilities=config.capabilities, monitor=monitor)


def create_generator(config: EngineConfig) -> DDLGenerator:
    return DDLGenerator(SQLDialect(config.dialect), config.capabilities)
