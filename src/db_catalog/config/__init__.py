"""Configuration management: profiles, capability flags, dialect settings.

Usage:
    >>> from db_catalog.config import load_engine_config, EngineConfig, Capabilities
"""

from db_catalog.config.loader import load_engine_config
from db_catalog.config.models import (
    Capabilities,
    DialectSettings,
    EngineConfig,
    ProfileConfig,
)

__all__ = [
    "load_engine_config",
    "Capabilities",
    "DialectSettings",
    "EngineConfig",
    "ProfileConfig",
]
