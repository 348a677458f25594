"""Configuration management: environment profiles, TOML loading, and config models.

Usage:
    >>> from schema_lens.config import load_config, DatabaseProfile, LensConfig
"""

from schema_lens.config.loader import load_config
from schema_lens.config.models import (
    ComparisonSettings,
    DatabaseProfile,
    EnvironmentNotConfiguredError,
    LensConfig,
)

__all__ = [
    "load_config",
    "LensConfig",
    "DatabaseProfile",
    "ComparisonSettings",
    "EnvironmentNotConfiguredError",
]
