"""TOML configuration loading."""

import os
import tomllib
from pathlib import Path

from schema_lens.config.models import ComparisonSettings, DatabaseProfile, LensConfig

CONFIG_ENV_VAR = "SCHEMA_LENS_CONFIG"
DEFAULT_CONFIG_FILE = "schema-lens.toml"


def default_config_path() -> Path:
    """$SCHEMA_LENS_CONFIG if set, else ./schema-lens.toml."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_config(config_path: Path | str | None = None) -> LensConfig:
    """Load schema-lens configuration from TOML file.

    Args:
        config_path: Path to the TOML file (default: $SCHEMA_LENS_CONFIG,
            then ./schema-lens.toml)

    Returns:
        LensConfig with all environment profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If an environment name is invalid
    """
    config_path = Path(config_path) if config_path is not None else default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_FILE} with an [environments.<name>] table per database."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse environment profiles
    environments = {}
    for name, profile_data in data.get("environments", {}).items():
        environments[name] = DatabaseProfile(**profile_data)

    return LensConfig(
        environments=environments,
        comparison=ComparisonSettings(**data.get("comparison", {})),
    )
