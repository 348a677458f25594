"""Deployment environment tags.

Schemas are tagged with the environment they were fetched from. The tag
drives context scoring (production is the most critical) and migration
direction risk when two environments are compared.

Usage:
    from schema_lens.environment import Environment, parse_environment

    env = parse_environment("PROD")
    env is Environment.PRODUCTION  # True
"""

from enum import StrEnum


class Environment(StrEnum):
    """Deployment environment a schema snapshot belongs to."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


_ALIASES: dict[str, Environment] = {
    "development": Environment.DEVELOPMENT,
    "dev": Environment.DEVELOPMENT,
    "staging": Environment.STAGING,
    "stage": Environment.STAGING,
    "production": Environment.PRODUCTION,
    "prod": Environment.PRODUCTION,
}


def parse_environment(value: str) -> Environment:
    """Parse an environment name, accepting short aliases.

    Matching is case-insensitive and ignores surrounding whitespace.
    ``dev``, ``stage`` and ``prod`` map to their full names.

    Args:
        value: Environment name or alias.

    Returns:
        The matching ``Environment``.

    Raises:
        ValueError: If the value is not a known environment or alias.

    Examples:
        >>> parse_environment("Stage")
        <Environment.STAGING: 'staging'>
    """
    key = value.strip().lower() if isinstance(value, str) else ""
    if key not in _ALIASES:
        valid = ", ".join(env.value for env in Environment)
        raise ValueError(f'Invalid environment: "{value}". Must be one of: {valid}')
    return _ALIASES[key]


def is_valid_environment(value: str) -> bool:
    """Return True if *value* parses as an environment."""
    try:
        parse_environment(value)
    except ValueError:
        return False
    return True
