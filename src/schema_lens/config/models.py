"""Pydantic models for schema-lens configuration."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from schema_lens.environment import Environment, parse_environment


class EnvironmentNotConfiguredError(Exception):
    """Raised when an environment has no database profile."""

    pass


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from schema-lens.toml."""

    url: str
    name: str = ""  # Recorded on snapshots; defaults to the environment name
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class ComparisonSettings(BaseModel):
    """Settings for the compare command."""

    # Lowest difference severity that makes `compare` exit non-zero
    fail_on: Literal["critical", "high", "medium", "low", "none"] = "critical"


class LensConfig(BaseModel):
    """Complete configuration from schema-lens.toml.

    Example:
        >>> config = LensConfig(environments={"prod": DatabaseProfile(url="sqlite:///p.db")})
        >>> config.get_profile("production").url
        'sqlite:///p.db'
    """

    environments: dict[Environment, DatabaseProfile] = Field(default_factory=dict)
    comparison: ComparisonSettings = Field(default_factory=ComparisonSettings)

    @field_validator("environments", mode="before")
    @classmethod
    def _parse_environment_keys(cls, value: object) -> object:
        if isinstance(value, dict):
            return {parse_environment(key): profile for key, profile in value.items()}
        return value

    def get_profile(self, environment: Environment | str) -> DatabaseProfile:
        """Return the profile for *environment*.

        Raises:
            EnvironmentNotConfiguredError: If no profile is configured
            ValueError: If the environment name is invalid
        """
        environment = parse_environment(environment)
        if environment not in self.environments:
            configured = ", ".join(env.value for env in self.environments) or "none"
            raise EnvironmentNotConfiguredError(
                f"Environment '{environment}' not configured.\n"
                f"Configured environments: {configured}"
            )
        return self.environments[environment]
