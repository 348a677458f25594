"""Insight, Context and Execution analyses.

The three independent axes of every finding:

- ``InsightAnalysis``: how well the issue is understood.
- ``ContextAnalysis``: how critical the environment is.
- ``ExecutionPlan``: how safely the fix can be applied.

Each holds named 0-10 factors plus a rationale, and derives ``score`` as
the mean of its factors rounded half-up to one decimal. The named
factories below hold the canonical factor tables; keep them stable, since
downstream output (priorities, severities, ordering) depends on them.

Usage:
    from schema_lens.scoring.analysis import ContextAnalysis, ExecutionPlan, InsightAnalysis

    insight = InsightAnalysis.for_missing_primary_key("users", True)
    insight.score  # 9.5
"""

import math
from dataclasses import dataclass, field
from typing import Literal

from schema_lens.environment import Environment
from schema_lens.scoring.errors import (
    EmptyRationaleError,
    InvalidFactorRangeError,
    NoFactorsError,
)

StructuralDifferenceKind = Literal["missing_table", "missing_column", "type_mismatch"]


def round_score(value: float) -> float:
    """Round half-up to one decimal (2.45 -> 2.5, never banker's rounding)."""
    return math.floor(value * 10 + 0.5) / 10


def _score_factors(kind: str, factors: dict[str, float], rationale: str) -> float:
    """Validate factors/rationale and return the rounded mean."""
    if not rationale or not rationale.strip():
        raise EmptyRationaleError(f"{kind} rationale cannot be empty")
    if not factors:
        raise NoFactorsError(f"{kind} must have at least one factor")

    for name, value in factors.items():
        if not 0 <= value <= 10:
            raise InvalidFactorRangeError(
                f"{kind} factor '{name}' must be 0-10, got {value}"
            )

    score = round_score(sum(factors.values()) / len(factors))
    if not 0 <= score <= 10:
        raise InvalidFactorRangeError(f"{kind} score must be 0-10, got {score}")
    return score


# ============================================================================
# Insight
# ============================================================================


@dataclass(frozen=True)
class InsightAnalysis:
    """How deeply a finding is understood.

    Example:
        >>> InsightAnalysis({"table_importance": 5}, "Extra table").score
        5.0
    """

    factors: dict[str, float]
    rationale: str
    score: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "factors", dict(self.factors))
        object.__setattr__(
            self, "score", _score_factors("InsightAnalysis", self.factors, self.rationale)
        )
        object.__setattr__(self, "rationale", self.rationale.strip())

    @property
    def description(self) -> str:
        return f"Insight: {self.score:.1f}/10 - {self.rationale}"

    @classmethod
    def for_missing_primary_key(
        cls, table_name: str, has_relationships: bool
    ) -> "InsightAnalysis":
        return cls(
            {
                "table_importance": 9 if has_relationships else 7,
                "data_integrity": 9,
                "semantic_clarity": 10,
                "pattern_recognition": 10,
            },
            f"Table '{table_name}' lacks primary key - fundamental identity mechanism missing",
        )

    @classmethod
    def for_missing_foreign_key_index(
        cls, table_name: str, column_name: str, frequently_joined: bool
    ) -> "InsightAnalysis":
        return cls(
            {
                "table_importance": 8 if frequently_joined else 6,
                "relationship_impact": 9 if frequently_joined else 7,
                "semantic_clarity": 9,
                "pattern_recognition": 9,
            },
            f"Foreign key '{table_name}.{column_name}' without index will cause slow joins",
        )

    @classmethod
    def for_nullable_foreign_key(cls, table_name: str, column_name: str) -> "InsightAnalysis":
        return cls(
            {
                "table_importance": 5,
                "data_integrity": 6,
                "semantic_clarity": 8,
                "pattern_recognition": 7,
            },
            f"Foreign key '{table_name}.{column_name}' is nullable - "
            "verify if relationship is truly optional",
        )

    @classmethod
    def for_schema_difference(
        cls, difference_type: StructuralDifferenceKind, name: str, is_production: bool
    ) -> "InsightAnalysis":
        """Insight for a structural drift finding.

        Production targets raise table importance; the other factors are
        fixed per difference type.

        Raises:
            ValueError: If *difference_type* is not missing_table,
                missing_column or type_mismatch.
        """
        base = 9 if is_production else 6

        if difference_type == "missing_table":
            return cls(
                {"table_importance": base, "data_integrity": 8, "semantic_clarity": 10},
                f"Table '{name}' missing in target environment - "
                "potential data loss or application errors",
            )
        if difference_type == "missing_column":
            return cls(
                {"table_importance": base - 1, "data_integrity": 7, "semantic_clarity": 9},
                f"Column '{name}' missing in target environment - may cause query failures",
            )
        if difference_type == "type_mismatch":
            return cls(
                {"table_importance": base - 2, "data_integrity": 6, "semantic_clarity": 8},
                f"Type mismatch for '{name}' - may cause data conversion issues",
            )
        raise ValueError(f"Unsupported schema difference type: {difference_type}")

    @classmethod
    def for_extra_table(cls, environment: Environment) -> "InsightAnalysis":
        return cls({"table_importance": 5}, f"Extra table in {environment}")

    @classmethod
    def for_extra_column(cls, environment: Environment) -> "InsightAnalysis":
        return cls({"table_importance": 4}, f"Extra column in {environment}")

    @classmethod
    def for_missing_index(cls, index_name: str, environment: Environment) -> "InsightAnalysis":
        return cls(
            {"table_importance": 7, "relationship_impact": 7, "semantic_clarity": 9},
            f"Index '{index_name}' missing in {environment}",
        )

    @classmethod
    def for_missing_foreign_key(
        cls, column_name: str, environment: Environment
    ) -> "InsightAnalysis":
        return cls(
            {"table_importance": 7, "data_integrity": 8, "semantic_clarity": 9},
            f"Foreign key '{column_name}' missing in {environment}",
        )


# ============================================================================
# Context
# ============================================================================

_CRITICALITY: dict[Environment, float] = {
    Environment.PRODUCTION: 10,
    Environment.STAGING: 7,
    Environment.DEVELOPMENT: 4,
}

_OPERATIONAL_IMPACT: dict[Environment, float] = {
    Environment.PRODUCTION: 9,
    Environment.STAGING: 6,
    Environment.DEVELOPMENT: 3,
}

_MIGRATION_BASE_RISK: dict[str, float] = {
    "dev_to_staging": 5,
    "staging_to_production": 9,
    "dev_to_production": 10,
    "reverse": 3,
}


def environment_criticality(environment: Environment) -> float:
    """Criticality of an environment: production 10, staging 7, development 4."""
    return _CRITICALITY[Environment(environment)]


def migration_direction(source: Environment, target: Environment) -> str:
    """Classify a migration as dev_to_staging, staging_to_production,
    dev_to_production or reverse (anything else)."""
    source, target = Environment(source), Environment(target)
    if source is Environment.DEVELOPMENT and target is Environment.STAGING:
        return "dev_to_staging"
    if source is Environment.STAGING and target is Environment.PRODUCTION:
        return "staging_to_production"
    if source is Environment.DEVELOPMENT and target is Environment.PRODUCTION:
        return "dev_to_production"
    return "reverse"


def migration_risk(source: Environment, target: Environment, difference_count: int) -> float:
    """Risk of migrating *difference_count* changes from *source* to *target*.

    Starts from the direction's base risk and adds up to 2 points as the
    change count approaches 5, capped at 10.
    """
    base = _MIGRATION_BASE_RISK[migration_direction(source, target)]
    volume = min(difference_count / 5, 1) * 2
    return min(round_score(base + volume), 10)


@dataclass(frozen=True)
class ContextAnalysis:
    """How critical the situation around a finding is.

    Example:
        >>> ContextAnalysis.for_nullable_foreign_key(Environment.DEVELOPMENT).score
        4.0
    """

    factors: dict[str, float]
    rationale: str
    environment: Environment | None = None
    score: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "factors", dict(self.factors))
        object.__setattr__(
            self, "score", _score_factors("ContextAnalysis", self.factors, self.rationale)
        )
        object.__setattr__(self, "rationale", self.rationale.strip())

    @property
    def description(self) -> str:
        return f"Context: {self.score:.1f}/10 - {self.rationale}"

    @classmethod
    def for_environment(
        cls, environment: Environment, has_dependencies: bool
    ) -> "ContextAnalysis":
        environment = Environment(environment)
        suffix = " with dependencies" if has_dependencies else ""
        return cls(
            {
                "environment_criticality": environment_criticality(environment),
                "dependency_complexity": 7 if has_dependencies else 4,
                "operational_impact": _OPERATIONAL_IMPACT[environment],
            },
            f"Optimization in {environment} environment{suffix}",
            environment,
        )

    @classmethod
    def for_schema_migration(
        cls, source: Environment, target: Environment, difference_count: int
    ) -> "ContextAnalysis":
        target = Environment(target)
        return cls(
            {
                "environment_criticality": environment_criticality(target),
                "migration_risk": migration_risk(source, target, difference_count),
                "dependency_complexity": min(difference_count, 10),
                "operational_impact": _OPERATIONAL_IMPACT[target],
            },
            f"Schema migration from {Environment(source)} to {target} "
            f"with {difference_count} difference(s)",
            target,
        )

    @classmethod
    def for_missing_primary_key(
        cls, environment: Environment, is_referenced: bool
    ) -> "ContextAnalysis":
        environment = Environment(environment)
        suffix = " (table is referenced by others)" if is_referenced else ""
        return cls(
            {
                "environment_criticality": environment_criticality(environment),
                "dependency_complexity": 9 if is_referenced else 5,
                "operational_impact": 8 if environment is Environment.PRODUCTION else 5,
            },
            f"Missing primary key in {environment}{suffix}",
            environment,
        )

    @classmethod
    def for_missing_foreign_key_index(
        cls, environment: Environment, frequently_queried: bool, table_count: int
    ) -> "ContextAnalysis":
        environment = Environment(environment)
        suffix = " (frequently queried)" if frequently_queried else ""
        return cls(
            {
                "environment_criticality": environment_criticality(environment),
                "operational_impact": 8 if frequently_queried else 5,
                "dependency_complexity": min(table_count, 10),
            },
            f"Missing index in {environment}{suffix}",
            environment,
        )

    @classmethod
    def for_nullable_foreign_key(cls, environment: Environment) -> "ContextAnalysis":
        environment = Environment(environment)
        return cls(
            {
                "environment_criticality": environment_criticality(environment),
                "operational_impact": 4,
            },
            f"Nullable foreign key in {environment} - likely intentional design",
            environment,
        )


# ============================================================================
# Execution
# ============================================================================


@dataclass(frozen=True)
class ExecutionPlan:
    """How safely a finding can be remediated, with the SQL that does it.

    The SQL is either executable DDL or a review comment; it is never run
    by this package.
    """

    sql: str
    factors: dict[str, float]
    rationale: str
    score: float = field(init=False)

    def __post_init__(self) -> None:
        if not self.sql or not self.sql.strip():
            raise EmptyRationaleError("ExecutionPlan SQL cannot be empty")
        object.__setattr__(self, "factors", dict(self.factors))
        object.__setattr__(
            self, "score", _score_factors("ExecutionPlan", self.factors, self.rationale)
        )
        object.__setattr__(self, "sql", self.sql.strip())
        object.__setattr__(self, "rationale", self.rationale.strip())

    @property
    def description(self) -> str:
        return f"Execution: {self.score:.1f}/10 - {self.rationale}"

    def is_high_risk(self) -> bool:
        return self.score < 5.0

    def is_safe(self) -> bool:
        return self.score >= 7.0

    @classmethod
    def for_add_primary_key(cls, table_name: str) -> "ExecutionPlan":
        return cls(
            f"ALTER TABLE {table_name} ADD COLUMN id INTEGER PRIMARY KEY",
            {
                "sql_precision": 9,
                "migration_complexity": 6,  # duplicates must be checked first
                "rollback_safety": 7,
                "testing_clarity": 9,
                "downtime": 8,
            },
            f"Add primary key to {table_name} - standard DDL operation",
        )

    @classmethod
    def for_create_index(
        cls, table_name: str, columns: str, index_name: str | None = None
    ) -> "ExecutionPlan":
        """Plan for ``CREATE INDEX`` on *columns* (a comma separated list).

        The index is named ``idx_<table>_<columns>`` unless *index_name* is
        given.
        """
        name = index_name or f"idx_{table_name}_{columns}"
        return cls(
            f"CREATE INDEX {name} ON {table_name}({columns})",
            {
                "sql_precision": 10,
                "migration_complexity": 9,
                "rollback_safety": 10,
                "testing_clarity": 9,
                "downtime": 9,
            },
            f"Create index on {table_name}.{columns} - safe, reversible operation",
        )

    @classmethod
    def for_nullable_foreign_key_review(cls, table_name: str, column_name: str) -> "ExecutionPlan":
        return cls(
            f"-- Review: Should {table_name}.{column_name} be NOT NULL?\n"
            f"-- If yes: ALTER TABLE {table_name} ALTER COLUMN {column_name} SET NOT NULL",
            {
                "sql_precision": 5,
                "migration_complexity": 4,
                "rollback_safety": 6,
                "testing_clarity": 4,
            },
            f"Review business logic for {table_name}.{column_name} - may require discussion",
        )

    @classmethod
    def for_schema_difference(
        cls, difference_type: StructuralDifferenceKind, name: str, ddl: str
    ) -> "ExecutionPlan":
        """Plan for applying *ddl* to fix a structural drift finding.

        Raises:
            ValueError: If *difference_type* is not missing_table,
                missing_column or type_mismatch.
        """
        if difference_type == "missing_table":
            return cls(
                ddl,
                {
                    "sql_precision": 8,
                    "migration_complexity": 5,
                    "rollback_safety": 6,
                    "testing_clarity": 9,
                    "downtime": 7,
                },
                f"Create missing table {name} - requires testing of dependent code",
            )
        if difference_type == "missing_column":
            return cls(
                ddl,
                {
                    "sql_precision": 9,
                    "migration_complexity": 7,
                    "rollback_safety": 8,
                    "testing_clarity": 9,
                    "downtime": 8,
                },
                f"Add missing column {name} - verify dependent queries",
            )
        if difference_type == "type_mismatch":
            return cls(
                ddl,
                {
                    "sql_precision": 7,
                    "migration_complexity": 4,  # may need a data migration
                    "rollback_safety": 5,
                    "testing_clarity": 7,
                    "downtime": 6,
                },
                f"Fix type mismatch for {name} - requires data validation",
            )
        raise ValueError(f"Unsupported schema difference type: {difference_type}")

    @classmethod
    def for_review(cls, sql: str) -> "ExecutionPlan":
        return cls(sql, {"sql_precision": 5}, "Review required")

    @classmethod
    def for_add_foreign_key(cls, sql: str) -> "ExecutionPlan":
        return cls(sql, {"sql_precision": 7, "rollback_safety": 8}, "Add foreign key constraint")
