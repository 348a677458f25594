"""Schema drift records and the aggregated comparison result.

A ``SchemaDifference`` is one finding with its full ICE breakdown; its
severity is derived from the ICE priority and the difference type. A
``SchemaComparisonResult`` holds every finding of one comparison, sorted
by combined ICE score (highest first, stable on ties), plus summary
counts.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from schema_lens.scoring.analysis import ContextAnalysis, ExecutionPlan, InsightAnalysis
from schema_lens.scoring.ice import ICEPriority, ICEScore


class DifferenceType(StrEnum):
    MISSING_TABLE = "missing_table"
    EXTRA_TABLE = "extra_table"
    MISSING_COLUMN = "missing_column"
    EXTRA_COLUMN = "extra_column"
    TYPE_MISMATCH = "type_mismatch"
    MISSING_INDEX = "missing_index"
    MISSING_FOREIGN_KEY = "missing_foreign_key"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


STRUCTURAL_TYPES = frozenset(
    {
        DifferenceType.MISSING_TABLE,
        DifferenceType.EXTRA_TABLE,
        DifferenceType.MISSING_COLUMN,
        DifferenceType.EXTRA_COLUMN,
        DifferenceType.TYPE_MISMATCH,
    }
)
CONSTRAINT_TYPES = frozenset({DifferenceType.MISSING_INDEX, DifferenceType.MISSING_FOREIGN_KEY})

# Missing tables/columns escalate to critical when their ICE priority is high.
_CRITICAL_WHEN_HIGH = frozenset({DifferenceType.MISSING_TABLE, DifferenceType.MISSING_COLUMN})

SEVERITY_ORDER = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)


# ------------------------------------------------------------------
# Single difference
# ------------------------------------------------------------------


@dataclass(frozen=True)
class DifferenceLocation:
    """Where a difference was found.

    For missing indexes ``column_name`` holds the comma separated column
    list of the index. For type mismatches ``source_value`` and
    ``target_value`` hold the declared types.
    """

    table_name: str
    column_name: str | None = None
    source_value: str | None = None
    target_value: str | None = None

    def __str__(self) -> str:
        if self.column_name:
            return f"{self.table_name}.{self.column_name}"
        return self.table_name


@dataclass(frozen=True)
class SchemaDifference:
    """One drift finding between a source and a target schema.

    ``ice_score`` is computed from the three analyses at construction.
    """

    type: DifferenceType
    location: DifferenceLocation
    description: str
    source_environment: str
    target_environment: str
    insight: InsightAnalysis
    context: ContextAnalysis
    execution: ExecutionPlan
    ice_score: ICEScore = field(init=False)

    def __post_init__(self) -> None:
        if not self.location.table_name.strip():
            raise ValueError("SchemaDifference table name cannot be empty")
        if not self.description.strip():
            raise ValueError("SchemaDifference description cannot be empty")
        object.__setattr__(self, "type", DifferenceType(self.type))
        object.__setattr__(
            self,
            "ice_score",
            ICEScore(self.insight.score, self.context.score, self.execution.score),
        )

    @property
    def severity(self) -> Severity:
        priority = self.ice_score.priority
        if priority is ICEPriority.HIGH:
            return Severity.CRITICAL if self.type in _CRITICAL_WHEN_HIGH else Severity.HIGH
        if priority is ICEPriority.MEDIUM:
            return Severity.MEDIUM
        return Severity.LOW

    @property
    def full_description(self) -> str:
        return (
            f"[{self.severity.upper()}] {self.description} at {self.location} "
            f"({self.source_environment} → {self.target_environment})"
        )

    @property
    def ice_analysis(self) -> str:
        return "\n".join(
            [
                self.ice_score.description,
                self.insight.description,
                self.context.description,
                self.execution.description,
            ]
        )

    @property
    def migration_sql(self) -> str:
        return self.execution.sql

    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL

    def is_high_severity(self) -> bool:
        return self.severity in (Severity.CRITICAL, Severity.HIGH)

    def affects_table(self, table_name: str) -> bool:
        return self.location.table_name == table_name

    def is_structural_difference(self) -> bool:
        return self.type in STRUCTURAL_TYPES

    def is_constraint_difference(self) -> bool:
        return self.type in CONSTRAINT_TYPES

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "location": {
                "table_name": self.location.table_name,
                "column_name": self.location.column_name,
                "source_value": self.location.source_value,
                "target_value": self.location.target_value,
            },
            "description": self.description,
            "source_environment": self.source_environment,
            "target_environment": self.target_environment,
            "ice_score": self.ice_score.to_dict(),
            "insight": {"score": self.insight.score, "rationale": self.insight.rationale},
            "context": {"score": self.context.score, "rationale": self.context.rationale},
            "execution": {
                "score": self.execution.score,
                "rationale": self.execution.rationale,
                "sql": self.execution.sql,
            },
        }


# ------------------------------------------------------------------
# Comparison result
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ComparisonSummary:
    """Integer counts over a comparison's differences."""

    total_differences: int = 0
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    structural_differences: int = 0
    constraint_differences: int = 0
    missing_tables: int = 0
    extra_tables: int = 0
    missing_columns: int = 0
    extra_columns: int = 0
    type_mismatches: int = 0
    missing_indexes: int = 0
    missing_foreign_keys: int = 0

    @classmethod
    def from_differences(cls, differences: Iterable[SchemaDifference]) -> "ComparisonSummary":
        differences = list(differences)
        severities = [d.severity for d in differences]
        types = [d.type for d in differences]
        return cls(
            total_differences=len(differences),
            critical_count=severities.count(Severity.CRITICAL),
            high_count=severities.count(Severity.HIGH),
            medium_count=severities.count(Severity.MEDIUM),
            low_count=severities.count(Severity.LOW),
            structural_differences=sum(1 for d in differences if d.is_structural_difference()),
            constraint_differences=sum(1 for d in differences if d.is_constraint_difference()),
            missing_tables=types.count(DifferenceType.MISSING_TABLE),
            extra_tables=types.count(DifferenceType.EXTRA_TABLE),
            missing_columns=types.count(DifferenceType.MISSING_COLUMN),
            extra_columns=types.count(DifferenceType.EXTRA_COLUMN),
            type_mismatches=types.count(DifferenceType.TYPE_MISMATCH),
            missing_indexes=types.count(DifferenceType.MISSING_INDEX),
            missing_foreign_keys=types.count(DifferenceType.MISSING_FOREIGN_KEY),
        )


@dataclass(frozen=True)
class SchemaComparisonResult:
    """All differences between two schemas, highest ICE score first.

    Example:
        >>> result = SchemaComparisonResult("development", "production", 3, 3, [])
        >>> result.is_identical()
        True
    """

    source_environment: str
    target_environment: str
    source_table_count: int
    target_table_count: int
    differences: tuple[SchemaDifference, ...] = ()
    compared_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    summary: ComparisonSummary = field(init=False)

    def __post_init__(self) -> None:
        if self.source_table_count < 0 or self.target_table_count < 0:
            raise ValueError("SchemaComparisonResult table counts cannot be negative")
        # sorted() is stable: equal scores keep detection order
        ordered = tuple(sorted(self.differences, key=lambda d: -d.ice_score.combined))
        object.__setattr__(self, "differences", ordered)
        object.__setattr__(self, "summary", ComparisonSummary.from_differences(ordered))

    def is_identical(self) -> bool:
        return len(self.differences) == 0

    def has_critical_differences(self) -> bool:
        return self.summary.critical_count > 0

    def has_high_severity_differences(self) -> bool:
        return self.summary.critical_count > 0 or self.summary.high_count > 0

    def critical_differences(self) -> list[SchemaDifference]:
        return self.differences_by_severity(Severity.CRITICAL)

    def differences_by_severity(self, severity: Severity | str) -> list[SchemaDifference]:
        severity = Severity(severity)
        return [d for d in self.differences if d.severity is severity]

    def structural_differences(self) -> list[SchemaDifference]:
        return [d for d in self.differences if d.is_structural_difference()]

    def constraint_differences(self) -> list[SchemaDifference]:
        return [d for d in self.differences if d.is_constraint_difference()]

    def differences_for_table(self, table_name: str) -> list[SchemaDifference]:
        return [d for d in self.differences if d.affects_table(table_name)]

    def format_summary(self) -> str:
        """Format the comparison as a human-readable report."""
        lines = [
            f"Schema Comparison: {self.source_environment} → {self.target_environment}",
            f"Compared at: {self.compared_at.isoformat()}",
            f"Source tables: {self.source_table_count}, Target tables: {self.target_table_count}",
            "",
        ]

        if self.is_identical():
            lines.append("Schemas are identical - no differences found")
            return "\n".join(lines)

        s = self.summary
        lines.extend(
            [
                f"Total differences: {s.total_differences}",
                "",
                "By Severity:",
                f"  Critical: {s.critical_count}",
                f"  High: {s.high_count}",
                f"  Medium: {s.medium_count}",
                f"  Low: {s.low_count}",
                "",
                "By Type:",
                f"  Missing tables: {s.missing_tables}",
                f"  Extra tables: {s.extra_tables}",
                f"  Missing columns: {s.missing_columns}",
                f"  Extra columns: {s.extra_columns}",
                f"  Type mismatches: {s.type_mismatches}",
                f"  Missing indexes: {s.missing_indexes}",
                f"  Missing foreign keys: {s.missing_foreign_keys}",
            ]
        )
        return "\n".join(lines)

    def migration_plan(self) -> str:
        """SQL script of every difference, grouped by severity.

        Review-only findings appear as SQL comments. Nothing is executed.
        """
        if self.is_identical():
            return "-- No migration needed - schemas are identical"

        lines = [
            "-- Schema Migration Plan",
            f"-- From: {self.source_environment}",
            f"-- To: {self.target_environment}",
            f"-- Generated: {self.compared_at.isoformat()}",
            "",
            "-- CRITICAL AND HIGH PRIORITY CHANGES",
            "-- Review carefully before applying!",
            "",
        ]

        for severity in SEVERITY_ORDER:
            group = self.differences_by_severity(severity)
            if not group:
                continue
            lines.append(f"-- === {severity.upper()} ===")
            for difference in group:
                lines.append(f"-- {difference.full_description}")
                lines.append(difference.migration_sql)
                lines.append("")

        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "metadata": {
                "source_environment": self.source_environment,
                "target_environment": self.target_environment,
                "source_table_count": self.source_table_count,
                "target_table_count": self.target_table_count,
                "compared_at": self.compared_at.isoformat(),
            },
            "summary": asdict(self.summary),
            "differences": [d.to_dict() for d in self.differences],
        }
