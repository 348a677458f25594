"""Optimization suggestions for a single schema.

``OptimizationService.analyze_schema`` runs the schema-wide checks
(missing primary keys, unindexed foreign keys, nullable foreign keys) and
ICE-scores each suggestion for the given environment. The redundant index
check is per table and must be called separately.

Usage:
    from schema_lens.schema.optimization import OptimizationService
    from schema_lens.schema.relationships import RelationshipAnalyzer

    relationships = RelationshipAnalyzer().extract_relationships(schema.tables)
    service = OptimizationService()
    suggestions = service.sort_by_priority(
        service.analyze_schema(schema.tables, relationships, schema.environment)
    )
"""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from schema_lens.environment import Environment
from schema_lens.schema.models import Relationship, TableInfo
from schema_lens.scoring.calculator import ICECalculator
from schema_lens.scoring.ice import ICEPriority, ICEScore

_PRIORITY_RANK = {ICEPriority.HIGH: 0, ICEPriority.MEDIUM: 1, ICEPriority.LOW: 2}


class OptimizationType(StrEnum):
    MISSING_INDEX = "missing_index"
    MISSING_PRIMARY_KEY = "missing_primary_key"
    INEFFICIENT_TYPE = "inefficient_type"
    NULLABLE_FOREIGN_KEY = "nullable_foreign_key"
    REDUNDANT_INDEX = "redundant_index"


@dataclass(frozen=True)
class Optimization:
    """A suggested schema improvement.

    When ``ice_score`` is given, ``priority`` must equal its priority; use
    ``Optimization.with_ice_score`` to derive it.
    """

    type: OptimizationType
    table: str
    reason: str
    suggestion: str
    priority: ICEPriority
    column: str | None = None
    ice_score: ICEScore | None = None

    def __post_init__(self) -> None:
        for name in ("table", "reason", "suggestion"):
            if not getattr(self, name).strip():
                raise ValueError(f"Optimization {name} cannot be empty")
        object.__setattr__(self, "type", OptimizationType(self.type))
        object.__setattr__(self, "priority", ICEPriority(self.priority))
        if self.ice_score is not None and self.priority is not self.ice_score.priority:
            raise ValueError(
                f"Priority '{self.priority}' does not match ICE priority "
                f"'{self.ice_score.priority}'"
            )

    @classmethod
    def with_ice_score(
        cls,
        type: OptimizationType,
        table: str,
        reason: str,
        suggestion: str,
        ice_score: ICEScore,
        column: str | None = None,
    ) -> "Optimization":
        return cls(type, table, reason, suggestion, ice_score.priority, column, ice_score)

    @property
    def location(self) -> str:
        return f"{self.table}.{self.column}" if self.column else self.table

    @property
    def description(self) -> str:
        text = f"[{self.priority.upper()}] {self.type} on {self.location}: {self.reason}"
        if self.ice_score is not None:
            text += f" ({self.ice_score.description})"
        return text

    def is_high_priority(self) -> bool:
        return self.priority is ICEPriority.HIGH

    def affects_column(self, column_name: str) -> bool:
        return self.column == column_name

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "table": self.table,
            "column": self.column,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "priority": self.priority.value,
            "ice_score": self.ice_score.to_dict() if self.ice_score else None,
        }


@dataclass(frozen=True)
class OptimizationSummary:
    total: int
    by_priority: dict[str, int]
    by_type: dict[str, int]


def _is_strict_prefix(shorter: Sequence[str], longer: Sequence[str]) -> bool:
    return len(shorter) < len(longer) and tuple(longer[: len(shorter)]) == tuple(shorter)


class OptimizationService:
    """Finds and ranks optimization opportunities."""

    def __init__(self, calculator: ICECalculator | None = None):
        self._calculator = calculator or ICECalculator()

    def analyze_schema(
        self,
        tables: Sequence[TableInfo],
        relationships: Sequence[Relationship],
        environment: Environment = Environment.DEVELOPMENT,
    ) -> list[Optimization]:
        """Run every schema-wide check. Redundant indexes are not included."""
        return [
            *self.check_missing_primary_keys(tables, environment),
            *self.check_missing_indexes(tables, relationships, environment),
            *self.check_nullable_foreign_keys(tables, environment),
        ]

    def check_missing_primary_keys(
        self, tables: Sequence[TableInfo], environment: Environment = Environment.DEVELOPMENT
    ) -> list[Optimization]:
        return [
            Optimization.with_ice_score(
                OptimizationType.MISSING_PRIMARY_KEY,
                table.name,
                "Table without primary key may cause replication and uniqueness issues",
                f"ALTER TABLE {table.name} ADD COLUMN id INTEGER PRIMARY KEY",
                self._calculator.calculate_for_missing_primary_key(table, tables, environment),
            )
            for table in tables
            if not table.is_view() and not table.has_primary_key()
        ]

    def check_missing_indexes(
        self,
        tables: Sequence[TableInfo],
        relationships: Sequence[Relationship],
        environment: Environment = Environment.DEVELOPMENT,
    ) -> list[Optimization]:
        """Foreign key columns with no index covering them.

        A column counts as frequently joined when the table it references
        is the target of more than one relationship.
        """
        incoming = Counter(rel.to_table for rel in relationships)
        optimizations = []

        for table in tables:
            for column in table.foreign_key_columns():
                if table.has_index_on_column(column):
                    continue
                referenced = next(
                    (
                        rel.to_table
                        for rel in relationships
                        if rel.from_table == table.name and rel.from_column == column
                    ),
                    None,
                )
                frequently_joined = referenced is not None and incoming[referenced] > 1
                optimizations.append(
                    Optimization.with_ice_score(
                        OptimizationType.MISSING_INDEX,
                        table.name,
                        f"Foreign key column '{column}' without index may cause slow joins",
                        f"CREATE INDEX idx_{table.name}_{column} ON {table.name}({column})",
                        self._calculator.calculate_for_missing_foreign_key_index(
                            table.name, column, frequently_joined, len(tables), environment
                        ),
                        column,
                    )
                )

        return optimizations

    def check_nullable_foreign_keys(
        self, tables: Sequence[TableInfo], environment: Environment = Environment.DEVELOPMENT
    ) -> list[Optimization]:
        optimizations = []

        for table in tables:
            references = {fk.column: fk.references_table for fk in table.foreign_keys}
            for column_name in table.foreign_key_columns():
                column = table.get_column(column_name)
                if column is None or not column.is_nullable:
                    continue
                optimizations.append(
                    Optimization.with_ice_score(
                        OptimizationType.NULLABLE_FOREIGN_KEY,
                        table.name,
                        f"Foreign key column '{column_name}' is nullable - "
                        "consider if relationship is truly optional",
                        f"Review business logic: Should {table.name}.{column_name} "
                        f"always reference {references[column_name]}?",
                        self._calculator.calculate_for_nullable_foreign_key(
                            table.name, column_name, environment
                        ),
                        column_name,
                    )
                )

        return optimizations

    def check_redundant_indexes(self, table: TableInfo) -> list[Optimization]:
        """Indexes whose columns are a strict leading prefix of another index.

        Example: an index on ``(user_id)`` is covered by one on
        ``(user_id, created_at)``. Reported at low priority without an ICE
        score.
        """
        optimizations = []

        for index in table.indexes:
            for other in table.indexes:
                if index is other or not _is_strict_prefix(index.columns, other.columns):
                    continue
                optimizations.append(
                    Optimization(
                        OptimizationType.REDUNDANT_INDEX,
                        table.name,
                        f"Index {index.name} is redundant - covered by {other.name}",
                        f"DROP INDEX {index.name}",
                        ICEPriority.LOW,
                    )
                )

        return optimizations

    # ------------------------------------------------------------------
    # Filtering and ranking
    # ------------------------------------------------------------------

    def filter_by_priority(
        self, optimizations: Sequence[Optimization], priority: ICEPriority | str
    ) -> list[Optimization]:
        priority = ICEPriority(priority)
        return [opt for opt in optimizations if opt.priority is priority]

    def filter_by_type(
        self, optimizations: Sequence[Optimization], type: OptimizationType | str
    ) -> list[Optimization]:
        type = OptimizationType(type)
        return [opt for opt in optimizations if opt.type is type]

    def filter_by_table(self, optimizations: Sequence[Optimization], table_name: str) -> list[Optimization]:
        return [opt for opt in optimizations if opt.table == table_name]

    def sort_by_priority(self, optimizations: Sequence[Optimization]) -> list[Optimization]:
        """High before medium before low; within a priority, stronger ICE first."""
        return sorted(
            optimizations,
            key=lambda opt: (
                _PRIORITY_RANK[opt.priority],
                -(opt.ice_score.combined if opt.ice_score else 0.0),
            ),
        )

    def summarize(self, optimizations: Sequence[Optimization]) -> OptimizationSummary:
        by_type = Counter(opt.type.value for opt in optimizations)
        return OptimizationSummary(
            total=len(optimizations),
            by_priority={
                priority.value: len(self.filter_by_priority(optimizations, priority))
                for priority in ICEPriority
            },
            by_type=dict(by_type),
        )
