"""Scenario-level ICE scoring.

Wraps the analysis factories so callers score a finding in one call
instead of assembling insight, context and execution by hand.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from schema_lens.environment import Environment
from schema_lens.scoring.analysis import (
    ContextAnalysis,
    ExecutionPlan,
    InsightAnalysis,
    StructuralDifferenceKind,
)
from schema_lens.scoring.ice import ICEScore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from schema_lens.schema.models import TableInfo


@dataclass(frozen=True)
class ScoredAnalysis:
    """An ICE score together with the three analyses it was built from."""

    ice_score: ICEScore
    insight: InsightAnalysis
    context: ContextAnalysis
    execution: ExecutionPlan


class ICECalculator:
    """Builds ICE scores for the standard finding kinds."""

    def calculate_for_missing_primary_key(
        self,
        table: "TableInfo",
        tables: "Sequence[TableInfo]",
        environment: Environment,
    ) -> ICEScore:
        """Score a table without a primary key.

        The score is raised when any other table holds a foreign key to it.
        """
        is_referenced = any(
            fk.references_table == table.name
            for other in tables
            for fk in other.foreign_keys
        )
        return self._score(
            InsightAnalysis.for_missing_primary_key(table.name, is_referenced),
            ContextAnalysis.for_missing_primary_key(environment, is_referenced),
            ExecutionPlan.for_add_primary_key(table.name),
        ).ice_score

    def calculate_for_missing_foreign_key_index(
        self,
        table_name: str,
        column_name: str,
        frequently_joined: bool,
        table_count: int,
        environment: Environment,
    ) -> ICEScore:
        return self._score(
            InsightAnalysis.for_missing_foreign_key_index(table_name, column_name, frequently_joined),
            ContextAnalysis.for_missing_foreign_key_index(environment, frequently_joined, table_count),
            ExecutionPlan.for_create_index(table_name, column_name),
        ).ice_score

    def calculate_for_nullable_foreign_key(
        self, table_name: str, column_name: str, environment: Environment
    ) -> ICEScore:
        return self._score(
            InsightAnalysis.for_nullable_foreign_key(table_name, column_name),
            ContextAnalysis.for_nullable_foreign_key(environment),
            ExecutionPlan.for_nullable_foreign_key_review(table_name, column_name),
        ).ice_score

    def calculate_for_schema_difference(
        self,
        difference_type: StructuralDifferenceKind,
        name: str,
        source_environment: Environment,
        target_environment: Environment,
        ddl: str,
    ) -> ICEScore:
        """Score a structural drift finding (missing table/column, type mismatch).

        Structural differences are scored as a single-change migration from
        *source_environment* to *target_environment*.
        """
        is_production = Environment(target_environment) is Environment.PRODUCTION
        return self._score(
            InsightAnalysis.for_schema_difference(difference_type, name, is_production),
            ContextAnalysis.for_schema_migration(source_environment, target_environment, 1),
            ExecutionPlan.for_schema_difference(difference_type, name, ddl),
        ).ice_score

    def calculate_with_components(
        self,
        insight: InsightAnalysis,
        context: ContextAnalysis,
        execution: ExecutionPlan,
    ) -> ScoredAnalysis:
        return self._score(insight, context, execution)

    @staticmethod
    def _score(
        insight: InsightAnalysis, context: ContextAnalysis, execution: ExecutionPlan
    ) -> ScoredAnalysis:
        return ScoredAnalysis(
            ice_score=ICEScore(insight.score, context.score, execution.score),
            insight=insight,
            context=context,
            execution=execution,
        )
