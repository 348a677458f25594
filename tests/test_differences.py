"""Tests for SchemaDifference and SchemaComparisonResult."""

import pytest

from schema_lens.schema.differences import (
    DifferenceLocation,
    DifferenceType,
    SchemaComparisonResult,
    SchemaDifference,
    Severity,
)
from schema_lens.scoring.analysis import ContextAnalysis, ExecutionPlan, InsightAnalysis


def make_difference(
    insight: float,
    context: float,
    execution: float,
    type: DifferenceType = DifferenceType.MISSING_COLUMN,
    table: str = "users",
    column: str | None = "email",
    sql: str = "ALTER TABLE users ADD COLUMN email TEXT",
) -> SchemaDifference:
    return SchemaDifference(
        type=type,
        location=DifferenceLocation(table_name=table, column_name=column),
        description=f"{type} on {table}",
        source_environment="development",
        target_environment="production",
        insight=InsightAnalysis({"value": insight}, "insight"),
        context=ContextAnalysis({"value": context}, "context"),
        execution=ExecutionPlan(sql, {"value": execution}, "execution"),
    )


class TestDifferenceLocation:
    """Location formatting."""

    def test_table_only(self) -> None:
        """Table name alone."""
        assert str(DifferenceLocation(table_name="orders")) == "orders"

    def test_table_and_column(self) -> None:
        """Qualified column."""
        assert str(DifferenceLocation(table_name="orders", column_name="user_id")) == "orders.user_id"


class TestSchemaDifference:
    """Single finding."""

    def test_ice_score_from_analyses(self) -> None:
        """Combined score uses the three analysis scores."""
        difference = make_difference(9, 8, 10)
        assert difference.ice_score.combined == pytest.approx(7.2)

    def test_empty_table_name_rejected(self) -> None:
        """Location must name a table."""
        with pytest.raises(ValueError):
            make_difference(5, 5, 5, table=" ")

    def test_empty_description_rejected(self) -> None:
        """Description is required."""
        with pytest.raises(ValueError):
            SchemaDifference(
                type=DifferenceType.MISSING_TABLE,
                location=DifferenceLocation(table_name="t"),
                description="",
                source_environment="development",
                target_environment="production",
                insight=InsightAnalysis({"v": 5}, "i"),
                context=ContextAnalysis({"v": 5}, "c"),
                execution=ExecutionPlan("-- sql", {"v": 5}, "e"),
            )

    def test_type_accepts_string(self) -> None:
        """String types are coerced to DifferenceType."""
        difference = make_difference(5, 5, 5, type="missing_index")
        assert difference.type is DifferenceType.MISSING_INDEX

    @pytest.mark.parametrize(
        "type, expected",
        [
            (DifferenceType.MISSING_TABLE, Severity.CRITICAL),
            (DifferenceType.MISSING_COLUMN, Severity.CRITICAL),
            (DifferenceType.TYPE_MISMATCH, Severity.HIGH),
            (DifferenceType.MISSING_INDEX, Severity.HIGH),
            (DifferenceType.EXTRA_TABLE, Severity.HIGH),
        ],
    )
    def test_high_priority_severity(self, type: DifferenceType, expected: Severity) -> None:
        """High ICE priority escalates missing tables and columns to critical."""
        assert make_difference(9, 9, 9, type=type).severity is expected

    def test_medium_and_low_severity(self) -> None:
        """Medium and low map directly."""
        assert make_difference(7, 7, 7).severity is Severity.MEDIUM
        assert make_difference(5, 5, 5).severity is Severity.LOW

    def test_predicates(self) -> None:
        """Classification helpers."""
        difference = make_difference(9, 9, 9, type=DifferenceType.MISSING_TABLE, column=None)
        assert difference.is_critical()
        assert difference.is_high_severity()
        assert difference.is_structural_difference()
        assert not difference.is_constraint_difference()
        assert difference.affects_table("users")
        assert not difference.affects_table("orders")

    def test_full_description(self) -> None:
        """Severity, location and direction."""
        difference = make_difference(7, 7, 7)
        assert difference.full_description == (
            "[MEDIUM] missing_column on users at users.email (development → production)"
        )

    def test_ice_analysis_lines(self) -> None:
        """One line per dimension after the score."""
        lines = make_difference(7, 7, 7).ice_analysis.splitlines()
        assert lines[0].startswith("ICE Score: 3.43")
        assert lines[1] == "Insight: 7.0/10 - insight"
        assert lines[3] == "Execution: 7.0/10 - execution"

    def test_to_dict(self) -> None:
        """Serializable form includes the breakdown and SQL."""
        data = make_difference(7, 7, 7).to_dict()
        assert data["type"] == "missing_column"
        assert data["severity"] == "medium"
        assert data["location"]["column_name"] == "email"
        assert data["ice_score"]["combined"] == 3.43
        assert data["execution"]["sql"] == "ALTER TABLE users ADD COLUMN email TEXT"


class TestSchemaComparisonResult:
    """Aggregate result."""

    def test_sorted_strictly_descending(self) -> None:
        """7.2, 3.43, 1.25 regardless of input order."""
        result = SchemaComparisonResult(
            "development",
            "production",
            2,
            2,
            [make_difference(7, 7, 7), make_difference(5, 5, 5), make_difference(9, 8, 10)],
        )
        assert [d.ice_score.combined for d in result.differences] == pytest.approx([7.2, 3.43, 1.25])

    def test_ties_keep_detection_order(self) -> None:
        """Equal scores keep their original order."""
        first = make_difference(7, 7, 7, table="a")
        second = make_difference(7, 7, 7, table="b")
        result = SchemaComparisonResult("development", "production", 2, 2, [first, second])
        assert [d.location.table_name for d in result.differences] == ["a", "b"]

    def test_negative_counts_rejected(self) -> None:
        """Table counts cannot be negative."""
        with pytest.raises(ValueError):
            SchemaComparisonResult("development", "production", -1, 0)

    def test_summary_counts(self) -> None:
        """Severity and type counts."""
        result = SchemaComparisonResult(
            "development",
            "production",
            3,
            2,
            [
                make_difference(9, 9, 9, type=DifferenceType.MISSING_TABLE, table="orders", column=None),
                make_difference(9, 9, 9, type=DifferenceType.MISSING_INDEX),
                make_difference(5, 5, 5, type=DifferenceType.EXTRA_COLUMN),
            ],
        )
        s = result.summary
        assert (s.total_differences, s.critical_count, s.high_count, s.medium_count, s.low_count) == (3, 1, 1, 0, 1)
        assert (s.structural_differences, s.constraint_differences) == (2, 1)
        assert (s.missing_tables, s.missing_indexes, s.extra_columns) == (1, 1, 1)
        assert result.has_critical_differences()
        assert result.has_high_severity_differences()
        assert [d.type for d in result.critical_differences()] == [DifferenceType.MISSING_TABLE]
        assert len(result.structural_differences()) == 2
        assert len(result.constraint_differences()) == 1
        assert len(result.differences_for_table("users")) == 2

    def test_identical(self) -> None:
        """No differences."""
        result = SchemaComparisonResult("development", "production", 3, 3)
        assert result.is_identical()
        assert not result.has_high_severity_differences()
        assert "Schemas are identical" in result.format_summary()
        assert result.migration_plan() == "-- No migration needed - schemas are identical"

    def test_format_summary(self) -> None:
        """Counts by severity and type."""
        result = SchemaComparisonResult("development", "production", 2, 1, [make_difference(7, 7, 7)])
        summary = result.format_summary()
        assert summary.startswith("Schema Comparison: development → production")
        assert "Total differences: 1" in summary
        assert "  Medium: 1" in summary
        assert "  Missing columns: 1" in summary

    def test_migration_plan_grouped_by_severity(self) -> None:
        """Critical group first, each finding followed by its SQL."""
        result = SchemaComparisonResult(
            "development",
            "production",
            2,
            1,
            [
                make_difference(5, 5, 5, type=DifferenceType.EXTRA_COLUMN, sql="-- extra column"),
                make_difference(
                    9, 9, 9, type=DifferenceType.MISSING_TABLE, table="orders", column=None,
                    sql="CREATE TABLE orders (id INTEGER);",
                ),
            ],
        )
        plan = result.migration_plan()
        assert plan.startswith("-- Schema Migration Plan\n-- From: development\n-- To: production")
        assert plan.index("-- === CRITICAL ===") < plan.index("CREATE TABLE orders") < plan.index("-- === LOW ===")
        assert "-- === HIGH ===" not in plan

    def test_to_dict(self) -> None:
        """Metadata, summary and differences."""
        result = SchemaComparisonResult("development", "production", 2, 1, [make_difference(7, 7, 7)])
        data = result.to_dict()
        assert data["metadata"]["source_table_count"] == 2
        assert data["summary"]["total_differences"] == 1
        assert len(data["differences"]) == 1
