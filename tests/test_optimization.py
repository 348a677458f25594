"""Tests for OptimizationService suggestions."""

import pytest

from schema_lens.environment import Environment
from schema_lens.schema.models import Column, ForeignKey, Index, TableInfo
from schema_lens.schema.optimization import Optimization, OptimizationService, OptimizationType
from schema_lens.schema.relationships import RelationshipAnalyzer
from schema_lens.scoring.ice import ICEPriority, ICEScore


def pk(name: str = "id") -> Column:
    return Column(name=name, type="INTEGER", is_nullable=False, is_primary_key=True)


def fk_table(name: str, column: str, references: str, nullable: bool = False, indexed: bool = False) -> TableInfo:
    return TableInfo(
        name=name,
        columns=[pk(), Column(name=column, type="INTEGER", is_nullable=nullable)],
        indexes=[Index(name=f"idx_{name}_{column}", table_name=name, columns=[column])] if indexed else [],
        foreign_keys=[
            ForeignKey(table=name, column=column, references_table=references, references_column="id"),
        ],
    )


@pytest.fixture
def service() -> OptimizationService:
    return OptimizationService()


def analyze(service: OptimizationService, tables: list[TableInfo], environment=Environment.DEVELOPMENT):
    relationships = RelationshipAnalyzer().extract_relationships(tables)
    return service.analyze_schema(tables, relationships, environment)


class TestOptimizationModel:
    """Optimization record."""

    def test_with_ice_score_derives_priority(self) -> None:
        """Priority comes from the ICE score."""
        opt = Optimization.with_ice_score(
            OptimizationType.MISSING_INDEX, "orders", "slow joins", "CREATE INDEX ...", ICEScore(9, 9, 9), "user_id"
        )
        assert opt.priority is ICEPriority.HIGH
        assert opt.is_high_priority()
        assert opt.location == "orders.user_id"
        assert opt.affects_column("user_id")

    def test_priority_must_match_ice(self) -> None:
        """Inconsistent priority is rejected."""
        with pytest.raises(ValueError, match="does not match ICE priority"):
            Optimization(
                OptimizationType.MISSING_INDEX, "orders", "r", "s", ICEPriority.LOW, ice_score=ICEScore(9, 9, 9)
            )

    @pytest.mark.parametrize("field", ["table", "reason", "suggestion"])
    def test_blank_fields_rejected(self, field: str) -> None:
        """Table, reason and suggestion are required."""
        values = {"table": "orders", "reason": "r", "suggestion": "s"}
        values[field] = "  "
        with pytest.raises(ValueError):
            Optimization(type=OptimizationType.REDUNDANT_INDEX, priority=ICEPriority.LOW, **values)

    def test_description_and_to_dict(self) -> None:
        """Readable and serializable forms."""
        opt = Optimization(OptimizationType.REDUNDANT_INDEX, "orders", "covered", "DROP INDEX a", "low")
        assert opt.description == "[LOW] redundant_index on orders: covered"
        assert opt.to_dict() == {
            "type": "redundant_index",
            "table": "orders",
            "column": None,
            "reason": "covered",
            "suggestion": "DROP INDEX a",
            "priority": "low",
            "ice_score": None,
        }


class TestMissingPrimaryKeys:
    """Tables without a primary key."""

    def test_referenced_table_in_production_is_high(self, service: OptimizationService) -> None:
        """Breakdown 9.5 / 9.0 / 7.8."""
        logs = TableInfo(name="logs", columns=[Column(name="id", type="INTEGER")])
        tables = [logs, fk_table("entries", "logs_id", "logs", indexed=True)]
        (opt,) = service.check_missing_primary_keys(tables, Environment.PRODUCTION)
        assert opt.type is OptimizationType.MISSING_PRIMARY_KEY
        assert opt.table == "logs"
        assert opt.suggestion == "ALTER TABLE logs ADD COLUMN id INTEGER PRIMARY KEY"
        assert (opt.ice_score.insight, opt.ice_score.context, opt.ice_score.execution) == (9.5, 9.0, 7.8)
        assert opt.ice_score.combined == pytest.approx(6.669)
        assert opt.priority is ICEPriority.HIGH

    def test_unreferenced_in_development_is_medium(self, service: OptimizationService) -> None:
        """Breakdown 9.0 / 4.7 / 7.8."""
        tables = [TableInfo(name="logs", columns=[Column(name="line", type="TEXT")])]
        (opt,) = service.check_missing_primary_keys(tables)
        assert (opt.ice_score.insight, opt.ice_score.context, opt.ice_score.execution) == (9.0, 4.7, 7.8)
        assert opt.priority is ICEPriority.MEDIUM

    def test_views_skipped(self, service: OptimizationService) -> None:
        """Views never need a primary key."""
        view = TableInfo(name="recent", kind="view", columns=[Column(name="id", type="INTEGER")])
        assert service.check_missing_primary_keys([view]) == []


class TestMissingIndexes:
    """Foreign key columns without an index."""

    def test_unindexed_foreign_key(self, service: OptimizationService) -> None:
        """One suggestion with the canonical index name."""
        users = TableInfo(name="users", columns=[pk()])
        orders = fk_table("orders", "user_id", "users")
        (opt,) = service.check_missing_indexes(
            [users, orders], RelationshipAnalyzer().extract_relationships([users, orders])
        )
        assert opt.column == "user_id"
        assert opt.reason == "Foreign key column 'user_id' without index may cause slow joins"
        assert opt.suggestion == "CREATE INDEX idx_orders_user_id ON orders(user_id)"
        assert opt.priority is ICEPriority.LOW

    def test_indexed_foreign_key_skipped(self, service: OptimizationService) -> None:
        """Covered columns produce nothing."""
        users = TableInfo(name="users", columns=[pk()])
        orders = fk_table("orders", "user_id", "users", indexed=True)
        assert service.check_missing_indexes([users, orders], []) == []

    def test_frequently_joined_in_production(self, service: OptimizationService) -> None:
        """Referenced by two tables: breakdown 8.8 / 7.0 / 9.4."""
        tables = [
            TableInfo(name="users", columns=[pk()]),
            fk_table("orders", "user_id", "users"),
            fk_table("reviews", "user_id", "users", indexed=True),
        ]
        relationships = RelationshipAnalyzer().extract_relationships(tables)
        (opt,) = service.check_missing_indexes(tables, relationships, Environment.PRODUCTION)
        assert opt.table == "orders"
        assert (opt.ice_score.insight, opt.ice_score.context, opt.ice_score.execution) == (8.8, 7.0, 9.4)
        assert opt.priority is ICEPriority.MEDIUM


class TestNullableForeignKeys:
    """Nullable foreign key columns."""

    def test_production_score(self, service: OptimizationService) -> None:
        """Low priority even in production."""
        tables = [TableInfo(name="users", columns=[pk()]), fk_table("orders", "user_id", "users", nullable=True)]
        (opt,) = service.check_nullable_foreign_keys(tables, Environment.PRODUCTION)
        assert opt.reason == (
            "Foreign key column 'user_id' is nullable - consider if relationship is truly optional"
        )
        assert opt.suggestion == "Review business logic: Should orders.user_id always reference users?"
        assert opt.ice_score.combined == pytest.approx(2.184)
        assert opt.priority is ICEPriority.LOW

    def test_development_score(self, service: OptimizationService) -> None:
        """Lower criticality in development."""
        tables = [fk_table("orders", "user_id", "users", nullable=True)]
        (opt,) = service.check_nullable_foreign_keys(tables)
        assert opt.ice_score.combined == pytest.approx(1.248)

    def test_not_null_skipped(self, service: OptimizationService) -> None:
        """Required foreign keys produce nothing."""
        assert service.check_nullable_foreign_keys([fk_table("orders", "user_id", "users")]) == []


class TestRedundantIndexes:
    """Indexes covered by a longer index."""

    def test_strict_prefix_is_redundant(self, service: OptimizationService) -> None:
        """(user_id) is covered by (user_id, created_at)."""
        table = TableInfo(
            name="orders",
            columns=[pk(), Column(name="user_id", type="INTEGER"), Column(name="created_at", type="TEXT")],
            indexes=[
                Index(name="idx_user", table_name="orders", columns=["user_id"]),
                Index(name="idx_user_created", table_name="orders", columns=["user_id", "created_at"]),
                Index(name="idx_created", table_name="orders", columns=["created_at"]),
            ],
        )
        (opt,) = service.check_redundant_indexes(table)
        assert opt.reason == "Index idx_user is redundant - covered by idx_user_created"
        assert opt.suggestion == "DROP INDEX idx_user"
        assert opt.priority is ICEPriority.LOW
        assert opt.ice_score is None

    def test_identical_columns_not_redundant(self, service: OptimizationService) -> None:
        """Only strict prefixes count."""
        table = TableInfo(
            name="t",
            columns=[Column(name="a", type="TEXT")],
            indexes=[Index(name="i1", table_name="t", columns=["a"]), Index(name="i2", table_name="t", columns=["a"])],
        )
        assert service.check_redundant_indexes(table) == []

    def test_not_part_of_analyze_schema(self, service: OptimizationService) -> None:
        """The schema-wide run leaves redundant indexes out."""
        table = TableInfo(
            name="t",
            columns=[pk(), Column(name="a", type="TEXT"), Column(name="b", type="TEXT")],
            indexes=[
                Index(name="i1", table_name="t", columns=["a"]),
                Index(name="i2", table_name="t", columns=["a", "b"]),
            ],
        )
        assert analyze(service, [table]) == []


class TestRanking:
    """Filtering, sorting and summary."""

    def _optimizations(self, service: OptimizationService) -> list[Optimization]:
        tables = [
            TableInfo(name="logs", columns=[Column(name="line", type="TEXT")]),
            TableInfo(name="users", columns=[pk()]),
            fk_table("orders", "user_id", "users", nullable=True),
        ]
        return analyze(service, tables)

    def test_analyze_schema_runs_every_check(self, service: OptimizationService) -> None:
        """Primary key, index and nullability checks, in that order."""
        types = [opt.type for opt in self._optimizations(service)]
        assert types == [
            OptimizationType.MISSING_PRIMARY_KEY,
            OptimizationType.MISSING_INDEX,
            OptimizationType.NULLABLE_FOREIGN_KEY,
        ]

    def test_sort_by_priority(self, service: OptimizationService) -> None:
        """Priority rank first, then ICE score descending."""
        ordered = service.sort_by_priority(self._optimizations(service))
        assert ordered[0].type is OptimizationType.MISSING_PRIMARY_KEY
        low = [opt for opt in ordered if opt.priority is ICEPriority.LOW]
        assert [opt.type for opt in low] == [OptimizationType.MISSING_INDEX, OptimizationType.NULLABLE_FOREIGN_KEY]

    def test_filters(self, service: OptimizationService) -> None:
        """By priority, type and table."""
        opts = self._optimizations(service)
        assert len(service.filter_by_priority(opts, "low")) == 2
        assert len(service.filter_by_type(opts, OptimizationType.MISSING_INDEX)) == 1
        assert [opt.type for opt in service.filter_by_table(opts, "logs")] == [
            OptimizationType.MISSING_PRIMARY_KEY
        ]

    def test_summarize(self, service: OptimizationService) -> None:
        """Counts by priority and type."""
        summary = service.summarize(self._optimizations(service))
        assert summary.total == 3
        assert summary.by_priority == {"high": 0, "medium": 1, "low": 2}
        assert summary.by_type["nullable_foreign_key"] == 1
