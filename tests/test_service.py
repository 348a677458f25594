"""Tests for environment-level operations against SQLite databases."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from schema_lens.config import DatabaseProfile, EnvironmentNotConfiguredError, LensConfig
from schema_lens.environment import Environment
from schema_lens.schema.differences import DifferenceType
from schema_lens.schema.models import Column, DatabaseSchema, Index, TableInfo
from schema_lens.schema.optimization import OptimizationType
from schema_lens.service import (
    SameDatabaseError,
    analyze_database,
    build_optimization_report,
    compare_environments,
    fetch_schema,
    get_relationships,
    resolve_url,
    suggest_optimizations,
    validate_database,
)

DEV_DDL = [
    "CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT NOT NULL)",
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        user_id INTEGER NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
]
PROD_DDL = ["CREATE TABLE users (id INTEGER PRIMARY KEY)"]


def create_database(path: Path, statements: list[str]) -> str:
    url = f"sqlite:///{path}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))
    engine.dispose()
    return url


@pytest.fixture
def config(tmp_path: Path) -> LensConfig:
    return LensConfig(
        environments={
            "dev": DatabaseProfile(url=create_database(tmp_path / "dev.db", DEV_DDL), name="app-dev"),
            "prod": DatabaseProfile(url=create_database(tmp_path / "prod.db", PROD_DDL)),
        }
    )


class TestResolveUrl:
    """Password placeholder substitution."""

    def test_password_is_url_quoted(self) -> None:
        """Special characters are percent-encoded."""
        profile = DatabaseProfile(url="postgresql://app:[YOUR-PASSWORD]@db/app", db_password="p@ss/word")
        assert resolve_url(profile) == "postgresql://app:p%40ss%2Fword@db/app"

    def test_no_placeholder(self) -> None:
        """URLs without the placeholder are unchanged."""
        profile = DatabaseProfile(url="sqlite:///dev.db", db_password="unused")
        assert resolve_url(profile) == "sqlite:///dev.db"

    def test_no_password(self) -> None:
        """The placeholder stays when no password is configured."""
        profile = DatabaseProfile(url="postgresql://app:[YOUR-PASSWORD]@db/app")
        assert resolve_url(profile) == "postgresql://app:[YOUR-PASSWORD]@db/app"


class TestFetchSchema:
    """Introspecting a configured environment."""

    def test_named_profile(self, config: LensConfig) -> None:
        """The profile name is recorded on the snapshot."""
        schema = fetch_schema(config, "development")
        assert schema.name == "app-dev"
        assert schema.environment is Environment.DEVELOPMENT
        assert schema.table_names() == ["orders", "users"]

    def test_unnamed_profile_uses_environment(self, config: LensConfig) -> None:
        """Without a name the environment is used."""
        assert fetch_schema(config, "prod").name == "production"

    def test_not_configured(self, config: LensConfig) -> None:
        """Staging has no profile."""
        with pytest.raises(EnvironmentNotConfiguredError):
            fetch_schema(config, "staging")


class TestCompareEnvironments:
    """Drift between two configured databases."""

    def test_differences(self, config: LensConfig) -> None:
        """orders table and users.email column are missing in production."""
        report = compare_environments(config, "dev", "prod")
        result = report.result
        assert (result.source_environment, result.target_environment) == ("development", "production")
        assert result.summary.missing_tables == 1
        assert result.summary.missing_columns == 1
        assert {str(d.location) for d in result.differences} == {"orders", "users.email"}
        assert report.execution_time_ms >= 0

    def test_reverse_direction(self, config: LensConfig) -> None:
        """The same drift seen from production is extra objects."""
        result = compare_environments(config, "prod", "dev").result
        assert {d.type for d in result.differences} == {DifferenceType.EXTRA_TABLE, DifferenceType.EXTRA_COLUMN}

    def test_to_dict(self, config: LensConfig) -> None:
        """Timing is added to the result dictionary."""
        data = compare_environments(config, "dev", "prod").to_dict()
        assert data["summary"]["total_differences"] == 2
        assert "execution_time_ms" in data

    def test_same_environment(self, config: LensConfig) -> None:
        """An environment cannot be compared with itself, even by alias."""
        with pytest.raises(SameDatabaseError, match="Cannot compare a database with itself"):
            compare_environments(config, "dev", "development")

    def test_same_database_url(self, tmp_path: Path) -> None:
        """Two environments pointing at one database are rejected."""
        url = create_database(tmp_path / "shared.db", PROD_DDL)
        config = LensConfig(
            environments={"dev": DatabaseProfile(url=url), "staging": DatabaseProfile(url=url)}
        )
        with pytest.raises(SameDatabaseError, match="point to the same database"):
            compare_environments(config, "dev", "staging")

    def test_same_database_is_value_error(self) -> None:
        """Callers catching ValueError also catch SameDatabaseError."""
        assert issubclass(SameDatabaseError, ValueError)


class TestSingleSchemaReports:
    """Reports built from one environment."""

    def test_relationships(self, config: LensConfig) -> None:
        """Graph, population order and cascade chains."""
        report = get_relationships(config, "dev", cascade_from="users")
        assert report.relationship_count == 1
        assert report.required_count == 1
        assert report.graph.nodes == ["orders", "users"]
        assert report.cycles == []
        assert report.population_order == ["users", "orders"]
        assert report.cascade_chains == [["users", "orders"]]
        assert report.to_dict()["cascade_from"] == "users"

    def test_relationships_for_table(self, config: LensConfig) -> None:
        """Filtering by a table without relationships leaves the graph whole."""
        report = get_relationships(config, "dev", table_name="audit")
        assert report.relationships == []
        assert report.graph.nodes == ["orders", "users"]
        assert report.cascade_chains == []

    def test_optimizations(self, config: LensConfig) -> None:
        """The unindexed orders.user_id foreign key."""
        report = suggest_optimizations(config, "dev")
        (opt,) = report.optimizations
        assert opt.type is OptimizationType.MISSING_INDEX
        assert opt.location == "orders.user_id"
        assert report.to_dict()["optimization_count"] == 1

    def test_optimization_report_includes_redundant_indexes(self) -> None:
        """Redundant indexes are added to the schema-wide checks."""
        table = TableInfo(
            name="t",
            columns=[
                Column(name="id", type="INTEGER", is_primary_key=True),
                Column(name="a", type="TEXT"),
                Column(name="b", type="TEXT"),
            ],
            indexes=[
                Index(name="i1", table_name="t", columns=["a"]),
                Index(name="i2", table_name="t", columns=["a", "b"]),
            ],
        )
        report = build_optimization_report(DatabaseSchema(name="app", environment="dev", tables=[table]))
        assert [opt.type for opt in report.optimizations] == [OptimizationType.REDUNDANT_INDEX]
        assert report.summary.by_priority["low"] == 1

    def test_analysis(self, config: LensConfig) -> None:
        """Statistics and problem lists."""
        analysis = analyze_database(config, "dev")
        assert analysis.statistics.total_tables == 2
        assert analysis.statistics.total_foreign_keys == 1
        assert analysis.problematic_tables == ["orders"]
        assert analysis.orphaned_tables == []
        assert analysis.column_types == {"INTEGER": 3, "TEXT": 1}
        assert analysis.to_dict()["environment"] == "development"

    def test_validation(self, config: LensConfig) -> None:
        """Tables without indexes are informational only."""
        report = validate_database(config, "dev")
        assert report.is_valid
        assert report.info_count == 2
        assert report.database_name == "app-dev"
