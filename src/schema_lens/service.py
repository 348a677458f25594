"""Environment-level operations: fetch, compare, analyze.

Ties configuration, introspection and the analysis engine together. The
``build_*`` functions work on snapshots already in hand; the functions
taking a ``LensConfig`` introspect the configured databases first.

Usage:
    from schema_lens.config import load_config
    from schema_lens.service import compare_environments

    report = compare_environments(load_config(), "development", "production")
    print(report.result.format_summary())
"""

import logging
import time
from dataclasses import dataclass, field
from urllib.parse import quote

from schema_lens.config.models import DatabaseProfile, LensConfig
from schema_lens.environment import Environment, parse_environment
from schema_lens.schema.analyzer import SchemaAnalyzer, SchemaStatistics, TableAnalysis
from schema_lens.schema.comparator import SchemaComparator
from schema_lens.schema.differences import SchemaComparisonResult
from schema_lens.schema.introspector import SchemaIntrospector
from schema_lens.schema.models import DatabaseSchema, Relationship
from schema_lens.schema.optimization import Optimization, OptimizationService, OptimizationSummary
from schema_lens.schema.relationships import DependencyGraph, RelationshipAnalyzer
from schema_lens.schema.validation import SchemaValidationReport, validate_schema

logger = logging.getLogger(__name__)


class SameDatabaseError(ValueError):
    """Raised when a comparison's source and target are the same database."""

    pass


# ============================================================================
# Report Models
# ============================================================================


@dataclass
class ComparisonReport:
    """A comparison result with the time spent fetching and comparing."""

    result: SchemaComparisonResult
    execution_time_ms: float

    def to_dict(self) -> dict:
        return {**self.result.to_dict(), "execution_time_ms": round(self.execution_time_ms, 1)}


@dataclass
class RelationshipReport:
    """Relationships of a schema, or of one table when ``table_name`` is set."""

    database_name: str
    environment: Environment
    relationships: list[Relationship]
    graph: DependencyGraph
    cycles: list[list[str]] = field(default_factory=list)
    population_order: list[str] = field(default_factory=list)
    table_name: str | None = None
    cascade_from: str | None = None
    cascade_chains: list[list[str]] = field(default_factory=list)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    @property
    def self_referential_count(self) -> int:
        return sum(1 for rel in self.relationships if rel.is_self_referential())

    @property
    def required_count(self) -> int:
        return sum(1 for rel in self.relationships if rel.is_required())

    @property
    def optional_count(self) -> int:
        return sum(1 for rel in self.relationships if rel.is_optional())

    def to_dict(self) -> dict:
        return {
            "database_name": self.database_name,
            "environment": self.environment.value,
            "table_name": self.table_name,
            "relationship_count": self.relationship_count,
            "self_referential_count": self.self_referential_count,
            "required_count": self.required_count,
            "optional_count": self.optional_count,
            "relationships": [rel.to_dict() for rel in self.relationships],
            "graph": self.graph.to_dict(),
            "cycles": [list(cycle) for cycle in self.cycles],
            "population_order": list(self.population_order),
            "cascade_from": self.cascade_from,
            "cascade_chains": [list(chain) for chain in self.cascade_chains],
        }


@dataclass
class OptimizationReport:
    """Optimization suggestions, highest priority first."""

    database_name: str
    environment: Environment
    optimizations: list[Optimization]
    summary: OptimizationSummary

    def to_dict(self) -> dict:
        return {
            "database_name": self.database_name,
            "environment": self.environment.value,
            "optimization_count": self.summary.total,
            "by_priority": dict(self.summary.by_priority),
            "by_type": dict(self.summary.by_type),
            "optimizations": [opt.to_dict() for opt in self.optimizations],
        }


@dataclass
class DatabaseAnalysis:
    """Statistics and per-table details of one schema."""

    database_name: str
    environment: Environment
    statistics: SchemaStatistics
    tables: list[TableAnalysis]
    column_types: dict[str, int]
    problematic_tables: list[str]
    orphaned_tables: list[str]

    def to_dict(self) -> dict:
        return {
            "database_name": self.database_name,
            "environment": self.environment.value,
            "statistics": self.statistics.model_dump(),
            "tables": [table.model_dump() for table in self.tables],
            "column_types": dict(self.column_types),
            "problematic_tables": list(self.problematic_tables),
            "orphaned_tables": list(self.orphaned_tables),
        }


# ============================================================================
# Profile Resolution
# ============================================================================


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def fetch_schema(config: LensConfig, environment: Environment | str) -> DatabaseSchema:
    """Introspect the database configured for *environment*.

    Raises:
        EnvironmentNotConfiguredError: If the environment has no profile
        ValueError: If the environment name is invalid
    """
    environment = parse_environment(environment)
    profile = config.get_profile(environment)
    name = profile.name or environment.value

    logger.debug(f"Fetching schema for {environment} ({name})")
    with SchemaIntrospector(resolve_url(profile)) as introspector:
        schema = introspector.introspect(name, environment)
    logger.debug(f"Fetched {len(schema.tables)} table(s) for {environment}")
    return schema


# ============================================================================
# Comparison
# ============================================================================


def compare_environments(
    config: LensConfig,
    source: Environment | str,
    target: Environment | str,
) -> ComparisonReport:
    """Fetch both environments and compare source against target.

    Raises:
        SameDatabaseError: If source and target are the same environment or
            resolve to the same database URL
        EnvironmentNotConfiguredError: If either environment has no profile
    """
    source = parse_environment(source)
    target = parse_environment(target)
    if source is target:
        raise SameDatabaseError(
            "Cannot compare a database with itself. Source and target must be different."
        )
    if resolve_url(config.get_profile(source)) == resolve_url(config.get_profile(target)):
        raise SameDatabaseError(
            f"Environments '{source}' and '{target}' point to the same database."
        )

    started = time.perf_counter()
    source_schema = fetch_schema(config, source)
    target_schema = fetch_schema(config, target)
    result = SchemaComparator().compare(source_schema, target_schema, source, target)
    elapsed_ms = (time.perf_counter() - started) * 1000

    logger.debug(
        f"Compared {source} → {target}: {len(result.differences)} difference(s) "
        f"in {elapsed_ms:.1f}ms"
    )
    return ComparisonReport(result=result, execution_time_ms=elapsed_ms)


# ============================================================================
# Single-schema reports
# ============================================================================


def build_relationship_report(
    schema: DatabaseSchema,
    table_name: str | None = None,
    cascade_from: str | None = None,
) -> RelationshipReport:
    """Relationship report of *schema*.

    With *table_name*, only relationships touching that table are listed;
    the graph, cycles and population order always cover the whole schema.
    With *cascade_from*, the ON DELETE CASCADE chains starting at that
    table are included.
    """
    analyzer = RelationshipAnalyzer()
    all_relationships = analyzer.extract_relationships(schema.tables)

    relationships = all_relationships
    if table_name:
        relationships = [
            rel for rel in all_relationships
            if rel.from_table == table_name or rel.to_table == table_name
        ]

    return RelationshipReport(
        database_name=schema.name,
        environment=schema.environment,
        relationships=relationships,
        graph=analyzer.build_dependency_graph(all_relationships),
        cycles=analyzer.detect_circular_dependencies(all_relationships),
        population_order=analyzer.get_population_order(all_relationships),
        table_name=table_name,
        cascade_from=cascade_from,
        cascade_chains=(
            analyzer.get_cascade_chains(cascade_from, all_relationships) if cascade_from else []
        ),
    )


def build_optimization_report(schema: DatabaseSchema) -> OptimizationReport:
    """ICE-scored suggestions for *schema*, including redundant indexes."""
    service = OptimizationService()
    relationships = RelationshipAnalyzer().extract_relationships(schema.tables)

    optimizations = service.analyze_schema(schema.tables, relationships, schema.environment)
    for table in schema.tables:
        optimizations.extend(service.check_redundant_indexes(table))
    optimizations = service.sort_by_priority(optimizations)

    return OptimizationReport(
        database_name=schema.name,
        environment=schema.environment,
        optimizations=optimizations,
        summary=service.summarize(optimizations),
    )


def build_database_analysis(schema: DatabaseSchema) -> DatabaseAnalysis:
    analyzer = SchemaAnalyzer()
    return DatabaseAnalysis(
        database_name=schema.name,
        environment=schema.environment,
        statistics=analyzer.analyze_schema(schema.tables),
        tables=[analyzer.analyze_table(table) for table in schema.tables],
        column_types=analyzer.analyze_column_types(schema.tables),
        problematic_tables=[t.name for t in analyzer.identify_problematic_tables(schema.tables)],
        orphaned_tables=[t.name for t in analyzer.identify_orphaned_tables(schema.tables)],
    )


def get_relationships(
    config: LensConfig,
    environment: Environment | str,
    table_name: str | None = None,
    cascade_from: str | None = None,
) -> RelationshipReport:
    return build_relationship_report(fetch_schema(config, environment), table_name, cascade_from)


def suggest_optimizations(config: LensConfig, environment: Environment | str) -> OptimizationReport:
    return build_optimization_report(fetch_schema(config, environment))


def analyze_database(config: LensConfig, environment: Environment | str) -> DatabaseAnalysis:
    return build_database_analysis(fetch_schema(config, environment))


def validate_database(config: LensConfig, environment: Environment | str) -> SchemaValidationReport:
    return validate_schema(fetch_schema(config, environment))
