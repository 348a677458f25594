"""Schema comparison between two snapshots.

Detects environment drift table-by-table and column-by-column and scores
every finding with ICE. Pure logic: no I/O, never mutates its inputs.

Usage:
    from schema_lens.schema.comparator import SchemaComparator
    from schema_lens.schema.introspector import SchemaIntrospector

    with SchemaIntrospector(dev_url) as introspector:
        source = introspector.introspect("app", "development")
    with SchemaIntrospector(prod_url) as introspector:
        target = introspector.introspect("app", "production")

    result = SchemaComparator().compare(source, target)
    print(result.format_summary())
    print(result.migration_plan())
"""

import logging

from schema_lens.environment import Environment, parse_environment
from schema_lens.schema.differences import (
    DifferenceLocation,
    DifferenceType,
    SchemaComparisonResult,
    SchemaDifference,
)
from schema_lens.schema.models import Column, DatabaseSchema, TableInfo
from schema_lens.scoring.analysis import ContextAnalysis, ExecutionPlan, InsightAnalysis

logger = logging.getLogger(__name__)


def normalize_type(declared_type: str) -> str:
    """Normalize a declared column type by SQLite type affinity.

    Args:
        declared_type: Column type as declared (any case).

    Returns:
        ``INTEGER``, ``TEXT``, ``BLOB`` or ``REAL`` when the affinity rule
        matches, otherwise the upper-cased, trimmed input.

    Examples:
        >>> normalize_type("varchar(255)")
        'TEXT'
        >>> normalize_type("BIGINT")
        'INTEGER'
        >>> normalize_type("Double Precision")
        'REAL'
        >>> normalize_type(" numeric ")
        'NUMERIC'
    """
    normalized = declared_type.upper().strip()

    if "INT" in normalized:
        return "INTEGER"
    if "CHAR" in normalized or "CLOB" in normalized or "TEXT" in normalized:
        return "TEXT"
    if "BLOB" in normalized:
        return "BLOB"
    if "REAL" in normalized or "FLOA" in normalized or "DOUB" in normalized:
        return "REAL"
    return normalized


def generate_create_table_ddl(table: TableInfo) -> str:
    """Rebuild a ``CREATE TABLE`` statement from a table's columns.

    Columns flagged as primary key get ``PRIMARY KEY``; other non-nullable
    columns get ``NOT NULL``. Defaults, indexes and foreign keys are not
    reproduced.

    Examples:
        >>> table = TableInfo(name="users", columns=[
        ...     Column(name="id", type="INTEGER", is_nullable=False, is_primary_key=True),
        ...     Column(name="email", type="TEXT", is_nullable=False),
        ... ])
        >>> print(generate_create_table_ddl(table))
        CREATE TABLE users (
          id INTEGER PRIMARY KEY,
          email TEXT NOT NULL
        );
    """
    definitions = []
    for column in table.columns:
        definition = f"  {column.name} {column.type}"
        if column.is_primary_key:
            definition += " PRIMARY KEY"
        elif not column.is_nullable:
            definition += " NOT NULL"
        definitions.append(definition)

    return "\n".join([f"CREATE TABLE {table.name} (", ",\n".join(definitions), ");"])


def _columns_differ(source: Column, target: Column) -> bool:
    return normalize_type(source.type) != normalize_type(target.type)


class SchemaComparator:
    """Compares two schema snapshots and scores every difference.

    Detection order is missing tables, extra tables, then for each common
    table (in source order) columns, indexes and foreign keys. The result
    re-sorts findings by combined ICE score.
    """

    def compare(
        self,
        source_schema: DatabaseSchema,
        target_schema: DatabaseSchema,
        source_environment: Environment | str | None = None,
        target_environment: Environment | str | None = None,
    ) -> SchemaComparisonResult:
        """Compare *source_schema* against *target_schema*.

        Args:
            source_schema: The reference snapshot (what should exist).
            target_schema: The snapshot checked for drift.
            source_environment: Environment tag of the source. Defaults to
                ``source_schema.environment``.
            target_environment: Environment tag of the target. Defaults to
                ``target_schema.environment``.

        Returns:
            ``SchemaComparisonResult`` with differences sorted by combined
            ICE score, highest first.

        Examples:
            >>> schema = DatabaseSchema(name="app", environment="dev", tables=[
            ...     TableInfo(name="users", columns=[Column(name="id", type="INTEGER")]),
            ... ])
            >>> SchemaComparator().compare(schema, schema).is_identical()
            True
        """
        source_env = parse_environment(source_environment or source_schema.environment)
        target_env = parse_environment(target_environment or target_schema.environment)

        differences: list[SchemaDifference] = []
        differences.extend(self._find_missing_tables(source_schema, target_schema, source_env, target_env))
        differences.extend(self._find_extra_tables(source_schema, target_schema, source_env, target_env))

        target_tables = {table.name: table for table in target_schema.tables}
        for source_table in source_schema.tables:
            target_table = target_tables.get(source_table.name)
            if target_table is None:
                continue
            differences.extend(self._compare_columns(source_table, target_table, source_env, target_env))
            differences.extend(self._compare_indexes(source_table, target_table, source_env, target_env))
            differences.extend(self._compare_foreign_keys(source_table, target_table, source_env, target_env))

        logger.debug(
            f"Compared {source_schema.name} ({source_env}) with "
            f"{target_schema.name} ({target_env}): {len(differences)} difference(s)"
        )

        return SchemaComparisonResult(
            source_environment=source_env.value,
            target_environment=target_env.value,
            source_table_count=len(source_schema.tables),
            target_table_count=len(target_schema.tables),
            differences=tuple(differences),
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _find_missing_tables(
        self,
        source_schema: DatabaseSchema,
        target_schema: DatabaseSchema,
        source_env: Environment,
        target_env: Environment,
    ) -> list[SchemaDifference]:
        target_names = set(target_schema.table_names())
        is_production = target_env is Environment.PRODUCTION
        differences = []

        for table in source_schema.tables:
            if table.name in target_names:
                continue
            ddl = generate_create_table_ddl(table)
            differences.append(
                SchemaDifference(
                    type=DifferenceType.MISSING_TABLE,
                    location=DifferenceLocation(table_name=table.name),
                    description=f"Table '{table.name}' exists in {source_env} but missing in {target_env}",
                    source_environment=source_env.value,
                    target_environment=target_env.value,
                    insight=InsightAnalysis.for_schema_difference("missing_table", table.name, is_production),
                    context=ContextAnalysis.for_schema_migration(source_env, target_env, 1),
                    execution=ExecutionPlan.for_schema_difference("missing_table", table.name, ddl),
                )
            )

        return differences

    def _find_extra_tables(
        self,
        source_schema: DatabaseSchema,
        target_schema: DatabaseSchema,
        source_env: Environment,
        target_env: Environment,
    ) -> list[SchemaDifference]:
        source_names = set(source_schema.table_names())
        differences = []

        for table in target_schema.tables:
            if table.name in source_names:
                continue
            ddl = (
                f"-- Table '{table.name}' exists in {target_env} but not in {source_env}\n"
                f"-- Consider if this should be in {source_env}"
            )
            differences.append(
                SchemaDifference(
                    type=DifferenceType.EXTRA_TABLE,
                    location=DifferenceLocation(table_name=table.name),
                    description=f"Table '{table.name}' exists in {target_env} but not in {source_env}",
                    source_environment=source_env.value,
                    target_environment=target_env.value,
                    insight=InsightAnalysis.for_extra_table(target_env),
                    context=ContextAnalysis.for_environment(target_env, False),
                    execution=ExecutionPlan.for_review(ddl),
                )
            )

        return differences

    # ------------------------------------------------------------------
    # Columns, indexes, foreign keys
    # ------------------------------------------------------------------

    def _compare_columns(
        self,
        source_table: TableInfo,
        target_table: TableInfo,
        source_env: Environment,
        target_env: Environment,
    ) -> list[SchemaDifference]:
        target_columns = {column.name: column for column in target_table.columns}
        is_production = target_env is Environment.PRODUCTION
        table_name = target_table.name
        differences = []

        for source_column in source_table.columns:
            target_column = target_columns.get(source_column.name)
            qualified = f"{table_name}.{source_column.name}"

            if target_column is None:
                not_null = "" if source_column.is_nullable else " NOT NULL"
                ddl = f"ALTER TABLE {table_name} ADD COLUMN {source_column.name} {source_column.type}{not_null}"
                differences.append(
                    SchemaDifference(
                        type=DifferenceType.MISSING_COLUMN,
                        location=DifferenceLocation(table_name=table_name, column_name=source_column.name),
                        description=f"Column '{source_column.name}' missing in {target_env}",
                        source_environment=source_env.value,
                        target_environment=target_env.value,
                        insight=InsightAnalysis.for_schema_difference("missing_column", qualified, is_production),
                        context=ContextAnalysis.for_schema_migration(source_env, target_env, 1),
                        execution=ExecutionPlan.for_schema_difference("missing_column", source_column.name, ddl),
                    )
                )
            elif _columns_differ(source_column, target_column):
                ddl = (
                    f"-- Type mismatch: {qualified}\n"
                    f"-- Source ({source_env}): {source_column.type}\n"
                    f"-- Target ({target_env}): {target_column.type}\n"
                    "-- Review and migrate data carefully"
                )
                differences.append(
                    SchemaDifference(
                        type=DifferenceType.TYPE_MISMATCH,
                        location=DifferenceLocation(
                            table_name=table_name,
                            column_name=source_column.name,
                            source_value=source_column.type,
                            target_value=target_column.type,
                        ),
                        description=(
                            f"Column '{source_column.name}' type mismatch: "
                            f"{source_column.type} ({source_env}) vs {target_column.type} ({target_env})"
                        ),
                        source_environment=source_env.value,
                        target_environment=target_env.value,
                        insight=InsightAnalysis.for_schema_difference("type_mismatch", qualified, is_production),
                        context=ContextAnalysis.for_schema_migration(source_env, target_env, 1),
                        execution=ExecutionPlan.for_schema_difference("type_mismatch", source_column.name, ddl),
                    )
                )

        source_names = {column.name for column in source_table.columns}
        for target_column in target_table.columns:
            if target_column.name in source_names:
                continue
            ddl = f"-- Column '{target_column.name}' exists in {target_env} but not in {source_env}"
            differences.append(
                SchemaDifference(
                    type=DifferenceType.EXTRA_COLUMN,
                    location=DifferenceLocation(table_name=table_name, column_name=target_column.name),
                    description=f"Column '{target_column.name}' exists in {target_env} but not in {source_env}",
                    source_environment=source_env.value,
                    target_environment=target_env.value,
                    insight=InsightAnalysis.for_extra_column(target_env),
                    context=ContextAnalysis.for_environment(target_env, False),
                    execution=ExecutionPlan.for_review(ddl),
                )
            )

        return differences

    def _compare_indexes(
        self,
        source_table: TableInfo,
        target_table: TableInfo,
        source_env: Environment,
        target_env: Environment,
    ) -> list[SchemaDifference]:
        # Matched by name only; a renamed index counts as missing.
        target_names = {index.name for index in target_table.indexes}
        differences = []

        for index in source_table.indexes:
            if index.name in target_names:
                continue
            column_list = ", ".join(index.columns)
            differences.append(
                SchemaDifference(
                    type=DifferenceType.MISSING_INDEX,
                    location=DifferenceLocation(table_name=target_table.name, column_name=column_list),
                    description=f"Index '{index.name}' missing in {target_env}",
                    source_environment=source_env.value,
                    target_environment=target_env.value,
                    insight=InsightAnalysis.for_missing_index(index.name, target_env),
                    context=ContextAnalysis.for_schema_migration(source_env, target_env, 1),
                    execution=ExecutionPlan.for_create_index(target_table.name, column_list, index.name),
                )
            )

        return differences

    def _compare_foreign_keys(
        self,
        source_table: TableInfo,
        target_table: TableInfo,
        source_env: Environment,
        target_env: Environment,
    ) -> list[SchemaDifference]:
        # Matched by owning column only.
        target_columns = {fk.column for fk in target_table.foreign_keys}
        differences = []

        for fk in source_table.foreign_keys:
            if fk.column in target_columns:
                continue
            ddl = (
                f"-- Foreign key '{fk.column}' missing in {target_env}\n"
                f"-- {fk.table}.{fk.column} -> {fk.references_table}.{fk.references_column}"
            )
            differences.append(
                SchemaDifference(
                    type=DifferenceType.MISSING_FOREIGN_KEY,
                    location=DifferenceLocation(table_name=target_table.name, column_name=fk.column),
                    description=f"Foreign key '{fk.column}' missing in {target_env}",
                    source_environment=source_env.value,
                    target_environment=target_env.value,
                    insight=InsightAnalysis.for_missing_foreign_key(fk.column, target_env),
                    context=ContextAnalysis.for_schema_migration(source_env, target_env, 1),
                    execution=ExecutionPlan.for_add_foreign_key(ddl),
                )
            )

        return differences
