"""Structural statistics for a single schema snapshot.

Usage:
    from schema_lens.schema.analyzer import SchemaAnalyzer

    analyzer = SchemaAnalyzer()
    stats = analyzer.analyze_schema(schema.tables)
    print(stats.tables_without_primary_keys)
"""

from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel, Field

from schema_lens.schema.models import Column, TableInfo


# ============================================================================
# Result Models
# ============================================================================


class SchemaStatistics(BaseModel):
    """Schema-wide counts.

    Example:
        >>> SchemaAnalyzer().analyze_schema([]).total_tables
        0
    """

    total_tables: int = 0
    total_columns: int = 0
    tables_with_primary_keys: int = 0
    tables_without_primary_keys: int = 0
    tables_with_foreign_keys: int = 0
    tables_with_indexes: int = 0
    total_indexes: int = 0
    total_foreign_keys: int = 0
    total_views: int = 0


class TableAnalysis(BaseModel):
    """Per-table summary."""

    table_name: str
    column_count: int
    has_primary_key: bool
    primary_key_columns: list[str] = Field(default_factory=list)
    required_columns: list[str] = Field(default_factory=list)
    foreign_key_count: int = 0
    index_count: int = 0
    is_view: bool = False


class NullabilityReport(BaseModel):
    nullable_columns: list[Column] = Field(default_factory=list)
    required_columns: list[Column] = Field(default_factory=list)
    nullable_percentage: float = 0.0


class TableComplexity(BaseModel):
    table: TableInfo
    complexity: int


# ============================================================================
# Analyzer
# ============================================================================


class SchemaAnalyzer:
    """Stateless analysis of table structures."""

    def analyze_schema(self, tables: Sequence[TableInfo]) -> SchemaStatistics:
        # Views are counted in the primary key totals like any other table.
        return SchemaStatistics(
            total_tables=len(tables),
            total_columns=sum(len(t.columns) for t in tables),
            tables_with_primary_keys=sum(1 for t in tables if t.has_primary_key()),
            tables_without_primary_keys=sum(1 for t in tables if not t.has_primary_key()),
            tables_with_foreign_keys=sum(1 for t in tables if t.has_foreign_keys()),
            tables_with_indexes=sum(1 for t in tables if t.indexes),
            total_indexes=sum(len(t.indexes) for t in tables),
            total_foreign_keys=sum(len(t.foreign_keys) for t in tables),
            total_views=sum(1 for t in tables if t.is_view()),
        )

    def analyze_table(self, table: TableInfo) -> TableAnalysis:
        return TableAnalysis(
            table_name=table.name,
            column_count=len(table.columns),
            has_primary_key=table.has_primary_key(),
            primary_key_columns=[c.name for c in table.primary_key_columns()],
            required_columns=[c.name for c in table.required_columns()],
            foreign_key_count=len(table.foreign_keys),
            index_count=len(table.indexes),
            is_view=table.is_view(),
        )

    def analyze_column_types(self, tables: Sequence[TableInfo]) -> dict[str, int]:
        """Count columns per declared type, most used first."""
        counts = Counter(column.type for table in tables for column in table.columns)
        return dict(counts.most_common())

    def identify_problematic_tables(self, tables: Sequence[TableInfo]) -> list[TableInfo]:
        """Base tables without a primary key or with an unindexed foreign key column."""
        return [
            table
            for table in tables
            if not table.is_view()
            and (
                not table.has_primary_key()
                or any(not table.has_index_on_column(c) for c in table.foreign_key_columns())
            )
        ]

    def analyze_nullability(self, table: TableInfo) -> NullabilityReport:
        nullable = [c for c in table.columns if c.is_nullable]
        required = [c for c in table.columns if not c.is_nullable]
        percentage = len(nullable) / len(table.columns) * 100 if table.columns else 0.0
        return NullabilityReport(
            nullable_columns=nullable,
            required_columns=required,
            nullable_percentage=percentage,
        )

    def tables_by_complexity(self, tables: Sequence[TableInfo]) -> list[TableComplexity]:
        """Tables ordered by columns + indexes + foreign keys, highest first."""
        ranked = [
            TableComplexity(
                table=table,
                complexity=len(table.columns) + len(table.indexes) + len(table.foreign_keys),
            )
            for table in tables
        ]
        return sorted(ranked, key=lambda item: -item.complexity)

    def identify_orphaned_tables(self, tables: Sequence[TableInfo]) -> list[TableInfo]:
        """Base tables with no foreign keys in or out."""
        referenced = {fk.references_table for table in tables for fk in table.foreign_keys}
        return [
            table
            for table in tables
            if not table.is_view() and not table.has_foreign_keys() and table.name not in referenced
        ]
