"""Schema snapshots, comparison, and relationship analysis.

Provides snapshot models (``DatabaseSchema``, ``TableInfo``, ...), drift
detection (``SchemaComparator``), foreign-key graph analysis
(``RelationshipAnalyzer``), optimization suggestions
(``OptimizationService``), integrity checks (``validate_schema``) and live
introspection (``SchemaIntrospector``).

Usage:
    from schema_lens.schema import SchemaComparator, SchemaIntrospector
    from schema_lens.schema import RelationshipAnalyzer, OptimizationService
    from schema_lens.schema import validate_schema
"""

from schema_lens.schema.analyzer import (
    NullabilityReport,
    SchemaAnalyzer,
    SchemaStatistics,
    TableAnalysis,
    TableComplexity,
)
from schema_lens.schema.comparator import (
    SchemaComparator,
    generate_create_table_ddl,
    normalize_type,
)
from schema_lens.schema.differences import (
    ComparisonSummary,
    DifferenceLocation,
    DifferenceType,
    SchemaComparisonResult,
    SchemaDifference,
    Severity,
)
from schema_lens.schema.introspector import SchemaIntrospector
from schema_lens.schema.models import (
    Column,
    DatabaseSchema,
    ForeignKey,
    Index,
    ReferentialAction,
    Relationship,
    TableInfo,
)
from schema_lens.schema.optimization import (
    Optimization,
    OptimizationService,
    OptimizationSummary,
    OptimizationType,
)
from schema_lens.schema.relationships import DependencyEdge, DependencyGraph, RelationshipAnalyzer
from schema_lens.schema.validation import (
    SchemaValidationReport,
    ValidationIssue,
    ValidationSeverity,
    validate_schema,
)

__all__ = [
    "Column",
    "Index",
    "ForeignKey",
    "ReferentialAction",
    "TableInfo",
    "DatabaseSchema",
    "Relationship",
    "SchemaComparator",
    "normalize_type",
    "generate_create_table_ddl",
    "SchemaDifference",
    "DifferenceLocation",
    "DifferenceType",
    "Severity",
    "ComparisonSummary",
    "SchemaComparisonResult",
    "RelationshipAnalyzer",
    "DependencyEdge",
    "DependencyGraph",
    "OptimizationService",
    "Optimization",
    "OptimizationType",
    "OptimizationSummary",
    "SchemaAnalyzer",
    "SchemaStatistics",
    "TableAnalysis",
    "NullabilityReport",
    "TableComplexity",
    "validate_schema",
    "SchemaValidationReport",
    "ValidationIssue",
    "ValidationSeverity",
    "SchemaIntrospector",
]
