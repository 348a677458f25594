"""schema-lens: Schema comparison and relationship analysis with ICE scoring.

Compares database schemas across environments, analyzes foreign-key
relationships, and ranks every finding by Insight x Context x Execution.

Usage:
    from schema_lens import SchemaComparator, RelationshipAnalyzer
    from schema_lens import DatabaseSchema, TableInfo, Column
    from schema_lens import ICEScore, ICECalculator
    from schema_lens import load_config, compare_environments
"""

__version__ = "0.1.0"

# Environment
from schema_lens.environment import Environment, parse_environment

# Scoring
from schema_lens.scoring import (
    ContextAnalysis,
    ExecutionPlan,
    ICECalculator,
    ICEPriority,
    ICEScore,
    InsightAnalysis,
    ScoringError,
)

# Schema
from schema_lens.schema import (
    Column,
    DatabaseSchema,
    ForeignKey,
    Index,
    Relationship,
    RelationshipAnalyzer,
    SchemaComparator,
    SchemaComparisonResult,
    SchemaDifference,
    SchemaIntrospector,
    TableInfo,
    validate_schema,
)

# Config
from schema_lens.config import DatabaseProfile, LensConfig, load_config

# Service
from schema_lens.service import SameDatabaseError, compare_environments, fetch_schema

__all__ = [
    # Environment
    "Environment",
    "parse_environment",
    # Scoring
    "ICEScore",
    "ICEPriority",
    "ICECalculator",
    "InsightAnalysis",
    "ContextAnalysis",
    "ExecutionPlan",
    "ScoringError",
    # Schema
    "Column",
    "Index",
    "ForeignKey",
    "TableInfo",
    "DatabaseSchema",
    "Relationship",
    "RelationshipAnalyzer",
    "SchemaComparator",
    "SchemaDifference",
    "SchemaComparisonResult",
    "SchemaIntrospector",
    "validate_schema",
    # Config
    "load_config",
    "LensConfig",
    "DatabaseProfile",
    # Service
    "fetch_schema",
    "compare_environments",
    "SameDatabaseError",
]
