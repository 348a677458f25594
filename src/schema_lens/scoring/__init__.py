"""ICE scoring: insight, context and execution analyses and their product.

Usage:
    from schema_lens.scoring import ICEScore, ICECalculator
    from schema_lens.scoring import InsightAnalysis, ContextAnalysis, ExecutionPlan
"""

from schema_lens.scoring.analysis import (
    ContextAnalysis,
    ExecutionPlan,
    InsightAnalysis,
    environment_criticality,
    migration_direction,
    migration_risk,
    round_score,
)
from schema_lens.scoring.calculator import ICECalculator, ScoredAnalysis
from schema_lens.scoring.errors import (
    DimensionOutOfRangeError,
    EmptyRationaleError,
    InvalidFactorRangeError,
    NoFactorsError,
    ScoringError,
)
from schema_lens.scoring.ice import ICEPriority, ICEScore

__all__ = [
    "InsightAnalysis",
    "ContextAnalysis",
    "ExecutionPlan",
    "environment_criticality",
    "migration_direction",
    "migration_risk",
    "round_score",
    "ICECalculator",
    "ScoredAnalysis",
    "ICEScore",
    "ICEPriority",
    "ScoringError",
    "InvalidFactorRangeError",
    "NoFactorsError",
    "EmptyRationaleError",
    "DimensionOutOfRangeError",
]
