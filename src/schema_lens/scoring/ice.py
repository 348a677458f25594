"""ICE (Insight x Context x Execution) priority score.

``combined = insight * context * execution / 100`` keeps the result in
0-10 and lets a single weak dimension pull the whole score down: a
well-understood, high-stakes issue with a dangerous fix is not high
priority.

Usage:
    from schema_lens.scoring.ice import ICEScore

    score = ICEScore(9, 9, 9)
    score.combined  # 7.29
    score.priority  # ICEPriority.HIGH
"""

import math
from dataclasses import dataclass
from enum import StrEnum

from schema_lens.scoring.errors import DimensionOutOfRangeError

HIGH_THRESHOLD = 6.0
MEDIUM_THRESHOLD = 3.0


class ICEPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ICEScore:
    """Multiplicative composite of three 0-10 dimensions.

    Example:
        >>> ICEScore(7, 7, 7).priority
        <ICEPriority.MEDIUM: 'medium'>
    """

    insight: float
    context: float
    execution: float

    def __post_init__(self) -> None:
        for name in ("insight", "context", "execution"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise DimensionOutOfRangeError(f"ICE {name} must be a number, got {value!r}")
            if not math.isfinite(value) or not 0 <= value <= 10:
                raise DimensionOutOfRangeError(f"ICE {name} must be 0-10, got {value}")

    @property
    def combined(self) -> float:
        return self.insight * self.context * self.execution / 100

    @property
    def priority(self) -> ICEPriority:
        combined = self.combined
        if combined >= HIGH_THRESHOLD:
            return ICEPriority.HIGH
        if combined >= MEDIUM_THRESHOLD:
            return ICEPriority.MEDIUM
        return ICEPriority.LOW

    @property
    def description(self) -> str:
        return (
            f"ICE Score: {self.combined:.2f} "
            f"(I:{self.insight:g} C:{self.context:g} E:{self.execution:g}) - "
            f"Priority: {self.priority.upper()}"
        )

    def compare_to(self, other: "ICEScore") -> int:
        """Return 1, 0 or -1 as this score is stronger, equal or weaker."""
        if self.combined > other.combined:
            return 1
        if self.combined < other.combined:
            return -1
        return 0

    def is_stronger_than(self, other: "ICEScore") -> bool:
        return self.combined > other.combined

    def is_high_priority(self) -> bool:
        return self.priority is ICEPriority.HIGH

    def is_medium_priority(self) -> bool:
        return self.priority is ICEPriority.MEDIUM

    def is_low_priority(self) -> bool:
        return self.priority is ICEPriority.LOW

    def to_dict(self) -> dict:
        return {
            "insight": self.insight,
            "context": self.context,
            "execution": self.execution,
            "combined": round(self.combined, 2),
            "priority": self.priority.value,
        }

    @classmethod
    def create_high(cls) -> "ICEScore":
        return cls(9, 9, 9)

    @classmethod
    def create_medium(cls) -> "ICEScore":
        return cls(7, 7, 7)

    @classmethod
    def create_low(cls) -> "ICEScore":
        return cls(5, 5, 5)
