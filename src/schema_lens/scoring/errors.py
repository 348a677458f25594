"""Errors raised while constructing scoring value objects.

Every error here signals a malformed factor table or score input. They are
raised at construction time and abort the whole comparison or analysis
call; there is no partial-success mode.
"""


class ScoringError(ValueError):
    """Base class for scoring construction failures."""

    pass


class InvalidFactorRangeError(ScoringError):
    """Raised when a factor or derived score falls outside 0-10."""

    pass


class NoFactorsError(ScoringError):
    """Raised when an analysis is built without any factors."""

    pass


class EmptyRationaleError(ScoringError):
    """Raised when a rationale (or execution SQL) is empty."""

    pass


class DimensionOutOfRangeError(ScoringError):
    """Raised when an ICE dimension is not a finite number in 0-10."""

    pass
