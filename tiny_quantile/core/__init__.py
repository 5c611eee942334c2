"""
Core functionality for TinyQuantile.
"""

from tiny_quantile.core.base import (
    QuantileSummary,
    StreamSummary,
    as_int,
    nearest_rank,
    scan_ranks,
    validate_fraction,
)
from tiny_quantile.core.errors import (
    EmptySummaryError,
    InvalidCapacityError,
    InvalidDurationError,
    InvalidFractionError,
    InvalidRangeError,
    InvalidTimestampError,
    OutOfRangeError,
    QuantileError,
)

__all__ = [
    # Base classes
    "StreamSummary",
    "QuantileSummary",
    # Utility functions
    "as_int",
    "validate_fraction",
    "nearest_rank",
    "scan_ranks",
    # Errors
    "QuantileError",
    "InvalidRangeError",
    "InvalidCapacityError",
    "InvalidDurationError",
    "OutOfRangeError",
    "InvalidFractionError",
    "EmptySummaryError",
    "InvalidTimestampError",
]
