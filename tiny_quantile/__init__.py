"""
tiny-quantile - Bounded-range Streaming Quantiles

tiny-quantile is a Python library for estimating percentiles of integer data
streams over a fixed value range, either for the whole stream or for a
sliding time window.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_quantile.algorithms.quantile_estimator import QuantileEstimator
from tiny_quantile.algorithms.ring_buffer import Slot, TimeWindowedRingBuffer
from tiny_quantile.core.base import QuantileSummary, StreamSummary
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

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core base classes
    "StreamSummary",
    "QuantileSummary",
    # Algorithm implementations
    "QuantileEstimator",
    "TimeWindowedRingBuffer",
    "Slot",
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
