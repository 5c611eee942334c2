"""
Algorithm implementations for TinyQuantile.
"""

from tiny_quantile.algorithms.quantile_estimator import QuantileEstimator
from tiny_quantile.algorithms.ring_buffer import Slot, TimeWindowedRingBuffer

__all__ = [
    "QuantileEstimator",
    "TimeWindowedRingBuffer",
    "Slot",
]
