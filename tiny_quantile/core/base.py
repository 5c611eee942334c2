"""
Base classes and interfaces for TinyQuantile summaries.

This module defines the abstract base classes that every summary in the
library implements, together with the nearest-rank helpers shared by the
single histogram and its time-windowed composition.
"""

import abc
import json
import math
import numbers
import operator
import sys
from fractions import Fraction
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from tiny_quantile.core.errors import InvalidFractionError

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


def validate_fraction(fraction: Any) -> float:
    """
    Check that a quantile fraction lies within [0.0, 1.0].

    Args:
        fraction: The requested quantile as a fraction.

    Returns:
        The fraction as a float.

    Raises:
        InvalidFractionError: If fraction is not a number in [0.0, 1.0].
            NaN is rejected as well.
    """
    if isinstance(fraction, bool) or not isinstance(fraction, (int, float)):
        raise InvalidFractionError(fraction)
    if not (0.0 <= fraction <= 1.0):
        raise InvalidFractionError(fraction)
    return float(fraction)


def as_int(value: Any) -> Optional[int]:
    """
    Convert an integral number to a plain int.

    Accepts any numbers.Integral (numpy integers included) except bool.

    Returns:
        The value as an int, or None if it is not integral.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        return None
    return operator.index(value)


def nearest_rank(fraction: float, total_count: int) -> int:
    """
    Compute the 1-based nearest rank for a fraction of total_count items.

    The rank is ceil(fraction * total_count), clamped to [1, total_count].
    The product is taken exactly on the shortest decimal that round-trips
    to the float (repr), so 0.07 * 100 is 7 rather than 7.000000000000001,
    while 0.5000000001 * 2 still rounds up to 2.
    """
    product = Fraction(repr(float(fraction))) * total_count
    rank = math.ceil(product)
    return min(total_count, max(1, rank))


def scan_ranks(counts: Sequence[int], start: int, ranks: Sequence[int]) -> List[int]:
    """
    Resolve several ranks against a histogram in a single ascending scan.

    Args:
        counts: Per-value counters, counts[i] counting value start + i.
        start: The value represented by counts[0].
        ranks: 1-based ranks, each no larger than sum(counts).

    Returns:
        For each rank, in input order, the first value whose cumulative
        count reaches it.
    """
    order = sorted(range(len(ranks)), key=lambda i: ranks[i])
    results = [start] * len(ranks)
    cumulative = 0
    pos = 0
    for index, count in enumerate(counts):
        if not count:
            continue
        cumulative += count
        while pos < len(order) and ranks[order[pos]] <= cumulative:
            results[order[pos]] = start + index
            pos += 1
        if pos == len(order):
            break
    return results


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming summaries.

    This class defines the common interface every summary implements:
    updating with new items, querying results, merging with other
    summaries of the same kind, and serialization.
    """

    def __init__(self) -> None:
        """Initialize a new stream summary."""
        self._items_processed = 0

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Derived classes call super().update(item) only once the item has
        been validated and applied.

        Args:
            item: The new item to process.
        """
        self._items_processed += 1

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific summary.
        """
        pass

    @abc.abstractmethod
    def merge(self, other: "StreamSummary[T, R]") -> "StreamSummary[T, R]":
        """
        Merge this summary with another of the same type.

        Args:
            other: Another stream summary of the same type.

        Returns:
            A new merged stream summary.

        Raises:
            TypeError: If other is not of the same type.
        """
        pass

    def _check_same_type(self, other: "StreamSummary[T, R]") -> None:
        """
        Helper method to check if another summary is of the same type.

        Raises:
            TypeError: If other is not of the same type.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    def _combine_items_processed(self, other: "StreamSummary[T, R]") -> int:
        """Combined count of processed items, used when merging."""
        return self._items_processed + other._items_processed

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the summary to a dictionary for serialization.

        Returns:
            A dictionary representation of the summary.
        """
        pass

    def _base_dict(self) -> Dict[str, Any]:
        """Dictionary with the attributes common to all summaries."""
        return {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
        }

    @classmethod
    def _check_dict(cls, data: Dict[str, Any], required_keys: Iterable[str]) -> None:
        """
        Validate the type tag and required keys of a serialized summary.

        Raises:
            ValueError: If the type does not match or keys are missing.
        """
        if "type" not in data:
            raise ValueError(
                f"Invalid dictionary format for {cls.__name__}. Missing 'type'"
            )
        if data["type"] != cls.__name__:
            raise ValueError(
                f"Dictionary represents class '{data['type']}' but expected '{cls.__name__}'"
            )
        missing_keys = set(required_keys) - data.keys()
        if missing_keys:
            raise ValueError(
                f"Invalid dictionary format for {cls.__name__}. Missing keys: {sorted(missing_keys)}"
            )

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamSummary[T, R]":
        """
        Create a summary from a dictionary representation.

        Args:
            data: The dictionary containing the summary state.

        Returns:
            A new stream summary initialized with the given state.
        """
        pass

    def serialize(self, format: str = "json") -> Union[str, bytes]:
        """
        Serialize the summary to a string or bytes.

        Args:
            format: The serialization format ('json' or 'binary').

        Returns:
            The serialized representation of the summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format == "json":
            return json.dumps(self.to_dict())
        elif format == "binary":
            return json.dumps(self.to_dict()).encode("utf-8")
        else:
            raise ValueError(f"Unsupported serialization format: {format}")

    @classmethod
    def deserialize(
        cls, data: Union[str, bytes], format: str = "json"
    ) -> "StreamSummary[T, R]":
        """
        Deserialize a summary from a string or bytes.

        Args:
            data: The serialized summary.
            format: The serialization format ('json' or 'binary').

        Returns:
            A new stream summary.

        Raises:
            ValueError: If the format is not supported.
        """
        if format not in ("json", "binary"):
            raise ValueError(f"Unsupported serialization format: {format}")
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return cls.from_dict(json.loads(data))

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        The base estimate covers the object and its instance dictionary.
        Derived classes add their own data structures.
        """
        size = sys.getsizeof(self)
        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)
        return size

    def clear(self) -> None:
        """
        Reset the summary to its initial empty state.

        Derived classes clear their own data structures and call
        super().clear() to reset the base counters.
        """
        self._items_processed = 0

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the current state of the summary.

        Derived classes extend the dictionary with their own entries.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }
        stats.update(self.error_bounds())
        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the error characteristics of this summary.

        The base implementation returns an empty dictionary.
        """
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed


class QuantileSummary(StreamSummary[int, int], abc.ABC):
    """
    Abstract base class for summaries answering nearest-rank quantiles
    over a bounded integer domain.
    """

    # Quantiles reported by get_stats
    STATS_FRACTIONS = (0.5, 0.9, 0.99)

    @abc.abstractmethod
    def estimate_quantiles(self, fractions: Sequence[float]) -> List[int]:
        """
        Estimate several quantiles at once.

        Args:
            fractions: Quantile fractions, each within [0.0, 1.0].

        Returns:
            The estimated value for each fraction, in input order.

        Raises:
            InvalidFractionError: If any fraction is outside [0.0, 1.0].
            EmptySummaryError: If no values have been recorded.
        """
        pass

    @abc.abstractmethod
    def is_empty(self) -> bool:
        """Whether the summary holds no observations."""
        pass

    def estimate_quantile(self, fraction: float) -> int:
        """
        Estimate the value at the given quantile.

        Args:
            fraction: Quantile fraction within [0.0, 1.0].

        Returns:
            The smallest recorded value whose cumulative count reaches
            the nearest rank ceil(fraction * total).

        Raises:
            InvalidFractionError: If fraction is outside [0.0, 1.0].
            EmptySummaryError: If no values have been recorded.
        """
        return self.estimate_quantiles([fraction])[0]

    def query(self, fraction: float = 0.5) -> int:
        """Alias for estimate_quantile (defaults to the median)."""
        return self.estimate_quantile(fraction)

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        if not self.is_empty():
            estimates = self.estimate_quantiles(self.STATS_FRACTIONS)
            for fraction, value in zip(self.STATS_FRACTIONS, estimates):
                stats[f"p{round(fraction * 100)}"] = value
        return stats
