"""
Fixed-range histogram quantile estimator for TinyQuantile.

The estimator keeps one counter per integer in a bounded domain
[start, end) and answers nearest-rank quantile queries by scanning the
cumulative counts. Memory is O(end - start); inserts are O(1) and queries
are O(end - start), which suits modest domains such as latencies in
milliseconds or small sensor readings.
"""

import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from tiny_quantile.core.base import (
    QuantileSummary,
    as_int,
    nearest_rank,
    scan_ranks,
    validate_fraction,
)
from tiny_quantile.core.errors import (
    EmptySummaryError,
    InvalidRangeError,
    OutOfRangeError,
)

# Type variable for the class itself (for from_dict)
QuantileEstimatorType = TypeVar("QuantileEstimatorType", bound="QuantileEstimator")


class QuantileEstimator(QuantileSummary):
    """
    Exact nearest-rank quantiles over a bounded integer domain.

    Every value in [start, end) has its own counter, so answers are exact:
    the estimate for a fraction q is the smallest recorded value v such that
    at least ceil(q * n) of the n recorded values are <= v.

    Example:
        >>> est = QuantileEstimator(0, 1000)
        >>> for v in range(102):
        ...     est.add_value(v)
        >>> est.estimate_quantile(0.5)
        50
    """

    def __init__(self, start: int, end: int):
        """
        Initialize an empty estimator.

        Args:
            start: Smallest trackable value (inclusive), non-negative.
            end: Upper bound of the domain (exclusive).

        Raises:
            InvalidRangeError: If end <= start, a bound is negative or a
                bound is not an integer.
        """
        super().__init__()
        if as_int(start) is None or as_int(end) is None:
            raise InvalidRangeError(start, end, "Range bounds must be integers")
        start, end = as_int(start), as_int(end)
        if start < 0:
            raise InvalidRangeError(start, end, "Range start must be non-negative")
        if end <= start:
            raise InvalidRangeError(start, end)

        self._start = start
        self._end = end
        self._counts: List[int] = [0] * (end - start)
        self._total_count = 0

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def total_count(self) -> int:
        """Number of values currently recorded."""
        return self._total_count

    @property
    def counts(self) -> Tuple[int, ...]:
        """Snapshot of the counters, counts[i] counting value start + i."""
        return tuple(self._counts)

    def _offset(self, value: Any) -> int:
        """Counter index of value, or OutOfRangeError if it is not tracked."""
        number = as_int(value)
        if number is None or not (self._start <= number < self._end):
            raise OutOfRangeError(value, self._start, self._end)
        return number - self._start

    def add_value(self, value: int) -> None:
        """
        Record one occurrence of value.

        Raises:
            OutOfRangeError: If value is not an integer in [start, end).
                The estimator is left unchanged.
        """
        self._counts[self._offset(value)] += 1
        self._total_count += 1
        super().update(value)

    def update(self, item: int) -> None:
        """Alias for add_value, part of the StreamSummary interface."""
        self.add_value(item)

    def count_of(self, value: int) -> int:
        """
        Number of times value has been recorded.

        Raises:
            OutOfRangeError: If value is outside [start, end).
        """
        return self._counts[self._offset(value)]

    def estimate_quantiles(self, fractions: Sequence[float]) -> List[int]:
        checked = [validate_fraction(f) for f in fractions]
        if self._total_count == 0:
            raise EmptySummaryError()
        ranks = [nearest_rank(f, self._total_count) for f in checked]
        return scan_ranks(self._counts, self._start, ranks)

    @property
    def min_value(self) -> Optional[int]:
        """Smallest recorded value, or None if empty."""
        for index, count in enumerate(self._counts):
            if count:
                return self._start + index
        return None

    @property
    def max_value(self) -> Optional[int]:
        """Largest recorded value, or None if empty."""
        for index in range(len(self._counts) - 1, -1, -1):
            if self._counts[index]:
                return self._start + index
        return None

    def is_empty(self) -> bool:
        return self._total_count == 0

    def __len__(self) -> int:
        return self._total_count

    def __repr__(self) -> str:
        return (
            f"QuantileEstimator(start={self._start}, end={self._end}, "
            f"total_count={self._total_count})"
        )

    def _absorb(self, other: "QuantileEstimator") -> None:
        """Add other's counters into this estimator in place."""
        for index, count in enumerate(other._counts):
            if count:
                self._counts[index] += count
        self._total_count += other._total_count
        self._items_processed += other._items_processed

    def merge(self, other: "QuantileEstimator") -> "QuantileEstimator":
        """
        Merge this estimator with another one over the same domain.

        Args:
            other: Another QuantileEstimator with identical start and end.

        Returns:
            A new QuantileEstimator holding the counts of both. Neither
            input is modified.

        Raises:
            TypeError: If other is not a QuantileEstimator.
            ValueError: If the domains differ.
        """
        self._check_same_type(other)
        if self._start != other._start or self._end != other._end:
            raise ValueError(
                f"Cannot merge estimators with different ranges: "
                f"[{self._start}, {self._end}) and [{other._start}, {other._end})"
            )

        result = self.__class__(self._start, self._end)
        result._absorb(self)
        result._absorb(other)
        return result

    def clear(self) -> None:
        """Zero every counter, keeping the configured domain."""
        super().clear()
        self._counts = [0] * (self._end - self._start)
        self._total_count = 0

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the estimator to a dictionary.

        Counters are stored sparsely as {offset: count} with string keys so
        the dictionary survives a JSON round trip.
        """
        state = self._base_dict()
        state.update(
            {
                "start": self._start,
                "end": self._end,
                "total_count": self._total_count,
                "counts": {
                    str(index): count
                    for index, count in enumerate(self._counts)
                    if count
                },
            }
        )
        return state

    @classmethod
    def from_dict(
        cls: Type[QuantileEstimatorType], data: Dict[str, Any]
    ) -> QuantileEstimatorType:
        """
        Deserialize an estimator from a dictionary representation.

        Args:
            data: Dictionary created by to_dict().

        Returns:
            A reconstructed QuantileEstimator.

        Raises:
            ValueError: If the dictionary is missing keys, has counters
                outside the domain or a total that disagrees with them.
        """
        cls._check_dict(data, {"start", "end", "total_count", "counts", "items_processed"})

        instance = cls(data["start"], data["end"])
        width = instance._end - instance._start
        try:
            for offset, count in data["counts"].items():
                index = int(offset)
                if not (0 <= index < width) or as_int(count) is None or count < 0:
                    raise ValueError(f"invalid counter {offset!r}: {count!r}")
                instance._counts[index] = as_int(count)
        except (AttributeError, TypeError, ValueError) as e:
            raise ValueError(f"Error deserializing counts: {e}") from e

        if sum(instance._counts) != data["total_count"]:
            raise ValueError(
                f"Stored total_count {data['total_count']} does not match the counters"
            )
        instance._total_count = data["total_count"]
        instance._items_processed = data["items_processed"]
        return instance

    def estimate_size(self) -> int:
        """Estimate the memory footprint of the estimator in bytes."""
        size = super().estimate_size()
        size += sys.getsizeof(self._counts)
        # Small ints are cached; only count the distinct larger ones
        size += sum(sys.getsizeof(c) for c in self._counts if c > 256)
        return size

    def error_bounds(self) -> Dict[str, Any]:
        """
        Error characteristics of the estimator.

        Each counter covers a single integer, so quantiles are exact under
        the nearest-rank definition.
        """
        return {
            "bucket_width": 1,
            "rank_error": 0,
        }

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update(
            {
                "start": self._start,
                "end": self._end,
                "total_count": self._total_count,
                "distinct_values": sum(1 for c in self._counts if c),
                "min_value": self.min_value,
                "max_value": self.max_value,
            }
        )
        return stats
