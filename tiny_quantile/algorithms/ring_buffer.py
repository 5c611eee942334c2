"""
Time-windowed ring buffer of quantile estimators for TinyQuantile.

Time is cut into fixed-width epochs (timestamp // duration). Each epoch
maps onto one of `capacity` slots (epoch % capacity), and every slot owns a
QuantileEstimator holding the values observed during the epoch it
represents. Quantile queries merge all slots, so the answers cover roughly
the trailing capacity * duration time units.

Slots are recycled lazily: a slot is reset only when an insert for a newer
epoch lands on it. Slots whose epoch has fallen out of the window but that
have not been overwritten yet still take part in queries. With sparse or
bursty traffic, estimates can therefore include values older than the
nominal window.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from tiny_quantile.algorithms.quantile_estimator import QuantileEstimator
from tiny_quantile.core.base import QuantileSummary, as_int
from tiny_quantile.core.errors import (
    EmptySummaryError,
    InvalidCapacityError,
    InvalidDurationError,
    InvalidTimestampError,
    OutOfRangeError,
)

logger = logging.getLogger(__name__)

RingBufferType = TypeVar("RingBufferType", bound="TimeWindowedRingBuffer")


def _positive_int(value: Any) -> Optional[int]:
    number = as_int(value)
    return number if number is not None and number > 0 else None


@dataclass
class Slot:
    """
    One element of the ring.

    Attributes:
        estimator: Histogram of the values observed during `epoch`.
        epoch: The time window (timestamp // duration) the slot holds,
               or None if it has never been written.
    """

    estimator: QuantileEstimator
    epoch: Optional[int] = None

    def reset(self, epoch: Optional[int]) -> None:
        self.estimator.clear()
        self.epoch = epoch


class TimeWindowedRingBuffer(QuantileSummary):
    """
    Sliding-window quantiles over a bounded integer domain.

    The buffer holds `capacity` estimators, each covering `duration` time
    units. Inserts are routed by epoch; queries merge every slot and apply
    the same nearest-rank rule as QuantileEstimator.

    Example:
        >>> rb = TimeWindowedRingBuffer(capacity=3, duration=10, start=0, end=1000)
        >>> for i in range(15):
        ...     rb.insert(i, timestamp=i * 2)
        >>> rb.estimate_quantile(0.5)
        7
    """

    DEFAULT_DURATION: int = 1

    def __init__(self, capacity: int, duration: int, start: int, end: int):
        """
        Initialize an empty ring buffer.

        Args:
            capacity: Number of slots. Must be a positive integer.
            duration: Time units covered by each slot. Must be a positive integer.
            start: Smallest trackable value (inclusive).
            end: Upper bound of the value domain (exclusive).

        Raises:
            InvalidCapacityError: If capacity is not a positive integer.
            InvalidDurationError: If duration is not a positive integer.
            InvalidRangeError: If the value domain is invalid.
        """
        super().__init__()
        if _positive_int(capacity) is None:
            raise InvalidCapacityError(capacity)
        if _positive_int(duration) is None:
            raise InvalidDurationError(duration)

        self._capacity = _positive_int(capacity)
        self._duration = _positive_int(duration)
        self._slots: List[Slot] = [
            Slot(QuantileEstimator(start, end)) for _ in range(capacity)
        ]
        self._start = self._slots[0].estimator.start
        self._end = self._slots[0].estimator.end
        self._newest_epoch: Optional[int] = None

    @classmethod
    def create_from_window(
        cls: Type[RingBufferType],
        window_span: int,
        duration: int = DEFAULT_DURATION,
        start: int = 0,
        end: int = 1000,
    ) -> RingBufferType:
        """
        Create a ring buffer covering at least window_span time units.

        Args:
            window_span: Total time the window should cover.
            duration: Time units per slot; smaller values track the window
                      edge more closely at the cost of more slots.
            start: Smallest trackable value (inclusive).
            end: Upper bound of the value domain (exclusive).

        Returns:
            A ring buffer with capacity ceil(window_span / duration).

        Raises:
            ValueError: If window_span is not a positive integer.
            InvalidDurationError: If duration is not a positive integer.
        """
        if _positive_int(window_span) is None:
            raise ValueError(f"Window span must be a positive integer, got {window_span!r}")
        if _positive_int(duration) is None:
            raise InvalidDurationError(duration)
        return cls(-(-as_int(window_span) // as_int(duration)), duration, start, end)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def duration(self) -> int:
        return self._duration

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def window_span(self) -> int:
        """Time units covered by the whole ring."""
        return self._capacity * self._duration

    @property
    def newest_epoch(self) -> Optional[int]:
        """Most recent epoch written, or None before the first insert."""
        return self._newest_epoch

    @property
    def current_index(self) -> Optional[int]:
        """Slot index holding the newest epoch, or None before the first insert."""
        if self._newest_epoch is None:
            return None
        return self._newest_epoch % self._capacity

    @property
    def total_count(self) -> int:
        """Values held across all slots, stale slots included."""
        return sum(slot.estimator.total_count for slot in self._slots)

    def epoch_of(self, timestamp: int) -> int:
        """
        Map a timestamp to its epoch.

        Raises:
            InvalidTimestampError: If timestamp is not a non-negative integer.
        """
        number = as_int(timestamp)
        if number is None:
            raise InvalidTimestampError(timestamp, "timestamps must be integers")
        if number < 0:
            raise InvalidTimestampError(timestamp, "timestamps must be non-negative")
        return number // self._duration

    def insert(self, value: int, timestamp: int) -> None:
        """
        Record value as observed at timestamp.

        The value goes to slot (timestamp // duration) % capacity. If that
        slot still holds an older epoch, it is reset first.

        Args:
            value: Observed value within [start, end).
            timestamp: Non-negative integer time of the observation.

        Raises:
            InvalidTimestampError: If timestamp is negative, not an integer,
                or older than the trailing window of the newest epoch.
            OutOfRangeError: If value is outside [start, end).
        """
        epoch = self.epoch_of(timestamp)
        if (
            self._newest_epoch is not None
            and epoch <= self._newest_epoch - self._capacity
        ):
            logger.debug(
                "Rejecting late insert at epoch %d, newest epoch is %d",
                epoch,
                self._newest_epoch,
            )
            raise InvalidTimestampError(
                timestamp,
                f"epoch {epoch} is outside the window ending at epoch {self._newest_epoch}",
            )

        number = as_int(value)
        if number is None or not (self._start <= number < self._end):
            raise OutOfRangeError(value, self._start, self._end)

        slot = self._slots[epoch % self._capacity]
        if slot.epoch != epoch:
            if slot.epoch is not None:
                logger.debug(
                    "Recycling slot %d: epoch %d -> %d (%d values dropped)",
                    epoch % self._capacity,
                    slot.epoch,
                    epoch,
                    slot.estimator.total_count,
                )
            slot.reset(epoch)

        slot.estimator.add_value(number)
        if self._newest_epoch is None or epoch > self._newest_epoch:
            self._newest_epoch = epoch
        super().update(value)

    def update(self, item: int, timestamp: Optional[int] = None) -> None:
        """
        Alias for insert, part of the StreamSummary interface.

        Raises:
            InvalidTimestampError: If no timestamp is given.
        """
        if timestamp is None:
            raise InvalidTimestampError(timestamp, "a timestamp is required")
        self.insert(item, timestamp)

    def merged_estimator(self) -> QuantileEstimator:
        """
        Combine every slot into a single QuantileEstimator.

        Stale slots not yet overwritten are included.
        """
        merged = QuantileEstimator(self._start, self._end)
        for slot in self._slots:
            if not slot.estimator.is_empty():
                merged._absorb(slot.estimator)
        return merged

    def estimate_quantiles(self, fractions: Sequence[float]) -> List[int]:
        merged = self.merged_estimator()
        try:
            return merged.estimate_quantiles(fractions)
        except EmptySummaryError:
            raise EmptySummaryError("No values added to any window") from None

    def slot_epochs(self) -> List[Optional[int]]:
        """Epoch held by each slot, in slot order."""
        return [slot.epoch for slot in self._slots]

    def live_slot_count(self) -> int:
        """Number of slots whose epoch is inside the trailing window."""
        if self._newest_epoch is None:
            return 0
        oldest = self._newest_epoch - self._capacity + 1
        return sum(
            1
            for slot in self._slots
            if slot.epoch is not None and slot.epoch >= oldest
        )

    def window_bounds(self) -> Optional[Tuple[int, int]]:
        """
        Time range [first, end) of the trailing window, or None before the
        first insert. The first bound is clamped at zero.
        """
        if self._newest_epoch is None:
            return None
        end_time = (self._newest_epoch + 1) * self._duration
        return (max(0, end_time - self.window_span), end_time)

    def is_empty(self) -> bool:
        return all(slot.estimator.is_empty() for slot in self._slots)

    def __len__(self) -> int:
        return self.total_count

    def __repr__(self) -> str:
        return (
            f"TimeWindowedRingBuffer(capacity={self._capacity}, duration={self._duration}, "
            f"start={self._start}, end={self._end})"
        )

    def merge(self, other: "TimeWindowedRingBuffer") -> "TimeWindowedRingBuffer":
        """
        Merge this ring buffer with another one of identical configuration.

        Slots are combined index by index: the slot holding the newer epoch
        wins, and slots holding the same epoch have their histograms summed.

        Args:
            other: Another TimeWindowedRingBuffer.

        Returns:
            A new TimeWindowedRingBuffer. Neither input is modified.

        Raises:
            TypeError: If other is not a TimeWindowedRingBuffer.
            ValueError: If capacity, duration or value domain differ.
        """
        self._check_same_type(other)
        if (
            self._capacity != other._capacity
            or self._duration != other._duration
            or self._start != other._start
            or self._end != other._end
        ):
            raise ValueError("Cannot merge ring buffers with different parameters")

        result = self.__class__(self._capacity, self._duration, self._start, self._end)
        for target, mine, theirs in zip(result._slots, self._slots, other._slots):
            if mine.epoch is None and theirs.epoch is None:
                continue
            if theirs.epoch is None or (mine.epoch is not None and mine.epoch > theirs.epoch):
                sources = [mine]
            elif mine.epoch is None or theirs.epoch > mine.epoch:
                sources = [theirs]
            else:
                sources = [mine, theirs]
            target.epoch = sources[0].epoch
            for source in sources:
                target.estimator._absorb(source.estimator)

        epochs = [e for e in (self._newest_epoch, other._newest_epoch) if e is not None]
        result._newest_epoch = max(epochs) if epochs else None
        result._items_processed = self._combine_items_processed(other)
        return result

    def clear(self) -> None:
        """Empty every slot and forget the window position."""
        super().clear()
        for slot in self._slots:
            slot.reset(None)
        self._newest_epoch = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the ring buffer, including every slot, to a dictionary."""
        state = self._base_dict()
        state.update(
            {
                "capacity": self._capacity,
                "duration": self._duration,
                "start": self._start,
                "end": self._end,
                "newest_epoch": self._newest_epoch,
                "slots": [
                    {"epoch": slot.epoch, "estimator": slot.estimator.to_dict()}
                    for slot in self._slots
                ],
            }
        )
        return state

    @classmethod
    def from_dict(cls: Type[RingBufferType], data: Dict[str, Any]) -> RingBufferType:
        """
        Deserialize a ring buffer from a dictionary representation.

        Raises:
            ValueError: If the dictionary is malformed or its slots do not
                match the configuration.
        """
        cls._check_dict(
            data,
            {"capacity", "duration", "start", "end", "newest_epoch", "slots", "items_processed"},
        )
        instance = cls(data["capacity"], data["duration"], data["start"], data["end"])

        if len(data["slots"]) != instance._capacity:
            raise ValueError(
                f"Expected {instance._capacity} slots, found {len(data['slots'])}"
            )
        try:
            slots = [
                Slot(QuantileEstimator.from_dict(s["estimator"]), s["epoch"])
                for s in data["slots"]
            ]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Error deserializing slots: {e}") from e

        for index, slot in enumerate(slots):
            if slot.estimator.start != instance._start or slot.estimator.end != instance._end:
                raise ValueError(f"Slot {index} has a different value range")
            if slot.epoch is None:
                if not slot.estimator.is_empty():
                    raise ValueError(f"Slot {index} holds values but no epoch")
                continue
            epoch = as_int(slot.epoch)
            if epoch is None or epoch < 0:
                raise ValueError(f"Slot {index} has invalid epoch {slot.epoch!r}")
            if epoch % instance._capacity != index:
                raise ValueError(f"Slot {index} holds epoch {epoch} of another slot")
            slot.epoch = epoch

        # The late-insert guard relies on newest_epoch being the newest slot
        epochs = [slot.epoch for slot in slots if slot.epoch is not None]
        expected_newest = max(epochs) if epochs else None
        if data["newest_epoch"] != expected_newest or isinstance(data["newest_epoch"], bool):
            raise ValueError(
                f"newest_epoch {data['newest_epoch']!r} does not match the slots "
                f"(expected {expected_newest!r})"
            )

        instance._slots = slots
        instance._newest_epoch = expected_newest
        instance._items_processed = data["items_processed"]
        return instance

    def estimate_size(self) -> int:
        """Estimate the memory footprint of the ring buffer in bytes."""
        size = super().estimate_size()
        size += sys.getsizeof(self._slots)
        for slot in self._slots:
            size += sys.getsizeof(slot) + slot.estimator.estimate_size()
        return size

    def error_bounds(self) -> Dict[str, Any]:
        """
        Error characteristics of the ring buffer.

        Values are exact; time is resolved to whole slots, so the window
        edge is accurate to within one duration (stale slots aside).
        """
        return {
            "bucket_width": 1,
            "rank_error": 0,
            "time_resolution": self._duration,
        }

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats.update(
            {
                "capacity": self._capacity,
                "duration": self._duration,
                "window_span": self.window_span,
                "newest_epoch": self._newest_epoch,
                "live_slots": self.live_slot_count(),
                "total_count": self.total_count,
            }
        )
        return stats
