"""
Exceptions raised by TinyQuantile summaries.

All errors derive from ValueError so that callers validating arguments the
usual way keep working, while the subclasses let them tell the failure
kinds apart.
"""

from typing import Any, Optional


class QuantileError(ValueError):
    """Base class for all TinyQuantile argument and state errors."""


class InvalidRangeError(QuantileError):
    """Raised when a value domain [start, end) is empty or malformed."""

    def __init__(self, start: Any, end: Any, message: Optional[str] = None):
        self.start = start
        self.end = end
        super().__init__(
            message
            or f"Invalid range [{start}, {end}): end must be greater than start"
        )


class InvalidCapacityError(QuantileError):
    """Raised when a ring buffer is configured with no slots."""

    def __init__(self, capacity: Any):
        self.capacity = capacity
        super().__init__(f"Capacity must be a positive integer, got {capacity!r}")


class InvalidDurationError(QuantileError):
    """Raised when a ring buffer slot would cover no time."""

    def __init__(self, duration: Any):
        self.duration = duration
        super().__init__(f"Duration must be a positive integer, got {duration!r}")


class OutOfRangeError(QuantileError):
    """Raised when a value falls outside the configured domain."""

    def __init__(self, value: Any, start: int, end: int):
        self.value = value
        self.start = start
        self.end = end
        super().__init__(f"Value {value!r} out of range [{start}, {end})")


class InvalidFractionError(QuantileError):
    """Raised when a quantile fraction is not within [0.0, 1.0]."""

    def __init__(self, fraction: Any):
        self.fraction = fraction
        super().__init__(f"Fraction must be between 0.0 and 1.0, got {fraction!r}")


class EmptySummaryError(QuantileError):
    """Raised when a quantile is requested before any value was recorded."""

    def __init__(self, message: str = "No values added to the estimator"):
        super().__init__(message)


class InvalidTimestampError(QuantileError):
    """Raised when a timestamp cannot be mapped to a live epoch."""

    def __init__(self, timestamp: Any, reason: str):
        self.timestamp = timestamp
        super().__init__(f"Invalid timestamp {timestamp!r}: {reason}")
