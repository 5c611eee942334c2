"""
Basic example of using TinyQuantile for stream percentiles.

This example feeds integer streams into a QuantileEstimator and reads back
percentiles, then shows how to snapshot and restore the estimator.
"""

import random

from tiny_quantile import EmptySummaryError, OutOfRangeError, QuantileEstimator


def demonstrate_basic_estimator():
    """Estimate percentiles over the values 0..101."""
    print("\n=== Basic Quantile Estimator Demo ===")

    estimator = QuantileEstimator(0, 1000)
    for i in range(102):
        estimator.add_value(i)

    print(f"Estimated 50th percentile: {estimator.estimate_quantile(0.5)}")
    print(f"Estimated 99th percentile: {estimator.estimate_quantile(0.99)}")


def demonstrate_latency_percentiles():
    """Track simulated request latencies in milliseconds."""
    print("\n=== Latency Percentiles Demo ===")

    random.seed(42)
    estimator = QuantileEstimator(0, 5000)

    rejected = 0
    print("Processing 10000 simulated latencies...")
    for _ in range(10000):
        latency_ms = int(random.lognormvariate(4.0, 0.6))
        try:
            estimator.add_value(latency_ms)
        except OutOfRangeError:
            # Anything at or above 5s is outside the tracked range
            rejected += 1

    p50, p90, p99 = estimator.estimate_quantiles([0.5, 0.9, 0.99])
    print(f"  p50={p50}ms p90={p90}ms p99={p99}ms")
    print(f"  min={estimator.min_value}ms max={estimator.max_value}ms")
    print(f"  rejected out-of-range samples: {rejected}")
    print(f"Approximate memory usage: {estimator.estimate_size()} bytes")

    serialized = estimator.serialize(format="json")
    print(f"\nSerialized size: {len(serialized)} bytes")
    restored = QuantileEstimator.deserialize(serialized, format="json")
    print(f"Restored p99: {restored.estimate_quantile(0.99)}ms")


def demonstrate_errors():
    """Show the errors raised for empty estimators and bad values."""
    print("\n=== Error Handling Demo ===")

    estimator = QuantileEstimator(0, 100)
    try:
        estimator.estimate_quantile(0.5)
    except EmptySummaryError as e:
        print(f"Empty estimator: {e}")

    try:
        estimator.add_value(100)
    except OutOfRangeError as e:
        print(f"Out of range: {e}")


if __name__ == "__main__":
    demonstrate_basic_estimator()
    demonstrate_latency_percentiles()
    demonstrate_errors()
