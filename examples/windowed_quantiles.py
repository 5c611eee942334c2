"""
Sliding-window percentiles with TinyQuantile.

This example routes timestamped values through a TimeWindowedRingBuffer and
shows how old time slots are recycled as time moves forward.
"""

import logging
import random

from tiny_quantile import InvalidTimestampError, TimeWindowedRingBuffer


def demonstrate_ring_buffer():
    """Insert (i, 2 * i) into a ring of 3 slots of 10 time units each."""
    print("\n=== Time-Windowed Ring Buffer Demo ===")

    ring_buffer = TimeWindowedRingBuffer(capacity=3, duration=10, start=0, end=1000)
    for i in range(11):
        ring_buffer.insert(i, timestamp=i * 2)

    print(f"Slot epochs: {ring_buffer.slot_epochs()}")
    print(f"Estimated 50th percentile from ring buffer: {ring_buffer.estimate_quantile(0.5)}")


def demonstrate_moving_window():
    """Follow the p90 of a drifting signal over a 60-second window."""
    print("\n=== Moving Window Demo ===")

    random.seed(7)
    window = TimeWindowedRingBuffer.create_from_window(60, duration=10, start=0, end=1000)
    print(f"Capacity: {window.capacity} slots of {window.duration}s")

    for second in range(300):
        baseline = 100 + second  # slowly increasing signal
        value = max(0, min(999, int(random.gauss(baseline, 20))))
        window.insert(value, timestamp=second)

        if second % 60 == 59:
            bounds = window.window_bounds()
            print(
                f"  t={second:3d}s window={bounds} "
                f"p90={window.estimate_quantile(0.9)} live_slots={window.live_slot_count()}"
            )

    try:
        window.insert(500, timestamp=10)
    except InvalidTimestampError as e:
        print(f"\nLate insert rejected: {e}")

    stats = window.get_stats()
    print(f"Values held: {stats['total_count']}, items processed: {stats['items_processed']}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    demonstrate_ring_buffer()
    demonstrate_moving_window()
