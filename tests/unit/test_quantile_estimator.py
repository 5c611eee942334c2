"""
Unit tests for the fixed-range QuantileEstimator.
"""

import json
import numbers
import random
import unittest

from tiny_quantile.algorithms.quantile_estimator import QuantileEstimator
from tiny_quantile.core.errors import (
    EmptySummaryError,
    InvalidFractionError,
    InvalidRangeError,
    OutOfRangeError,
    QuantileError,
)


class _Integral:
    """Minimal integral number that is not an int subclass."""

    def __init__(self, value):
        self._value = value

    def __index__(self):
        return self._value


numbers.Integral.register(_Integral)


class TestQuantileEstimator(unittest.TestCase):
    """Test cases for QuantileEstimator."""

    def test_init(self):
        """Test initialization with valid and invalid ranges."""
        est = QuantileEstimator(0, 100)
        self.assertEqual(est.start, 0)
        self.assertEqual(est.end, 100)
        self.assertEqual(len(est.counts), 100)
        self.assertEqual(est.total_count, 0)
        self.assertTrue(est.is_empty())

        # Single-value domain
        self.assertEqual(len(QuantileEstimator(5, 6).counts), 1)

        with self.assertRaises(InvalidRangeError):
            QuantileEstimator(10, 10)
        with self.assertRaises(InvalidRangeError):
            QuantileEstimator(10, 5)
        with self.assertRaises(InvalidRangeError):
            QuantileEstimator(-1, 5)
        with self.assertRaises(InvalidRangeError):
            QuantileEstimator(0.0, 5)

        # The taxonomy still reads as ValueError to generic callers
        with self.assertRaises(ValueError):
            QuantileEstimator(3, 1)

    def test_add_value(self):
        """Test that add_value increments exactly one counter."""
        est = QuantileEstimator(10, 20)
        est.add_value(10)
        est.add_value(15)
        est.add_value(15)
        est.add_value(19)

        self.assertEqual(est.total_count, 4)
        self.assertEqual(est.count_of(10), 1)
        self.assertEqual(est.count_of(15), 2)
        self.assertEqual(est.count_of(19), 1)
        self.assertEqual(est.count_of(11), 0)
        self.assertEqual(est.counts[5], 2)
        self.assertEqual(len(est), 4)
        self.assertEqual(est.items_processed, 4)

    def test_total_count_matches_counters(self):
        """Test total_count equals the sum of the counters after every insert."""
        random.seed(7)
        est = QuantileEstimator(0, 50)
        for _ in range(500):
            est.add_value(random.randrange(50))
            self.assertEqual(est.total_count, sum(est.counts))

    def test_out_of_range(self):
        """Test that out-of-range values are rejected without side effects."""
        est = QuantileEstimator(10, 20)
        est.add_value(12)

        for bad in (9, 20, 1000, -1):
            with self.assertRaises(OutOfRangeError) as ctx:
                est.add_value(bad)
            self.assertEqual(ctx.exception.value, bad)
            self.assertEqual(ctx.exception.start, 10)
            self.assertEqual(ctx.exception.end, 20)

        with self.assertRaises(OutOfRangeError):
            est.add_value(12.5)
        with self.assertRaises(OutOfRangeError):
            est.add_value(True)

        self.assertEqual(est.total_count, 1)
        self.assertEqual(sum(est.counts), 1)

    def test_integral_values(self):
        """Integral types other than int are accepted and stored as int."""
        est = QuantileEstimator(_Integral(10), _Integral(20))
        self.assertIs(type(est.start), int)
        self.assertEqual(len(est.counts), 10)

        est.add_value(_Integral(15))
        est.add_value(15)
        self.assertEqual(est.count_of(_Integral(15)), 2)
        self.assertEqual(est.estimate_quantile(1.0), 15)
        self.assertIs(type(est.estimate_quantile(1.0)), int)

        with self.assertRaises(OutOfRangeError):
            est.add_value(_Integral(20))
        self.assertEqual(est.total_count, 2)

    def test_update_alias(self):
        """Test the StreamSummary update/query aliases."""
        est = QuantileEstimator(0, 10)
        for v in (1, 2, 3):
            est.update(v)
        self.assertEqual(est.total_count, 3)
        self.assertEqual(est.query(0.5), 2)
        self.assertEqual(est.query(), 2)

    def test_worked_example(self):
        """Values 0..=101 over [0, 1000): the median has rank 51, value 50."""
        est = QuantileEstimator(0, 1000)
        for i in range(102):
            est.add_value(i)
        self.assertEqual(est.estimate_quantile(0.5), 50)
        # ceil(0.99 * 102) = 101 -> value 100
        self.assertEqual(est.estimate_quantile(0.99), 100)

    def test_estimate_quantile_one_to_hundred(self):
        """Test nearest-rank answers on 1..=100."""
        est = QuantileEstimator(0, 101)
        for i in range(1, 101):
            est.add_value(i)

        self.assertEqual(est.estimate_quantile(0.5), 50)
        self.assertEqual(est.estimate_quantile(0.9), 90)
        self.assertEqual(est.estimate_quantile(0.99), 99)
        self.assertEqual(est.estimate_quantile(0.0), 1)
        self.assertEqual(est.estimate_quantile(1.0), 100)
        self.assertEqual(est.estimate_quantile(0), 1)
        self.assertEqual(est.estimate_quantile(1), 100)

    def test_float_noise_in_rank(self):
        """0.07 * 100 is 7.000000000000001 in floating point; rank must be 7."""
        est = QuantileEstimator(1, 101)
        for i in range(1, 101):
            est.add_value(i)
        self.assertEqual(est.estimate_quantile(0.07), 7)
        self.assertEqual(est.estimate_quantile(0.29), 29)

    def test_min_and_max(self):
        """Fraction 1.0 returns the maximum, small fractions the minimum."""
        est = QuantileEstimator(0, 1000)
        values = [412, 17, 999, 250, 250, 3]
        for v in values:
            est.add_value(v)

        self.assertEqual(est.estimate_quantile(1.0), max(values))
        self.assertEqual(est.estimate_quantile(0.0), min(values))
        self.assertEqual(est.estimate_quantile(1 / len(values)), min(values))
        self.assertEqual(est.min_value, 3)
        self.assertEqual(est.max_value, 999)

    def test_monotonic_in_fraction(self):
        """Estimates never decrease as the fraction grows."""
        random.seed(42)
        est = QuantileEstimator(0, 200)
        for _ in range(1000):
            est.add_value(int(random.gauss(100, 25)) % 200)

        fractions = [i / 100 for i in range(101)]
        estimates = [est.estimate_quantile(f) for f in fractions]
        for lower, higher in zip(estimates, estimates[1:]):
            self.assertLessEqual(lower, higher)

    def test_ties_favor_lower_value(self):
        """The first value whose cumulative count reaches the rank wins."""
        est = QuantileEstimator(0, 10)
        for v in (2, 2, 5, 5):
            est.add_value(v)
        # rank ceil(0.5 * 4) = 2 is reached exactly at value 2
        self.assertEqual(est.estimate_quantile(0.5), 2)
        self.assertEqual(est.estimate_quantile(0.51), 5)

    def test_constant_values(self):
        est = QuantileEstimator(0, 100)
        for _ in range(100):
            est.add_value(42)
        for f in (0.0, 0.1, 0.5, 0.9, 1.0):
            self.assertEqual(est.estimate_quantile(f), 42)

    def test_matches_sorted_reference(self):
        """Estimates equal the nearest-rank element of the sorted data."""
        random.seed(3)
        data = [random.randrange(300, 700) for _ in range(777)]
        est = QuantileEstimator(300, 700)
        for v in data:
            est.add_value(v)

        data.sort()
        for permille in (10, 250, 500, 750, 950, 999):
            # Integer ceil(permille * n / 1000)
            rank = max(1, -(-permille * len(data) // 1000))
            self.assertEqual(
                est.estimate_quantile(permille / 1000),
                data[rank - 1],
                msg=f"permille {permille}",
            )

    def test_estimate_quantiles(self):
        """Batch estimates match individual ones and keep input order."""
        est = QuantileEstimator(0, 1000)
        for i in range(1, 101):
            est.add_value(i)

        fractions = [0.9, 0.1, 0.5, 1.0, 0.0]
        self.assertEqual(
            est.estimate_quantiles(fractions),
            [est.estimate_quantile(f) for f in fractions],
        )
        self.assertEqual(est.estimate_quantiles(fractions), [90, 10, 50, 100, 1])
        self.assertEqual(est.estimate_quantiles([]), [])

    def test_empty(self):
        """Querying before any insert raises EmptySummaryError."""
        est = QuantileEstimator(0, 100)
        with self.assertRaises(EmptySummaryError):
            est.estimate_quantile(0.5)
        self.assertIsNone(est.min_value)
        self.assertIsNone(est.max_value)

    def test_invalid_fraction(self):
        est = QuantileEstimator(0, 100)
        est.add_value(10)
        for bad in (-0.1, 1.1, float("nan"), float("inf"), "0.5", None, True):
            with self.assertRaises(InvalidFractionError):
                est.estimate_quantile(bad)

    def test_invalid_fraction_checked_before_empty(self):
        est = QuantileEstimator(0, 100)
        with self.assertRaises(InvalidFractionError):
            est.estimate_quantile(1.5)

    def test_errors_share_base(self):
        est = QuantileEstimator(0, 10)
        with self.assertRaises(QuantileError):
            est.estimate_quantile(0.5)
        with self.assertRaises(QuantileError):
            est.add_value(10)

    def test_merge(self):
        """Test merging two estimators over the same domain."""
        a = QuantileEstimator(0, 100)
        b = QuantileEstimator(0, 100)
        for v in (10, 20, 30):
            a.add_value(v)
        for v in (40, 50):
            b.add_value(v)

        merged = a.merge(b)
        self.assertIsInstance(merged, QuantileEstimator)
        self.assertEqual(merged.total_count, 5)
        self.assertEqual(merged.items_processed, 5)
        self.assertEqual(merged.estimate_quantile(0.0), 10)
        self.assertEqual(merged.estimate_quantile(0.5), 30)
        self.assertEqual(merged.estimate_quantile(1.0), 50)

        # Inputs are untouched
        self.assertEqual(a.total_count, 3)
        self.assertEqual(b.total_count, 2)

    def test_merge_incompatible(self):
        a = QuantileEstimator(0, 100)
        with self.assertRaises(ValueError):
            a.merge(QuantileEstimator(0, 50))
        with self.assertRaises(ValueError):
            a.merge(QuantileEstimator(1, 100))
        with self.assertRaises(TypeError):
            a.merge("not an estimator")

    def test_clear(self):
        est = QuantileEstimator(0, 10)
        for v in range(10):
            est.add_value(v)
        est.clear()

        self.assertTrue(est.is_empty())
        self.assertEqual(est.total_count, 0)
        self.assertEqual(sum(est.counts), 0)
        self.assertEqual(est.items_processed, 0)
        self.assertEqual(len(est.counts), 10)
        with self.assertRaises(EmptySummaryError):
            est.estimate_quantile(0.5)

    def test_serialization(self):
        """Test dictionary and JSON snapshots."""
        est = QuantileEstimator(100, 200)
        for v in (100, 150, 150, 199):
            est.add_value(v)

        data = est.to_dict()
        self.assertEqual(data["type"], "QuantileEstimator")
        self.assertEqual(data["start"], 100)
        self.assertEqual(data["end"], 200)
        self.assertEqual(data["total_count"], 4)
        self.assertEqual(data["counts"], {"0": 1, "50": 2, "99": 1})

        restored = QuantileEstimator.from_dict(data)
        self.assertEqual(restored.counts, est.counts)
        self.assertEqual(restored.total_count, 4)
        self.assertEqual(restored.items_processed, 4)

        json_str = est.serialize(format="json")
        self.assertEqual(json.loads(json_str)["total_count"], 4)
        from_json = QuantileEstimator.deserialize(json_str, format="json")
        self.assertEqual(from_json.estimate_quantile(0.5), est.estimate_quantile(0.5))

        from_binary = QuantileEstimator.deserialize(est.serialize(format="binary"), format="binary")
        self.assertEqual(from_binary.counts, est.counts)

        with self.assertRaises(ValueError):
            est.serialize(format="xml")

    def test_from_dict_invalid(self):
        est = QuantileEstimator(0, 10)
        est.add_value(3)
        good = est.to_dict()

        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict({k: v for k, v in good.items() if k != "type"})
        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict(dict(good, type="TimeWindowedRingBuffer"))
        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict({k: v for k, v in good.items() if k != "counts"})
        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict(dict(good, counts={"10": 1}))
        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict(dict(good, counts={"x": 1}))
        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict(dict(good, counts={"3": -1}))
        with self.assertRaises(ValueError):
            QuantileEstimator.from_dict(dict(good, total_count=2))

    def test_stats(self):
        est = QuantileEstimator(0, 100)
        stats = est.get_stats()
        self.assertEqual(stats["type"], "QuantileEstimator")
        self.assertEqual(stats["total_count"], 0)
        self.assertNotIn("p50", stats)

        for i in range(1, 101):
            est.add_value(i % 100)
        stats = est.get_stats()
        self.assertEqual(stats["total_count"], 100)
        self.assertEqual(stats["distinct_values"], 100)
        self.assertEqual(stats["p50"], 49)
        self.assertEqual(stats["p90"], 89)
        self.assertEqual(stats["p99"], 98)
        self.assertEqual(stats["bucket_width"], 1)
        self.assertGreater(stats["memory_bytes"], 0)

    def test_estimate_size_grows_with_range(self):
        small = QuantileEstimator(0, 10)
        large = QuantileEstimator(0, 10000)
        self.assertGreater(large.estimate_size(), small.estimate_size())


if __name__ == "__main__":
    unittest.main()
