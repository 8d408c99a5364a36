# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Tests for the statistics functions.
"""

import unittest

from ..montecarlo import statistics as stats
from ..montecarlo.random_source import RandomSource


class TestPercentile(unittest.TestCase):
    """Tests for percentile."""

    def setUp(self):
        rng = RandomSource(2024)
        self.values = [rng.normal(100, 30) for _ in range(257)]

    def test_extremes(self):
        self.assertEqual(stats.percentile(self.values, 0), min(self.values))
        self.assertEqual(stats.percentile(self.values, 100), max(self.values))

    def test_monotonic(self):
        levels = [p / 2 for p in range(201)]
        results = [stats.percentile(self.values, p) for p in levels]
        for lower, upper in zip(results, results[1:]):
            self.assertLessEqual(lower, upper)

    def test_linear_interpolation(self):
        self.assertEqual(stats.percentile([10, 20, 30, 40], 50), 25)
        self.assertAlmostEqual(stats.percentile([0, 10], 25), 2.5)

    def test_unsorted_input(self):
        self.assertEqual(stats.percentile([3, 1, 2], 50), 2)

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            stats.percentile([], 50)
        with self.assertRaises(ValueError):
            stats.percentile([1, 2], 101)
        with self.assertRaises(ValueError):
            stats.percentile([1, 2], -1)


class TestMoments(unittest.TestCase):
    """Tests for mean and standard deviation."""

    def test_mean_and_population_std(self):
        values = [2, 4, 4, 4, 5, 5, 7, 9]
        self.assertEqual(stats.mean(values), 5)
        self.assertEqual(stats.std_dev(values), 2)

    def test_empty(self):
        with self.assertRaises(ValueError):
            stats.mean([])
        with self.assertRaises(ValueError):
            stats.std_dev([])


class TestRiskMeasures(unittest.TestCase):
    """Tests for VaR and CVaR."""

    def setUp(self):
        self.values = list(range(100, 0, -1))

    def test_value_at_risk(self):
        self.assertEqual(stats.value_at_risk(self.values, 0.05), 6)
        self.assertEqual(stats.value_at_risk(self.values, 0.10), 11)

    def test_conditional_var(self):
        self.assertEqual(stats.conditional_var(self.values, 0.05), 3)

    def test_cvar_not_above_var(self):
        rng = RandomSource(17)
        values = [rng.normal(0, 1) for _ in range(500)]
        self.assertLessEqual(stats.conditional_var(values), stats.value_at_risk(values))

    def test_small_sample_uses_worst_outcome(self):
        self.assertEqual(stats.conditional_var([5, 1, 9], 0.05), 1)
        self.assertEqual(stats.value_at_risk([5, 1, 9], 0.05), 1)

    def test_invalid_confidence(self):
        with self.assertRaises(ValueError):
            stats.value_at_risk([1, 2, 3], 0)
        with self.assertRaises(ValueError):
            stats.conditional_var([1, 2, 3], 1.5)


class TestPathMetrics(unittest.TestCase):
    """Tests for survival months and drawdown."""

    def test_survival_months(self):
        self.assertEqual(stats.survival_months([100, 50, 0, 10]), 2)
        self.assertEqual(stats.survival_months([100, 50, 20]), 3)
        self.assertEqual(stats.survival_months([-5, 10]), 0)
        self.assertEqual(stats.survival_months([]), 0)

    def test_max_drawdown(self):
        self.assertAlmostEqual(stats.max_drawdown([100, 120, 60, 90, 130, 65]), 0.5)
        self.assertEqual(stats.max_drawdown([1, 2, 3]), 0)
        self.assertEqual(stats.max_drawdown([]), 0)

    def test_max_drawdown_ignores_non_positive_peaks(self):
        self.assertEqual(stats.max_drawdown([-10, -20, -5]), 0)
        self.assertEqual(stats.max_drawdown([0, 0, 0]), 0)

    def test_full_depletion(self):
        self.assertEqual(stats.max_drawdown([100, 50, 0]), 1)


class TestSummaries(unittest.TestCase):
    """Tests for summarize and survival_statistics."""

    def test_summarize(self):
        summary = stats.summarize([1, 2, 3, 4, 5], [10, 90])
        self.assertEqual(summary["mean"], 3)
        self.assertEqual(summary["median"], 3)
        self.assertEqual(summary["min"], 1)
        self.assertEqual(summary["max"], 5)
        self.assertAlmostEqual(summary["percentiles"][10], 1.4)
        self.assertAlmostEqual(summary["percentiles"][90], 4.6)

    def test_summarize_default_levels(self):
        summary = stats.summarize([1, 2, 3])
        self.assertEqual(list(summary["percentiles"]), [10, 25, 50, 75, 90])

    def test_summarize_empty(self):
        summary = stats.summarize([], [50])
        self.assertIsNone(summary["mean"])
        self.assertEqual(summary["percentiles"], {50: None})

    def test_survival_statistics(self):
        survival = stats.survival_statistics([300, 120, 240, 360])
        self.assertEqual(survival["min"], 120)
        self.assertEqual(survival["max"], 360)
        self.assertEqual(survival["median"], 270)
        self.assertEqual(survival["survivalTimes"], [300, 120, 240, 360])


if __name__ == '__main__':
    unittest.main()
