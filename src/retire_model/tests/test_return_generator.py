# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Tests for return models and market assumptions.
"""

import unittest

import numpy as np

from ..errors import ConfigurationError, UnknownModelError
from ..montecarlo.market_assumptions import (AssetClassAssumptions, HistoricalReturns,
                                             MarketAssumptions, asset_class_for)
from ..montecarlo.return_generator import (HistoricalBootstrapModel, HistoricalSequenceModel,
                                           IndependentNormalModel, available_models,
                                           get_return_model, ordered_types)
from ..montecarlo.random_source import RandomSource


class TestAssetClassAssumptions(unittest.TestCase):
    """Tests for AssetClassAssumptions."""

    def test_basic_creation(self):
        asset = AssetClassAssumptions("stock", 0.10, 0.18)
        self.assertEqual(asset.name, "stock")
        self.assertEqual(asset.expected_return, 0.10)
        self.assertEqual(asset.volatility, 0.18)

    def test_negative_volatility_raises(self):
        with self.assertRaises(ValueError):
            AssetClassAssumptions("test", 0.10, -0.05)


class TestMarketAssumptions(unittest.TestCase):
    """Tests for MarketAssumptions."""

    def setUp(self):
        self.market = MarketAssumptions.create_default()

    def test_mapped_types(self):
        self.assertEqual(self.market.for_type("401k"), (0.07, 0.15))
        self.assertEqual(self.market.for_type("savings"), (0.04, 0.06))

    def test_direct_label_wins_over_mapping(self):
        """Test that 'cash' uses its own assumption rather than the bond class."""
        self.assertEqual(self.market.for_type("cash"), (0.02, 0.01))

    def test_unknown_type_uses_defaults(self):
        self.assertEqual(self.market.for_type("crypto"), (0.07, 0.15))
        self.assertEqual(self.market.for_type(None), (0.07, 0.15))

    def test_asset_class_for(self):
        self.assertEqual(asset_class_for("Investment"), "stock")
        self.assertEqual(asset_class_for("pension"), "bond")
        self.assertIsNone(asset_class_for("crypto"))
        self.assertIsNone(asset_class_for(None))


class TestHistoricalReturns(unittest.TestCase):
    """Tests for the embedded historical table."""

    def test_default_table_is_year_aligned(self):
        history = HistoricalReturns.create_default()
        self.assertEqual(set(history.asset_classes), {"stock", "bond"})
        self.assertEqual(len(history.get("stock")), history.span)
        self.assertEqual(len(history.get("bond")), history.span)
        self.assertEqual(history.year_of(history.span - 1), 2023)

    def test_series_aligned_on_latest_year(self):
        history = HistoricalReturns({"a": [1, 2, 3, 4], "b": [30, 40]}, end_year=2000)
        self.assertEqual(history.span, 2)
        self.assertEqual(history.get("a"), [3, 4])
        self.assertEqual(history.start_year, 1999)

    def test_empty_table_raises(self):
        with self.assertRaises(ConfigurationError):
            HistoricalReturns({})
        with self.assertRaises(ConfigurationError):
            HistoricalReturns({"a": []})


class TestModelRegistry(unittest.TestCase):
    """Tests for model lookup."""

    def test_lookup_by_id_and_alias(self):
        self.assertIsInstance(get_return_model("independent-normal"), IndependentNormalModel)
        self.assertIsInstance(get_return_model("simple-random"), IndependentNormalModel)
        self.assertIsInstance(get_return_model("historical-bootstrap"), HistoricalBootstrapModel)
        self.assertIsInstance(get_return_model("sequence"), HistoricalSequenceModel)

    def test_unknown_model(self):
        with self.assertRaises(UnknownModelError) as ctx:
            get_return_model("garch")
        self.assertIsInstance(ctx.exception, ConfigurationError)
        self.assertIn("garch", str(ctx.exception))
        with self.assertRaises(UnknownModelError):
            get_return_model(None)

    def test_available_models(self):
        names = [model["name"] for model in available_models()]
        self.assertEqual(names, ["independent-normal", "historical-bootstrap",
                                 "historical-sequence"])

    def test_ordered_types(self):
        self.assertEqual(ordered_types({"stock", "bond"}), ["bond", "stock"])
        self.assertEqual(ordered_types(["stock", "bond", "stock"]), ["stock", "bond"])


class ReturnModelContract:
    """Checks shared by every return model."""

    model_id = None

    def setUp(self):
        self.model = get_return_model(self.model_id)

    def test_shape(self):
        returns = self.model.generate({"stock", "bond"}, 30, seed=1)
        self.assertEqual(set(returns), {"stock", "bond"})
        for series in returns.values():
            self.assertEqual(len(series), 30)

    def test_same_seed_is_reproducible(self):
        a = self.model.generate(["investment", "savings"], 40, seed=42)
        b = self.model.generate(["investment", "savings"], 40, seed=42)
        self.assertEqual(a, b)

    def test_different_seeds_differ(self):
        series = {tuple(self.model.generate(["stock"], 40, seed=seed)["stock"])
                  for seed in range(1, 6)}
        self.assertGreater(len(series), 1)

    def test_zero_duration(self):
        self.assertEqual(self.model.generate(["stock"], 0, seed=1), {"stock": []})

    def test_invalid_duration(self):
        for duration in (-1, 2.5, "10", True):
            with self.assertRaises(ConfigurationError):
                self.model.generate(["stock"], duration, seed=1)

    def test_adjustment(self):
        base = self.model.generate(["stock"], 10, seed=9)
        shifted = self.model.generate(["stock"], 10, seed=9, config={"stock_adjustment": 0.01})
        np.testing.assert_allclose(np.array(shifted["stock"]) - np.array(base["stock"]), 0.01)


class TestIndependentNormalModel(ReturnModelContract, unittest.TestCase):
    model_id = "independent-normal"

    def test_configured_mean_and_stddev(self):
        returns = self.model.generate(["bond"], 5, seed=3,
                                      config={"bond_mean": 0.03, "bond_stddev": 0.0})
        self.assertEqual(returns["bond"], [0.03] * 5)

    def test_default_moments(self):
        returns = self.model.generate(["stock"], 20000, seed=4)["stock"]
        self.assertAlmostEqual(np.mean(returns), 0.07, delta=0.005)
        self.assertAlmostEqual(np.std(returns), 0.15, delta=0.005)


class TestHistoricalBootstrapModel(ReturnModelContract, unittest.TestCase):
    model_id = "historical-bootstrap"

    def test_same_year_for_all_types(self):
        """Test that stock and bond returns of a period come from one year."""
        history = self.model.history
        pairs = set(zip(history.get("stock"), history.get("bond")))
        returns = self.model.generate(["stock", "bond"], 200, seed=5)
        for pair in zip(returns["stock"], returns["bond"]):
            self.assertIn(pair, pairs)

    def test_unknown_type_gets_zero_returns(self):
        returns = self.model.generate(["crypto"], 5, seed=6)
        self.assertEqual(returns["crypto"], [0.0] * 5)


class TestHistoricalSequenceModel(ReturnModelContract, unittest.TestCase):
    model_id = "historical-sequence"

    def assertContiguous(self, values, series):
        span = len(series)
        starts = [s for s in range(span)
                  if all(values[k] == series[(s + k) % span] for k in range(len(values)))]
        self.assertTrue(starts, "returns are not a contiguous historical window")

    def test_window_is_contiguous(self):
        series = self.model.history.get("stock")
        for seed in range(20):
            returns = self.model.generate(["stock"], 30, seed=seed)
            self.assertContiguous(returns["stock"], series)

    def test_window_within_span_does_not_wrap(self):
        span = self.model.history.span
        for seed in range(50):
            years = self.model.window(span, RandomSource(seed))
            self.assertEqual(years, list(range(span)))

    def test_long_horizon_wraps(self):
        """Test that a horizon longer than the table concatenates it with itself."""
        series = self.model.history.get("stock")
        span = len(series)
        returns = self.model.generate(["stock"], span + 10, seed=8)["stock"]
        self.assertEqual(len(returns), span + 10)
        self.assertContiguous(returns, series)
        self.assertEqual(returns[span:], returns[:10])


if __name__ == '__main__':
    unittest.main()
