# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
End-to-end tests for MonteCarloSimulator.
"""

import threading
import time
import unittest

from ..engine.cashflow import CashFlowEngine
from ..errors import BatchFailure, ConfigurationError, RunInProgressError, ValidationError
from ..montecarlo.config import MonteCarloConfig
from ..montecarlo.results import AnalysisResult
from ..montecarlo.run_context import RunState
from ..montecarlo.simulator import MonteCarloSimulator
from ..scenario import Scenario

EXPENSE_RANGE = {"plan.monthly_expenses": {"type": "uniform", "min": 1000, "max": 2000}}


def depleting_scenario(**asset_fields):
    """150k of savings drawn at 3000/month runs out after 50 months."""
    asset = {"name": "Savings", "balance": 150000}
    asset.update(asset_fields)
    return Scenario.from_dict({
        "title": "depleting",
        "plan": {"monthly_expenses": 3000, "duration_months": 120},
        "assets": [asset],
    })


def market_scenario():
    return Scenario.from_dict({
        "title": "market",
        "plan": {"monthly_expenses": 2500, "duration_months": 120},
        "assets": [
            {"name": "Brokerage", "balance": 200000, "type": "stock"},
            {"name": "Bonds", "balance": 100000, "type": "bond"},
        ],
        "order": [{"account": "Bonds", "order": 1}, {"account": "Brokerage", "order": 2}],
    })


class SlowEngine(CashFlowEngine):
    def simulate(self, scenario):
        time.sleep(0.2)
        return super().simulate(scenario)


class OneHungTrialEngine(CashFlowEngine):
    """Hangs on its first simulation only."""

    def __init__(self, hang_seconds):
        self.hang_seconds = hang_seconds
        self.calls = 0
        self._lock = threading.Lock()

    def simulate(self, scenario):
        with self._lock:
            self.calls += 1
            first = self.calls == 1
        if first:
            time.sleep(self.hang_seconds)
        return super().simulate(scenario)


class BrokenEngine(CashFlowEngine):
    def simulate(self, scenario):
        raise RuntimeError("engine exploded")


class TestMonteCarloRun(unittest.TestCase):
    """Tests for complete Monte Carlo runs."""

    def test_depleting_scenario_never_meets_target(self):
        """Test that a plan lasting 49 months fails a 60-month target every time."""
        config = MonteCarloConfig(iterations=100, random_seed=1, target_survival_months=60)
        analysis = MonteCarloSimulator(config).run(depleting_scenario())

        self.assertIsInstance(analysis, AnalysisResult)
        self.assertEqual(analysis.state, RunState.COMPLETED)
        self.assertEqual(analysis.iterations, 100)
        self.assertEqual(analysis.success_rate, 0.0)
        self.assertEqual(analysis.survival_statistics["median"], 49)
        self.assertEqual(analysis.statistics["finalBalance"]["max"], 0)
        self.assertEqual(analysis.insights[0]["severity"], "critical")

    def test_shorter_target_always_met(self):
        config = MonteCarloConfig(iterations=10, random_seed=1, target_survival_months=40)
        analysis = MonteCarloSimulator(config).run(depleting_scenario())
        self.assertEqual(analysis.success_rate, 1.0)
        self.assertEqual(analysis.success_rate_data["successful"], 10)

    def test_min_balance_is_a_success_criterion(self):
        config = MonteCarloConfig(iterations=5, random_seed=1, target_survival_months=0)
        analysis = MonteCarloSimulator(config).run(depleting_scenario(min_balance=1000))
        self.assertEqual(analysis.success_rate, 0.0)

    def test_same_seed_reproducible_across_batching(self):
        """Test that results depend on the seed only, not on batch size or workers."""
        serial = MonteCarloSimulator(MonteCarloConfig(
            iterations=30, random_seed=42, batch_size=50, workers=1))
        parallel = MonteCarloSimulator(MonteCarloConfig(
            iterations=30, random_seed=42, batch_size=7, workers=4))

        first = serial.run(depleting_scenario(), EXPENSE_RANGE)
        second = parallel.run(depleting_scenario(), EXPENSE_RANGE)

        self.assertEqual(first.raw_metrics, second.raw_metrics)
        self.assertEqual(first.statistics, second.statistics)
        self.assertEqual(first.metadata["randomSeed"], 42)
        self.assertTrue(first.metadata["seedProvided"])

    def test_different_seed_differs(self):
        first = MonteCarloSimulator(MonteCarloConfig(iterations=20, random_seed=1)).run(
            depleting_scenario(), EXPENSE_RANGE)
        second = MonteCarloSimulator(MonteCarloConfig(iterations=20, random_seed=2)).run(
            depleting_scenario(), EXPENSE_RANGE)
        self.assertNotEqual(first.raw_metrics["finalBalance"],
                            second.raw_metrics["finalBalance"])

    def test_generated_seed_is_reported(self):
        analysis = MonteCarloSimulator(MonteCarloConfig(iterations=3)).run(depleting_scenario())
        self.assertFalse(analysis.metadata["seedProvided"])
        self.assertIsInstance(analysis.metadata["randomSeed"], int)

    def test_key_scenarios_replayed(self):
        """Test that key scenarios carry the replayed ledger of their trial."""
        config = MonteCarloConfig(iterations=25, random_seed=9)
        analysis = MonteCarloSimulator(config).run(depleting_scenario(), EXPENSE_RANGE)

        self.assertEqual(list(analysis.key_scenarios),
                         ["worst", "p10", "p25", "median", "p75", "p90", "best"])
        finals = sorted(analysis.get_final_values())
        self.assertEqual(analysis.key_scenarios["worst"].final_balance, finals[0])
        self.assertEqual(analysis.key_scenarios["best"].final_balance, finals[-1])
        for key in analysis.key_scenarios.values():
            self.assertIsNotNone(key.result)
            self.assertAlmostEqual(key.result.final_balance(), key.final_balance)

        data = analysis.to_dict(include_ledgers=True)
        self.assertIn("result", data["keyScenarios"]["median"])
        self.assertNotIn("result", analysis.to_dict()["keyScenarios"]["median"])

    def test_return_model_sequences_kept_for_key_scenarios(self):
        config = MonteCarloConfig(iterations=20, random_seed=5, return_model="bootstrap")
        analysis = MonteCarloSimulator(config).run(market_scenario())

        median = analysis.key_scenarios["median"]
        self.assertEqual(sorted(median.return_sequence), ["bond", "stock"])
        self.assertEqual(len(median.return_sequence["stock"]), 10)
        key_indices = {key.trial_index for key in analysis.key_scenarios.values()}
        for outcome in analysis.outcomes:
            if outcome.index not in key_indices:
                self.assertIsNone(outcome.return_sequence)
        self.assertEqual(analysis.metadata["returnModel"], "bootstrap")
        # Market returns make outcomes differ between trials
        self.assertGreater(len(set(analysis.raw_metrics["finalBalance"])), 1)

    def test_input_scenario_not_mutated(self):
        scenario = market_scenario()
        before = scenario.to_dict()
        config = MonteCarloConfig(iterations=5, random_seed=3, return_model="normal")
        MonteCarloSimulator(config).run(scenario, {
            "assets.Brokerage.balance": {"type": "normal", "mean": 200000, "stdDev": 20000}})
        self.assertEqual(scenario.to_dict(), before)

    def test_dict_scenario_accepted(self):
        config = MonteCarloConfig(iterations=3, random_seed=3)
        analysis = MonteCarloSimulator(config).run(depleting_scenario().to_dict())
        self.assertEqual(analysis.metadata["scenarioId"], "depleting")

    def test_iterations_capped(self):
        with self.assertLogs("retire_model.montecarlo.config", level="WARNING"):
            config = MonteCarloConfig(iterations=20, max_iterations=5, random_seed=1)
        analysis = MonteCarloSimulator(config).run(depleting_scenario())
        self.assertEqual(analysis.iterations, 5)
        self.assertEqual(analysis.metadata["iterationsRequested"], 20)
        self.assertTrue(analysis.metadata["iterationsCapped"])

    def test_progress_reported_per_batch(self):
        calls = []
        config = MonteCarloConfig(iterations=25, random_seed=1, batch_size=10)
        MonteCarloSimulator(config).run(depleting_scenario(),
                                        progress_callback=lambda done, total: calls.append(
                                            (done, total)))
        self.assertEqual(calls, [(10, 25), (20, 25), (25, 25)])


class TestMonteCarloRunErrors(unittest.TestCase):
    """Tests for invalid input, failing trials and run lifecycle."""

    def test_unknown_override_path(self):
        simulator = MonteCarloSimulator(MonteCarloConfig(iterations=3))
        with self.assertRaises(ConfigurationError):
            simulator.run(depleting_scenario(),
                          {"assets.Checking.balance": {"type": "uniform", "min": 0, "max": 1}})
        self.assertEqual(simulator.state, RunState.IDLE)

    def test_bad_distribution(self):
        simulator = MonteCarloSimulator(MonteCarloConfig(iterations=3))
        with self.assertRaises(ConfigurationError):
            simulator.run(depleting_scenario(),
                          {"plan.monthly_expenses": {"type": "uniform", "min": 5, "max": 1}})

    def test_invalid_scenario(self):
        with self.assertRaises(ValidationError) as ctx:
            MonteCarloSimulator().run({"plan": {"monthly_expenses": 100, "duration_months": 12}})
        self.assertEqual(ctx.exception.field_path, "assets")

    def test_cancel_between_batches(self):
        """Test that cancelling stops the run after the current batch."""
        config = MonteCarloConfig(iterations=50, random_seed=1, batch_size=10)
        simulator = MonteCarloSimulator(config)
        analysis = simulator.run(depleting_scenario(),
                                 progress_callback=lambda done, total: simulator.cancel())

        self.assertEqual(analysis.state, RunState.CANCELLED)
        self.assertEqual(simulator.state, RunState.CANCELLED)
        self.assertEqual(analysis.iterations, 10)
        self.assertFalse(simulator.cancel())

    def test_trial_timeout_recorded(self):
        """Test that every trial running past its timeout is recorded as a failure."""
        config = MonteCarloConfig(iterations=2, random_seed=1, batch_size=2, trial_timeout=0.05,
                                  max_failure_rate=1.0)
        analysis = MonteCarloSimulator(config, engine=SlowEngine()).run(depleting_scenario())

        self.assertEqual(analysis.state, RunState.COMPLETED)
        self.assertEqual(len(analysis.failures), 2)
        self.assertTrue(all(failure.timed_out for failure in analysis.failures))
        self.assertEqual(analysis.success_rate, 0.0)
        self.assertEqual(analysis.metadata["failedTrials"], 2)
        self.assertEqual(analysis.failures[0].to_dict()["scenarioId"], "depleting")

    def test_hung_trial_does_not_fail_queued_trials(self):
        """Test that trials queued behind a hung trial still run to completion."""
        config = MonteCarloConfig(iterations=10, random_seed=1, batch_size=10, workers=1,
                                  trial_timeout=0.2)
        engine = OneHungTrialEngine(hang_seconds=1.0)
        analysis = MonteCarloSimulator(config, engine=engine).run(depleting_scenario())

        self.assertEqual(analysis.state, RunState.COMPLETED)
        self.assertEqual(len(analysis.failures), 1)
        self.assertTrue(analysis.failures[0].timed_out)
        self.assertEqual(analysis.failures[0].trial_index, 0)
        self.assertEqual(analysis.iterations, 9)
        self.assertEqual([o.index for o in analysis.outcomes], list(range(1, 10)))

    def test_failure_threshold_aborts_with_partial(self):
        """Test that a high failure rate raises BatchFailure with partial results."""
        config = MonteCarloConfig(iterations=20, random_seed=1, batch_size=5)
        simulator = MonteCarloSimulator(config, engine=BrokenEngine())
        with self.assertRaises(BatchFailure) as ctx:
            simulator.run(depleting_scenario())

        partial = ctx.exception.partial
        self.assertEqual(simulator.state, RunState.FAILED)
        self.assertEqual(partial.state, RunState.FAILED)
        self.assertEqual(len(partial.failures), 5)
        self.assertEqual(partial.failures[0].to_dict()["error"], "engine exploded")
        self.assertEqual(partial.failures[0].scenario_id, "depleting")
        self.assertIn("[depleting] Trial 0", str(partial.failures[0]))
        self.assertEqual(ctx.exception.completed, 0)

    def test_concurrent_run_rejected(self):
        simulator = MonteCarloSimulator(MonteCarloConfig(iterations=4, random_seed=1,
                                                         batch_size=2))
        rejected = []

        def progress(done, total):
            try:
                simulator.run(depleting_scenario())
            except RunInProgressError:
                rejected.append(done)

        analysis = simulator.run(depleting_scenario(), progress_callback=progress)
        self.assertEqual(rejected, [2, 4])
        self.assertEqual(analysis.state, RunState.COMPLETED)

    def test_status(self):
        simulator = MonteCarloSimulator(MonteCarloConfig(iterations=3, random_seed=11))
        self.assertEqual(simulator.status(), {"state": "idle"})
        simulator.run(depleting_scenario())
        status = simulator.status()
        self.assertEqual(status["state"], "completed")
        self.assertEqual(status["completed"], 3)
        self.assertEqual(status["seed"], 11)


if __name__ == '__main__':
    unittest.main()
