# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Monte Carlo simulation orchestrator.

This module provides the MonteCarloSimulator class which runs many
perturbed copies of a scenario through the cash-flow engine and aggregates
the outcomes.

Each trial is a pure function of the base scenario, the configuration and
its trial seed ``derive_seed(base_seed, trial_index)``. Results are
therefore identical for the same base seed whatever the batch size or
worker count.
"""

import logging
import math
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..engine.cashflow import CashFlowEngine, SimulationResult
from ..errors import BatchFailure, RunInProgressError, TrialError
from ..scenario import Scenario
from . import statistics as stats
from .analysis import (KEY_SCENARIO_DESCRIPTIONS, KEY_SCENARIO_PERCENTILES, compute_statistics,
                       generate_insights, risk_metrics, select_key_trials, success_rate_data)
from .config import MonteCarloConfig
from .overrides import build_overrides
from .random_source import RandomSource, derive_seed, random_seed
from .results import AnalysisResult, KeyScenario, TrialOutcome
from .return_generator import ReturnSequence, get_return_model
from .run_context import RunContext, RunState

logger = logging.getLogger(__name__)

RETURN_SCHEDULE_PREFIX = "mc_returns:"
# Sub-stream of the trial seed used by the return model
RETURN_MODEL_STREAM = 1
# Seconds between deadline checks while a batch runs
POLL_INTERVAL = 0.05

ProgressCallback = Callable[[int, int], None]


def apply_return_sequence(scenario: Scenario, returns: ReturnSequence):
    """Install generated yearly returns as rate schedules on a trial scenario.

    Every asset whose type has a generated series grows by that series,
    replacing its fixed interest rate.
    """
    for asset_type, values in returns.items():
        name = f"{RETURN_SCHEDULE_PREFIX}{asset_type}"
        scenario.rate_schedules[name] = {"type": "sequence", "values": list(values)}
        for asset in scenario.assets:
            if asset.type == asset_type:
                asset.return_schedule = name


def meets_min_balances(scenario: Scenario, result: SimulationResult) -> bool:
    """True if every asset with a positive min_balance ends at or above it."""
    for asset in scenario.assets:
        if asset.min_balance is not None and asset.min_balance > 0:
            history = result.balance_history.get(asset.name)
            if not history or history[-1] < asset.min_balance:
                return False
    return True


class TrialRunner:
    """Builds and simulates the individual trials of one run."""

    def __init__(self, scenario: Scenario, config: MonteCarloConfig, engine: CashFlowEngine):
        """
        Raises:
            ConfigurationError: If a variable range or the return model is invalid
        """
        self.scenario = scenario
        self.config = config
        self.engine = engine
        self.overrides = build_overrides(config.variable_ranges, scenario)
        self.model = get_return_model(config.return_model) if config.return_model else None

    def prepare(self, seed: int) -> Tuple[Scenario, Optional[ReturnSequence]]:
        """Perturbed copy of the base scenario for one trial seed."""
        trial = self.scenario.copy()
        rng = RandomSource(seed)
        for override in self.overrides:
            override.apply(trial, rng)

        returns = None
        if self.model is not None:
            model_config = self.config.return_model_config
            asset_types = model_config.get("asset_types") or trial.asset_types()
            periods = math.ceil(trial.plan.duration_months / 12)
            returns = self.model.generate(asset_types, periods,
                                          seed=derive_seed(seed, RETURN_MODEL_STREAM),
                                          config=model_config)
            apply_return_sequence(trial, returns)
        return trial, returns

    def run(self, index: int, seed: int) -> Tuple[TrialOutcome, SimulationResult]:
        trial, returns = self.prepare(seed)
        result = self.engine.simulate(trial)
        totals = result.total_balances()
        survival = stats.survival_months(totals)
        success = (survival >= self.config.target_survival_months
                   and meets_min_balances(trial, result))
        outcome = TrialOutcome(
            index=index,
            seed=seed,
            final_balance=result.final_balance(),
            survival_months=survival,
            max_drawdown=stats.max_drawdown(totals),
            shortfall_months=result.shortfall_months(),
            total_withdrawals=result.total_withdrawals(),
            success=success,
            return_sequence=returns,
        )
        return outcome, result


class MonteCarloSimulator:
    """Runs Monte Carlo analyses of a scenario.

    One instance runs one analysis at a time; a second concurrent call to
    ``run`` raises RunInProgressError. Use separate instances for parallel
    analyses.

    The workflow:
    1. Validate the scenario and the variable ranges
    2. Run trials in batches on a thread pool, each with its own seed
    3. Record failed or timed-out trials without aborting the batch
    4. Abort with BatchFailure if the failure rate exceeds the threshold
    5. Aggregate statistics and replay the key percentile trials

    Example:
        >>> simulator = MonteCarloSimulator(MonteCarloConfig(iterations=500, random_seed=7))
        >>> analysis = simulator.run(scenario, {
        ...     "plan.monthly_expenses": {"type": "uniform", "min": 2500, "max": 3500},
        ... })
        >>> print(f"Success rate: {analysis.success_rate:.1%}")
    """

    def __init__(self, config: Optional[MonteCarloConfig] = None,
                 engine: Optional[CashFlowEngine] = None):
        """Initialize the simulator.

        Args:
            config: Simulation configuration. If None, uses defaults.
            engine: Cash-flow engine used for every trial. If None, a
                    CashFlowEngine is created.
        """
        self.config = config or MonteCarloConfig()
        self.engine = engine or CashFlowEngine()
        self.context: Optional[RunContext] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> RunState:
        return self.context.state if self.context is not None else RunState.IDLE

    def status(self) -> Dict[str, Any]:
        if self.context is None:
            return {'state': RunState.IDLE.value}
        return self.context.to_dict()

    def cancel(self) -> bool:
        """Request cancellation of the current run.

        Trials already in progress finish; no new trial starts.

        Returns:
            True if a running analysis was asked to stop
        """
        context = self.context
        if context is None or context.state is not RunState.RUNNING:
            return False
        logger.info("Cancellation requested")
        context.cancel()
        return True

    def run(self, scenario: Union[Scenario, Dict[str, Any]],
            variable_ranges: Optional[Dict[str, Any]] = None,
            progress_callback: Optional[ProgressCallback] = None) -> AnalysisResult:
        """Run a Monte Carlo analysis.

        Args:
            scenario: Base scenario (or its dict form). It is never mutated.
            variable_ranges: Override path -> distribution spec. Replaces
                             ``config.variable_ranges`` when given.
            progress_callback: Called with (processed, total) after each batch

        Returns:
            AnalysisResult in state COMPLETED or CANCELLED

        Raises:
            ValidationError: If the scenario is malformed
            ConfigurationError: If variable ranges or the return model are invalid
            BatchFailure: If too many trials fail; the partial analysis is attached
            RunInProgressError: If this simulator is already running
        """
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError("A Monte Carlo run is already in progress on this simulator")
        try:
            return self._run(scenario, variable_ranges, progress_callback)
        finally:
            self._lock.release()

    def _run(self, scenario, variable_ranges, progress_callback) -> AnalysisResult:
        config = self.config
        if variable_ranges is not None:
            config = replace(config, variable_ranges=variable_ranges)
        if not isinstance(scenario, Scenario):
            scenario = Scenario.from_dict(scenario)
        base = scenario.copy().validate()
        runner = TrialRunner(base, config, self.engine)

        base_seed = config.random_seed if config.random_seed is not None else random_seed()
        total = config.effective_iterations
        context = RunContext(total, base_seed)
        self.context = context
        logger.info(f"Starting Monte Carlo run for '{base.scenario_id}': {total} trials "
                    f"(seed={base_seed}, model={config.return_model or 'none'})")

        outcomes: List[TrialOutcome] = []
        failures: List[TrialError] = []
        try:
            for start in range(0, total, config.batch_size):
                if context.cancelled:
                    break
                indices = range(start, min(start + config.batch_size, total))
                self._run_batch(runner, context, indices, outcomes, failures)
                logger.info(f"Processed {context.processed}/{total} trials "
                            f"({context.failed} failed)")
                if progress_callback is not None:
                    progress_callback(context.processed, total)

                if context.failed and context.failure_rate > config.max_failure_rate:
                    context.finish(RunState.FAILED)
                    partial = self._analyze(outcomes, failures, config, base, context,
                                            runner, replay=False)
                    logger.error(f"Aborting run: {context.failed} of {context.processed} "
                                 f"trials failed")
                    raise BatchFailure(
                        f"Trial failure rate {context.failure_rate:.0%} exceeds "
                        f"{config.max_failure_rate:.0%}",
                        partial=partial, completed=context.completed)
        except MemoryError as exc:
            context.finish(RunState.FAILED)
            partial = self._analyze(outcomes, failures, config, base, context,
                                    runner, replay=False)
            raise BatchFailure("Out of memory", partial=partial,
                               completed=context.completed) from exc
        except Exception:
            if not context.state.is_terminal:
                context.finish(RunState.FAILED)
            raise

        stopped_early = context.cancelled and context.processed < total
        context.finish(RunState.CANCELLED if stopped_early else RunState.COMPLETED)
        logger.info(f"Monte Carlo run {context.state.value}: {context.completed} completed, "
                    f"{context.failed} failed in {context.elapsed:.2f}s")
        return self._analyze(outcomes, failures, config, base, context, runner, replay=True)

    def _run_batch(self, runner: TrialRunner, context: RunContext, indices: range,
                   outcomes: List[TrialOutcome], failures: List[TrialError]):
        """Run one batch of trials.

        A trial's timeout counts from the moment a worker starts it. Once a
        trial overruns, its executor is abandoned to the hung thread and the
        trials that never started are resubmitted to a fresh executor.
        """
        pending = list(indices)
        while pending:
            executor = ThreadPoolExecutor(max_workers=runner.config.workers,
                                          thread_name_prefix="montecarlo")
            futures = {executor.submit(_execute_trial, runner, context, index): index
                       for index in pending}
            try:
                pending = self._collect(futures, runner, context, outcomes, failures)
            finally:
                for future in futures:
                    future.cancel()
                executor.shutdown(wait=False)
            if pending:
                logger.warning(f"Resubmitting {len(pending)} trials queued behind a "
                               f"timed-out trial")

    def _collect(self, futures: Dict[Future, int], runner: TrialRunner, context: RunContext,
                 outcomes: List[TrialOutcome], failures: List[TrialError]) -> List[int]:
        """Wait for submitted trials; returns the indices that never started."""
        timeout = runner.config.trial_timeout
        poll = min(POLL_INTERVAL, timeout)
        requeue: List[int] = []
        stalled = False
        while futures:
            done, _ = wait(list(futures), timeout=poll, return_when=FIRST_COMPLETED)
            for future in done:
                index = futures.pop(future)
                if future.cancelled():
                    requeue.append(index)
                    continue
                try:
                    outcome = future.result()
                except TrialError as exc:
                    self._record_failure(context, failures, exc)
                    continue
                if outcome is not None:
                    outcomes.append(outcome)
                    context.completed += 1

            now = time.monotonic()
            for future, index in list(futures.items()):
                started = context.trial_started_at(index)
                if started is not None and now - started > timeout:
                    del futures[future]
                    stalled = True
                    self._record_failure(context, failures, TrialError(
                        index, derive_seed(context.seed, index),
                        TimeoutError(f"exceeded {timeout}s"), timed_out=True,
                        scenario_id=runner.scenario.scenario_id))

            if stalled:
                # Queued trials would wait behind the hung worker
                for future, index in list(futures.items()):
                    if future.cancel():
                        del futures[future]
                        requeue.append(index)
        return sorted(requeue)

    @staticmethod
    def _record_failure(context: RunContext, failures: List[TrialError], error: TrialError):
        logger.warning(str(error))
        failures.append(error)
        context.failed += 1

    def _analyze(self, outcomes: List[TrialOutcome], failures: List[TrialError],
                 config: MonteCarloConfig, base: Scenario, context: RunContext,
                 runner: TrialRunner, replay: bool) -> AnalysisResult:
        outcomes = sorted(outcomes, key=lambda o: o.index)
        failures = sorted(failures, key=lambda f: f.trial_index)
        target = config.target_survival_months
        success = success_rate_data(outcomes, len(failures), target)

        key_scenarios = {}
        replayed: Dict[int, SimulationResult] = {}
        for label, outcome in select_key_trials(outcomes).items():
            if replay and outcome.index not in replayed:
                replayed[outcome.index] = runner.run(outcome.index, outcome.seed)[1]
            key_scenarios[label] = KeyScenario(
                label=label,
                percentile=KEY_SCENARIO_PERCENTILES[label],
                trial_index=outcome.index,
                seed=outcome.seed,
                final_balance=outcome.final_balance,
                description=KEY_SCENARIO_DESCRIPTIONS[label],
                result=replayed.get(outcome.index),
                return_sequence=outcome.return_sequence,
            )

        # Only key trials keep their return sequences
        key_indices = {scenario.trial_index for scenario in key_scenarios.values()}
        for outcome in outcomes:
            if outcome.index not in key_indices:
                outcome.return_sequence = None

        return AnalysisResult(
            state=context.state,
            statistics=compute_statistics(outcomes, config.confidence_intervals),
            success_rate=success['rate'],
            success_rate_data=success,
            survival_statistics=stats.survival_statistics([o.survival_months for o in outcomes]),
            risk_metrics=risk_metrics(outcomes, config.var_confidence),
            key_scenarios=key_scenarios,
            insights=generate_insights(outcomes, success, target, config.target_success_rate),
            metadata={
                'iterations': len(outcomes),
                'iterationsRequested': config.iterations,
                'iterationsCapped': config.iterations_capped,
                'maxIterations': config.max_iterations,
                'failedTrials': len(failures),
                'randomSeed': context.seed,
                'seedProvided': config.random_seed is not None,
                'scenarioId': base.scenario_id,
                'targetSurvivalMonths': target,
                'returnModel': config.return_model,
                'state': context.state.value,
                'elapsedSeconds': round(context.elapsed, 3),
            },
            failures=failures,
            outcomes=outcomes,
        )


def _execute_trial(runner: TrialRunner, context: RunContext, index: int) -> Optional[TrialOutcome]:
    """Worker body. Returns None if the run was cancelled before the trial started."""
    if context.cancelled:
        return None
    seed = derive_seed(context.seed, index)
    context.mark_started(index)
    try:
        outcome, _ = runner.run(index, seed)
    except MemoryError:
        raise
    except Exception as exc:
        raise TrialError(index, seed, exc, scenario_id=runner.scenario.scenario_id) from exc
    return outcome
