# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Monte Carlo risk analysis for retirement cash-flow scenarios.

This module perturbs a base scenario with sampled variable overrides and
generated investment returns, runs each perturbed copy through the
cash-flow engine, and aggregates success rates, percentiles and risk
metrics across trials.
"""

from .config import MonteCarloConfig
from .random_source import RandomSource, derive_seed
from .distributions import Distribution, parse_distribution
from .market_assumptions import MarketAssumptions, AssetClassAssumptions, HistoricalReturns
from .return_generator import (ReturnModel, IndependentNormalModel, HistoricalBootstrapModel,
                               HistoricalSequenceModel, get_return_model, available_models)
from .overrides import VariableOverride, build_overrides
from .run_context import RunContext, RunState
from .results import AnalysisResult, KeyScenario, TrialOutcome, analysis_to_csv, key_scenarios_to_csv
from .simulator import MonteCarloSimulator

__all__ = [
    'MonteCarloConfig',
    'RandomSource',
    'derive_seed',
    'Distribution',
    'parse_distribution',
    'MarketAssumptions',
    'AssetClassAssumptions',
    'HistoricalReturns',
    'ReturnModel',
    'IndependentNormalModel',
    'HistoricalBootstrapModel',
    'HistoricalSequenceModel',
    'get_return_model',
    'available_models',
    'VariableOverride',
    'build_overrides',
    'RunContext',
    'RunState',
    'AnalysisResult',
    'KeyScenario',
    'TrialOutcome',
    'analysis_to_csv',
    'key_scenarios_to_csv',
    'MonteCarloSimulator',
]
