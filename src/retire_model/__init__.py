# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Retirement Cash-Flow Model

Month-by-month simulation of a household's assets, income, deposits and
withdrawal policy, with Monte Carlo analysis of how robust the outcome is
to uncertain investment returns.

Example usage:
    from retire_model import Scenario, CashFlowEngine, MonteCarloConfig, MonteCarloSimulator

    scenario = Scenario.from_dict({
        "plan": {"monthly_expenses": 3000, "duration_months": 360},
        "assets": [{"name": "Savings", "balance": 500000, "type": "investment",
                    "interest_rate": 0.05, "compounding": "monthly"}],
        "income": [{"name": "SS", "amount": 1800, "start_month": 12}],
    })
    result = CashFlowEngine().simulate(scenario)
    df = result.to_frame()

    config = MonteCarloConfig(iterations=500, random_seed=42,
                              return_model="historical-sequence")
    analysis = MonteCarloSimulator(config).run(scenario)
    print(f"Success rate: {analysis.success_rate:.1%}")
"""

from .__meta__ import __version__

# Scenario input
from .scenario import (Scenario, Plan, Asset, IncomeSource, DepositEvent,
                       WithdrawalOrderEntry)
from .rate_schedules import RateSchedule, RateScheduleManager

# Cash-flow engine
from .engine import (CashFlowEngine, MonthlyLedgerEntry, SimulationResult, Withdrawal,
                     simulate, to_csv, read_csv)

# Monte Carlo
from .montecarlo import (MonteCarloConfig, MonteCarloSimulator, AnalysisResult, KeyScenario,
                         RunState, RandomSource, get_return_model, analysis_to_csv,
                         key_scenarios_to_csv)

# Errors
from .errors import (RetireModelError, ValidationError, ConfigurationError, UnknownModelError,
                     UnknownDistributionError, TrialError, BatchFailure, RunInProgressError)

__all__ = [
    '__version__',
    # Scenario input
    'Scenario',
    'Plan',
    'Asset',
    'IncomeSource',
    'DepositEvent',
    'WithdrawalOrderEntry',
    'RateSchedule',
    'RateScheduleManager',
    # Cash-flow engine
    'CashFlowEngine',
    'MonthlyLedgerEntry',
    'SimulationResult',
    'Withdrawal',
    'simulate',
    'to_csv',
    'read_csv',
    # Monte Carlo
    'MonteCarloConfig',
    'MonteCarloSimulator',
    'AnalysisResult',
    'KeyScenario',
    'RunState',
    'RandomSource',
    'get_return_model',
    'analysis_to_csv',
    'key_scenarios_to_csv',
    # Errors
    'RetireModelError',
    'ValidationError',
    'ConfigurationError',
    'UnknownModelError',
    'UnknownDistributionError',
    'TrialError',
    'BatchFailure',
    'RunInProgressError',
]
