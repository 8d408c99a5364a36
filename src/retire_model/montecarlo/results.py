# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Monte Carlo simulation results.

This module provides the per-trial outcome record, the representative
(key) scenarios retained for inspection, and AnalysisResult, which bundles
the aggregate statistics of a run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..engine.cashflow import SimulationResult
from ..errors import TrialError
from .run_context import RunState

METRIC_NAMES = ["finalBalance", "survivalMonths", "maxDrawdown", "shortfallMonths",
                "totalWithdrawals"]


@dataclass
class TrialOutcome:
    """Metrics derived from one completed trial.

    The trial's ledger is not kept; ``index`` and ``seed`` are enough to
    replay it.
    """
    index: int
    seed: int
    final_balance: float
    survival_months: int
    max_drawdown: float
    shortfall_months: int
    total_withdrawals: float
    success: bool
    return_sequence: Optional[Dict[str, List[float]]] = None

    def metric(self, name: str) -> float:
        return {
            'finalBalance': self.final_balance,
            'survivalMonths': self.survival_months,
            'maxDrawdown': self.max_drawdown,
            'shortfallMonths': self.shortfall_months,
            'totalWithdrawals': self.total_withdrawals,
        }[name]

    def to_dict(self) -> dict:
        return {
            'index': self.index,
            'seed': self.seed,
            'finalBalance': self.final_balance,
            'survivalMonths': self.survival_months,
            'maxDrawdown': self.max_drawdown,
            'shortfallMonths': self.shortfall_months,
            'totalWithdrawals': self.total_withdrawals,
            'success': self.success,
        }


@dataclass
class KeyScenario:
    """A trial retained because it sits at a notable percentile of final balance."""
    label: str
    percentile: int
    trial_index: int
    seed: int
    final_balance: float
    description: str
    result: Optional[SimulationResult] = None
    return_sequence: Optional[Dict[str, List[float]]] = None

    def to_dict(self, include_ledger: bool = True) -> dict:
        data = {
            'label': self.label,
            'percentile': self.percentile,
            'simulationIndex': self.trial_index,
            'seed': self.seed,
            'finalBalance': self.final_balance,
            'description': self.description,
            'returnSequence': self.return_sequence,
        }
        if include_ledger and self.result is not None:
            data['result'] = self.result.to_dict()
        return data


@dataclass
class AnalysisResult:
    """Aggregate analysis of a Monte Carlo run.

    Example:
        >>> analysis = MonteCarloSimulator(config).run(scenario)
        >>> print(f"Success rate: {analysis.success_rate:.1%}")
        >>> analysis.key_scenarios["median"].final_balance
    """
    state: RunState
    statistics: Dict[str, Dict[str, Any]]
    success_rate: float
    success_rate_data: Dict[str, Any]
    survival_statistics: Dict[str, Any]
    risk_metrics: Dict[str, Any]
    key_scenarios: Dict[str, KeyScenario] = field(default_factory=dict)
    insights: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    failures: List[TrialError] = field(default_factory=list)
    outcomes: List[TrialOutcome] = field(default_factory=list)

    @property
    def iterations(self) -> int:
        """Number of trials that completed."""
        return len(self.outcomes)

    @property
    def raw_metrics(self) -> Dict[str, List[float]]:
        return {name: [outcome.metric(name) for outcome in self.outcomes]
                for name in METRIC_NAMES}

    def get_final_values(self, metric: str = 'finalBalance') -> np.ndarray:
        """Values of one metric across all completed trials.

        Raises:
            ValueError: If metric is not known
        """
        if metric not in METRIC_NAMES:
            raise ValueError(f"Metric '{metric}' not found. Available: {METRIC_NAMES}")
        return np.array([outcome.metric(metric) for outcome in self.outcomes], dtype=float)

    def get_statistics_df(self) -> pd.DataFrame:
        """Statistics table with one row per metric.

        Columns are mean, median, stdDev, min, max and one ``pNN`` column
        per requested percentile level.
        """
        rows = {}
        for metric, stats in self.statistics.items():
            row = {key: stats[key] for key in ('mean', 'median', 'stdDev', 'min', 'max')}
            for level, value in stats['percentiles'].items():
                row[f"p{level:g}"] = value
            rows[metric] = row
        df = pd.DataFrame.from_dict(rows, orient='index')
        df.index.name = 'Metric'
        return df

    def to_dict(self, include_ledgers: bool = False) -> dict:
        return {
            'state': self.state.value,
            'statistics': self.statistics,
            'successRate': self.success_rate,
            'successRateData': self.success_rate_data,
            'survivalStatistics': self.survival_statistics,
            'riskMetrics': self.risk_metrics,
            'keyScenarios': {label: scenario.to_dict(include_ledger=include_ledgers)
                             for label, scenario in self.key_scenarios.items()},
            'insights': self.insights,
            'rawMetrics': self.raw_metrics,
            'metadata': self.metadata,
            'failures': [failure.to_dict() for failure in self.failures],
        }

    def __repr__(self) -> str:
        return (f"AnalysisResult(state={self.state.value}, iterations={self.iterations}, "
                f"failures={len(self.failures)}, success_rate={self.success_rate:.3f})")


def analysis_to_csv(analysis: AnalysisResult) -> str:
    """Per-metric statistics table as CSV."""
    return analysis.get_statistics_df().to_csv(float_format="%.4f", lineterminator="\n")


def key_scenarios_to_csv(analysis: AnalysisResult) -> str:
    """Return sequences of the key scenarios as CSV.

    One row per period and one ``<label>:<asset type>`` column per series.
    Key scenarios without a return sequence contribute no columns.
    """
    columns = {}
    for label, scenario in analysis.key_scenarios.items():
        for asset_type, values in (scenario.return_sequence or {}).items():
            columns[f"{label}:{asset_type}"] = pd.Series(values, dtype=float)
    df = pd.DataFrame(columns)
    df.insert(0, "Period", range(1, len(df) + 1))
    return df.to_csv(index=False, float_format="%.4f", lineterminator="\n")
