# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Statistics over collections of simulation outcomes.

Pure functions with no state; safe to call from any thread.
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

DEFAULT_PERCENTILES = [10, 25, 50, 75, 90]
DRAWDOWN_PERCENTILES = [10, 25, 50, 75, 90, 95, 99]


def _as_array(values: Iterable[float]) -> np.ndarray:
    return np.asarray(list(values), dtype=float)


def percentile(values: Sequence[float], p: float) -> float:
    """Percentile by linear interpolation between the bracketing ranks.

    The rank of ``p`` is ``p / 100 * (n - 1)`` over the sorted values, so
    ``percentile(v, 0) == min(v)`` and ``percentile(v, 100) == max(v)``.

    Raises:
        ValueError: If values is empty or p is outside [0, 100]
    """
    if not 0 <= p <= 100:
        raise ValueError(f"Percentile must be within [0, 100], got {p}")
    arr = _as_array(values)
    if arr.size == 0:
        raise ValueError("Cannot take a percentile of an empty sequence")
    return float(np.percentile(arr, p))


def mean(values: Sequence[float]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        raise ValueError("Cannot take the mean of an empty sequence")
    return float(np.mean(arr))


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation."""
    arr = _as_array(values)
    if arr.size == 0:
        raise ValueError("Cannot take the standard deviation of an empty sequence")
    return float(np.std(arr))


def _tail_cutoff(n: int, confidence: float) -> int:
    if not 0 < confidence < 1:
        raise ValueError(f"Confidence must be within (0, 1), got {confidence}")
    return min(int(math.floor(confidence * n)), n - 1)


def value_at_risk(values: Sequence[float], confidence: float = 0.05) -> float:
    """Outcome at the ``confidence`` quantile of the sorted outcomes.

    With confidence=0.05 this is the final balance that 95% of trials beat.
    """
    arr = np.sort(_as_array(values))
    if arr.size == 0:
        raise ValueError("Cannot compute VaR of an empty sequence")
    return float(arr[_tail_cutoff(arr.size, confidence)])


def conditional_var(values: Sequence[float], confidence: float = 0.05) -> float:
    """Mean of the outcomes in the tail below the VaR cutoff.

    The tail always holds at least the single worst outcome.
    """
    arr = np.sort(_as_array(values))
    if arr.size == 0:
        raise ValueError("Cannot compute CVaR of an empty sequence")
    cutoff = max(1, _tail_cutoff(arr.size, confidence))
    return float(np.mean(arr[:cutoff]))


def survival_months(total_balances: Sequence[float]) -> int:
    """First month whose total balance is <= 0, or the full length."""
    for month, balance in enumerate(total_balances):
        if balance <= 0:
            return month
    return len(total_balances)


def max_drawdown(balances: Sequence[float]) -> float:
    """Largest peak-to-trough decline relative to the running peak.

    Points where the running peak is not positive contribute no drawdown.
    """
    peak = None
    worst = 0.0
    for balance in balances:
        peak = balance if peak is None else max(peak, balance)
        if peak > 0:
            worst = max(worst, (peak - balance) / peak)
    return worst


def summarize(values: Sequence[float],
              confidence_intervals: Optional[List[float]] = None) -> Dict[str, object]:
    """Mean, median, stdDev, min, max and the requested percentiles.

    An empty input yields None for every statistic.
    """
    levels = DEFAULT_PERCENTILES if confidence_intervals is None else confidence_intervals
    arr = _as_array(values)
    if arr.size == 0:
        return {
            'mean': None, 'median': None, 'stdDev': None, 'min': None, 'max': None,
            'percentiles': {p: None for p in levels},
        }
    return {
        'mean': float(np.mean(arr)),
        'median': float(np.percentile(arr, 50)),
        'stdDev': float(np.std(arr)),
        'min': float(np.min(arr)),
        'max': float(np.max(arr)),
        'percentiles': {p: float(np.percentile(arr, p)) for p in levels},
    }


def survival_statistics(survival_times: Sequence[int]) -> Dict[str, object]:
    """Distribution of months-until-depletion across trials."""
    times = [int(t) for t in survival_times]
    if not times:
        return {'survivalTimes': [], 'mean': None, 'median': None, 'p10': None,
                'p25': None, 'p75': None, 'p90': None, 'min': None, 'max': None}
    return {
        'survivalTimes': times,
        'mean': mean(times),
        'median': percentile(times, 50),
        'p10': percentile(times, 10),
        'p25': percentile(times, 25),
        'p75': percentile(times, 75),
        'p90': percentile(times, 90),
        'min': min(times),
        'max': max(times),
    }
