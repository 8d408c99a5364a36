# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Aggregation of trial outcomes into statistics, risk metrics and insights.
"""

import math
from typing import Any, Dict, List, Sequence

from . import statistics as stats
from .results import METRIC_NAMES, TrialOutcome

KEY_SCENARIO_PERCENTILES = {
    'worst': 0,
    'p10': 10,
    'p25': 25,
    'median': 50,
    'p75': 75,
    'p90': 90,
    'best': 100,
}

KEY_SCENARIO_DESCRIPTIONS = {
    'worst': 'Worst-case scenario with lowest final balance',
    'p10': '10th percentile - only 10% of scenarios performed worse',
    'p25': '25th percentile - only 25% of scenarios performed worse',
    'median': 'Median scenario - 50% of scenarios performed better/worse',
    'p75': '75th percentile - only 25% of scenarios performed better',
    'p90': '90th percentile - only 10% of scenarios performed better',
    'best': 'Best-case scenario with highest final balance',
}


def compute_statistics(outcomes: Sequence[TrialOutcome],
                       confidence_intervals: List[float]) -> Dict[str, Dict[str, Any]]:
    return {name: stats.summarize([o.metric(name) for o in outcomes], confidence_intervals)
            for name in METRIC_NAMES}


def success_rate_data(outcomes: Sequence[TrialOutcome], failed: int,
                      target_months: int) -> Dict[str, Any]:
    """Share of trials that succeeded; failed trials count as unsuccessful."""
    total = len(outcomes) + failed
    successful = sum(1 for o in outcomes if o.success)
    return {
        'rate': successful / total if total else 0.0,
        'successful': successful,
        'total': total,
        'targetMonths': target_months,
        'targetYears': round(target_months / 12, 1),
    }


def risk_metrics(outcomes: Sequence[TrialOutcome], confidence: float) -> Dict[str, Any]:
    finals = [o.final_balance for o in outcomes]
    drawdowns = [o.max_drawdown for o in outcomes]
    return {
        'valueAtRisk': stats.value_at_risk(finals, confidence) if finals else None,
        'conditionalVaR': stats.conditional_var(finals, confidence) if finals else None,
        'confidence': confidence,
        'maxDrawdown': stats.summarize(drawdowns, stats.DRAWDOWN_PERCENTILES),
    }


def select_key_trials(outcomes: Sequence[TrialOutcome]) -> Dict[str, TrialOutcome]:
    """Trials at the worst, p10, p25, median, p75, p90 and best final balance.

    Ties in final balance are broken by trial index so the choice does not
    depend on completion order.
    """
    if not outcomes:
        return {}
    ranked = sorted(outcomes, key=lambda o: (o.final_balance, o.index))
    last = len(ranked) - 1
    return {label: ranked[int(math.floor(p / 100 * last))]
            for label, p in KEY_SCENARIO_PERCENTILES.items()}


def _severity(value: float, good: float, warning: float) -> str:
    if value >= good:
        return 'good'
    if value >= warning:
        return 'warning'
    return 'critical'


def generate_insights(outcomes: Sequence[TrialOutcome], success: Dict[str, Any],
                      target_months: int, target_success_rate: float) -> List[Dict[str, Any]]:
    """Plain-language findings about the run, each with a severity."""
    if not outcomes:
        return []
    insights = []

    survival = stats.survival_statistics([o.survival_months for o in outcomes])
    insights.append({
        'type': 'survival_time',
        'title': 'How Long Will Your Money Last?',
        'value': survival['median'],
        'description': (f"Median survival: {survival['median'] / 12:.1f} years. "
                        f"In the worst 25% of cases, money lasts {survival['p25'] / 12:.1f} "
                        f"years or less. In 75% of cases, money lasts "
                        f"{survival['p75'] / 12:.1f} years or less."),
        'severity': _severity(survival['median'], 300, 180),
    })

    rate = success['rate']
    insights.append({
        'type': 'target_success_rate',
        'title': f"{success['targetYears']}-Year Success Rate",
        'value': rate,
        'description': (f"{rate * 100:.1f}% of scenarios lasted at least "
                        f"{success['targetYears']} years"),
        'severity': 'good' if rate > 0.8 else 'warning' if rate > 0.6 else 'critical',
    })

    # 80% success rate reads survival at the 20th percentile
    confidence_months = stats.percentile(survival['survivalTimes'],
                                         (1 - target_success_rate) * 100)
    insights.append({
        'type': 'target_percentile_survival',
        'title': f"{target_success_rate * 100:.0f}% Confidence Level",
        'value': confidence_months,
        'description': (f"At your {target_success_rate * 100:.0f}% confidence level, money "
                        f"will last at least {confidence_months / 12:.1f} years"),
        'severity': _severity(confidence_months, target_months, target_months * 0.8),
    })

    finals = [o.final_balance for o in outcomes]
    low = stats.percentile(finals, 10)
    high = stats.percentile(finals, 90)
    median = stats.percentile(finals, 50)
    insights.append({
        'type': 'final_balance',
        'title': 'Final Balance Range',
        'value': {'median': median, 'range': [low, high]},
        'description': (f"50% of scenarios end with ${median / 1000:.0f}K, with 80% falling "
                        f"between ${low / 1000:.0f}K and ${high / 1000:.0f}K"),
        'severity': 'good' if low > 0 else 'warning',
    })
    return insights
