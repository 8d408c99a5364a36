# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Deterministic month-stepped cash-flow ledger.

Each month the engine:
1. Applies active deposit events, creating target assets on first use
2. Totals active income
3. Computes the shortfall (expenses minus income)
4. Covers the shortfall by walking the withdrawal order
5. Applies monthly growth to assets with a rate
6. Records the ledger entry and a balance snapshot

``min_balance`` is never enforced here; it only matters when a Monte Carlo
trial is judged for success.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd

from ..rate_schedules import RateScheduleManager
from ..scenario import Asset, Plan, Scenario, window_month
from .withdrawals import Withdrawal, process_withdrawals

logger = logging.getLogger(__name__)


@dataclass
class MonthlyLedgerEntry:
    """Engine output for one simulated month."""
    month: int
    income: float
    expenses: float
    withdrawals: List[Withdrawal] = field(default_factory=list)
    shortfall: float = 0.0

    @property
    def required(self) -> float:
        """Expenses minus income, before any withdrawal."""
        return self.expenses - self.income

    @property
    def total_withdrawn(self) -> float:
        return sum(w.amount for w in self.withdrawals)

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "income": self.income,
            "expenses": self.expenses,
            "withdrawals": [w.to_dict() for w in self.withdrawals],
            "shortfall": self.shortfall,
        }


@dataclass
class SimulationResult:
    """Ledger plus per-asset balance history of one simulation.

    Every balance_history series has one value per ledger entry. Assets
    created mid-run by a deposit are back-filled with zeros.
    """
    ledger: List[MonthlyLedgerEntry]
    balance_history: Dict[str, List[float]]
    actual_duration: int
    dynamic_assets: List[str] = field(default_factory=list)
    windfall_used_at_month: Optional[int] = None

    @property
    def asset_names(self) -> List[str]:
        return list(self.balance_history.keys())

    def total_balances(self) -> List[float]:
        """Sum of all asset balances, month by month."""
        totals = [0.0] * len(self.ledger)
        for history in self.balance_history.values():
            for month, balance in enumerate(history):
                totals[month] += balance
        return totals

    def final_balances(self) -> Dict[str, float]:
        return {name: (history[-1] if history else 0.0)
                for name, history in self.balance_history.items()}

    def final_balance(self) -> float:
        return sum(self.final_balances().values())

    def shortfall_months(self) -> int:
        return sum(1 for entry in self.ledger if entry.shortfall > 0)

    def total_withdrawals(self) -> float:
        return sum(entry.total_withdrawn for entry in self.ledger)

    def to_frame(self) -> pd.DataFrame:
        """One row per month with income, expenses, shortfall and balances."""
        df = pd.DataFrame({
            "Month": [entry.month for entry in self.ledger],
            "Income": [entry.income for entry in self.ledger],
            "Expenses": [entry.expenses for entry in self.ledger],
            "Withdrawals": [entry.total_withdrawn for entry in self.ledger],
            "Shortfall": [entry.shortfall for entry in self.ledger],
        })
        for name, history in self.balance_history.items():
            df[name] = history
        return df

    def to_dict(self) -> dict:
        return {
            "ledger": [entry.to_dict() for entry in self.ledger],
            "balanceHistory": {name: list(h) for name, h in self.balance_history.items()},
            "actualDuration": self.actual_duration,
            "windfallUsedAtMonth": self.windfall_used_at_month,
        }


def monthly_income(scenario: Scenario, month: int) -> float:
    """Total income active in a 1-indexed window month."""
    return sum(source.amount for source in scenario.income if source.is_active(month))


def monthly_expenses(plan: Plan, rates: RateScheduleManager, month: int) -> float:
    """Expenses for a 0-indexed ledger month after inflation."""
    base = plan.monthly_expenses
    if plan.inflation_schedule:
        monthly_rate = rates.get_rate(plan.inflation_schedule, month) / 12
        return base * (1 + monthly_rate) ** month
    if plan.inflation_rate:
        return base * (1 + plan.inflation_rate) ** (month // 12)
    return base


def monthly_growth_rate(asset: Asset, rates: RateScheduleManager, month: int) -> Optional[float]:
    """Monthly growth for an asset, or None if it does not grow."""
    if asset.return_schedule:
        return rates.get_rate(asset.return_schedule, month) / 12
    if asset.interest_rate and asset.compounding == "monthly":
        return asset.interest_rate / 12
    return None


class CashFlowEngine:
    """Runs the month-stepped ledger for a scenario.

    The engine holds no state between calls; a single instance may be
    shared across threads.

    Example:
        >>> scenario = Scenario.from_dict({
        ...     "plan": {"monthly_expenses": 3000, "duration_months": 4},
        ...     "assets": [{"name": "Savings", "balance": 120000,
        ...                 "interest_rate": 0.02, "compounding": "monthly"}],
        ... })
        >>> result = CashFlowEngine().simulate(scenario)
        >>> result.ledger[0].withdrawals[0].amount
        3000
    """

    STOP_ON_SHORTFALL_MIN_MONTHS = 12

    def simulate(self, scenario: Scenario) -> SimulationResult:
        """Simulate a scenario month by month.

        Args:
            scenario: Input scenario. It is validated and deep-copied; the
                      caller's object is never mutated.

        Returns:
            SimulationResult with one ledger entry per simulated month

        Raises:
            ValidationError: If the scenario is malformed
        """
        scenario = scenario.copy().validate()
        plan = scenario.plan
        rates = RateScheduleManager.from_config(scenario.rate_schedules)

        assets = list(scenario.assets)
        asset_map = {asset.name: asset for asset in assets}
        draw_order = scenario.draw_order()
        balance_history: Dict[str, List[float]] = {asset.name: [] for asset in assets}
        dynamic_assets: List[str] = [asset.name for asset in assets if asset.dynamic]

        ledger: List[MonthlyLedgerEntry] = []
        windfall_used_at: Optional[int] = None
        max_duration = plan.duration_months
        min_duration = min(self.STOP_ON_SHORTFALL_MIN_MONTHS, max_duration)

        for month in range(max_duration):
            current = window_month(month)

            for event in scenario.deposits:
                if not event.is_active(current):
                    continue
                target = asset_map.get(event.target)
                if target is None:
                    target = Asset.dynamic_asset(event.target)
                    asset_map[target.name] = target
                    assets.append(target)
                    balance_history[target.name] = [0.0] * month
                    dynamic_assets.append(target.name)
                    logger.debug(f"Month {month}: created asset '{target.name}' from deposit")
                target.balance += event.amount

            income = monthly_income(scenario, current)
            expenses = monthly_expenses(plan, rates, month)
            entry = MonthlyLedgerEntry(month=month, income=income, expenses=expenses)

            remaining = process_withdrawals(expenses - income, draw_order, asset_map,
                                            entry.withdrawals)
            entry.shortfall = remaining

            if windfall_used_at is None:
                for withdrawal in entry.withdrawals:
                    if asset_map[withdrawal.source].dynamic:
                        windfall_used_at = month
                        break

            for asset in assets:
                rate = monthly_growth_rate(asset, rates, month)
                if rate is not None:
                    asset.balance *= 1 + rate

            ledger.append(entry)
            for asset in assets:
                balance_history[asset.name].append(asset.balance)

            if plan.stop_on_shortfall and month >= min_duration and remaining > 0:
                logger.debug(f"Stopping at month {month + 1}: unmet shortfall {remaining:.2f}")
                break

        return SimulationResult(
            ledger=ledger,
            balance_history=balance_history,
            actual_duration=len(ledger),
            dynamic_assets=dynamic_assets,
            windfall_used_at_month=windfall_used_at,
        )


def simulate(scenario: Scenario) -> SimulationResult:
    """Shortcut for CashFlowEngine().simulate(scenario)."""
    return CashFlowEngine().simulate(scenario)
