# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Scenario data model.

A scenario is the plain-data description of a household: the assets it can
draw on, its income sources, scheduled deposits, the order in which assets
are tapped to cover expenses, and the plan (monthly expenses and horizon).

Scenarios are treated as immutable input. Engines deep-copy them before
mutating balances so repeated simulations never share state.

Month convention: the ledger is 0-indexed (month 0 is the first simulated
month) while income and deposit windows are expressed in 1-indexed calendar
months. Ledger month ``m`` therefore activates windows containing ``m + 1``.
"""

import copy
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError, ValidationError
from .rate_schedules import RateScheduleManager

COMPOUNDING_MODES = ("monthly", "none", None)


def window_month(ledger_month: int) -> int:
    """Convert a 0-indexed ledger month to the 1-indexed window month."""
    return ledger_month + 1


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass
class Asset:
    """A balance the household can draw on.

    Attributes:
        name: Unique key used by withdrawal orders and deposits
        balance: Current balance. Negative means a planned future expense;
                 withdrawing against it moves the balance toward zero.
        interest_rate: Annual rate as decimal, applied monthly when
                       compounding == "monthly"
        compounding: "monthly" or None
        min_balance: Floor used only when judging success of a run
        type: Asset class label (e.g. "investment", "savings", "bond")
        return_schedule: Name of a rate schedule overriding interest_rate
        dynamic: True for assets created on the fly by a deposit event
    """
    name: str
    balance: float = 0.0
    interest_rate: Optional[float] = None
    compounding: Optional[str] = None
    min_balance: Optional[float] = None
    type: Optional[str] = None
    return_schedule: Optional[str] = None
    dynamic: bool = False

    @property
    def available_balance(self) -> float:
        """Amount that may still be withdrawn from this asset."""
        return abs(self.balance)

    @property
    def is_planned_expense(self) -> bool:
        return self.balance < 0

    @classmethod
    def dynamic_asset(cls, name: str) -> 'Asset':
        """Zero-balance, zero-rate asset created by a deposit event."""
        return cls(name=name, balance=0.0, interest_rate=0.0,
                   compounding="monthly", type="taxable", dynamic=True)


@dataclass
class IncomeSource:
    """Recurring monthly income active for an inclusive window of months."""
    name: str
    amount: float
    start_month: int = 0
    stop_month: Optional[int] = None

    def is_active(self, month: int) -> bool:
        """Check activity for a 1-indexed window month."""
        if month < self.start_month:
            return False
        return self.stop_month is None or month <= self.stop_month


@dataclass
class DepositEvent:
    """Monthly contribution into an asset, creating it on first use."""
    target: str
    amount: float
    start_month: int = 0
    stop_month: Optional[int] = None

    def is_active(self, month: int) -> bool:
        if month < self.start_month:
            return False
        return self.stop_month is None or month <= self.stop_month


@dataclass
class WithdrawalOrderEntry:
    account: str
    order: int
    weight: Optional[float] = None


@dataclass
class Plan:
    monthly_expenses: float
    duration_months: int
    inflation_rate: Optional[float] = None
    inflation_schedule: Optional[str] = None
    stop_on_shortfall: bool = False


@dataclass
class Scenario:
    """Complete simulation input."""
    plan: Plan
    assets: List[Asset] = field(default_factory=list)
    income: List[IncomeSource] = field(default_factory=list)
    deposits: List[DepositEvent] = field(default_factory=list)
    order: List[WithdrawalOrderEntry] = field(default_factory=list)
    rate_schedules: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    title: Optional[str] = None

    @property
    def scenario_id(self) -> str:
        return self.title or "untitled"

    def copy(self) -> 'Scenario':
        return copy.deepcopy(self)

    def get_asset(self, name: str) -> Optional[Asset]:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None

    def asset_types(self) -> List[str]:
        """Distinct asset type labels in declaration order."""
        seen = []
        for asset in self.assets:
            if asset.type and asset.type not in seen:
                seen.append(asset.type)
        return seen

    def draw_order(self) -> List[WithdrawalOrderEntry]:
        """Withdrawal order sorted by rank; declaration order breaks ties."""
        if not self.order:
            return [WithdrawalOrderEntry(account=a.name, order=i + 1)
                    for i, a in enumerate(self.assets)]
        return sorted(self.order, key=lambda entry: entry.order)

    def validate(self) -> 'Scenario':
        """Raise ValidationError if the scenario cannot be simulated."""
        sid = self.scenario_id
        plan = self.plan
        if plan is None:
            raise ValidationError("plan", "missing required section", sid)
        if not _is_number(plan.monthly_expenses):
            raise ValidationError("plan.monthly_expenses", "must be a number", sid)
        if not isinstance(plan.duration_months, numbers.Integral) or isinstance(plan.duration_months, bool):
            raise ValidationError("plan.duration_months", "must be an integer", sid)
        if plan.duration_months < 0:
            raise ValidationError("plan.duration_months", "cannot be negative", sid)
        if plan.inflation_rate is not None and not _is_number(plan.inflation_rate):
            raise ValidationError("plan.inflation_rate", "must be a number", sid)

        names = set()
        for i, asset in enumerate(self.assets):
            path = f"assets[{i}]"
            if not asset.name:
                raise ValidationError(f"{path}.name", "is required", sid)
            if asset.name in names:
                raise ValidationError(f"{path}.name", f"duplicate asset name {asset.name!r}", sid)
            names.add(asset.name)
            if not _is_number(asset.balance):
                raise ValidationError(f"{path}.balance", "must be a number", sid)
            if asset.interest_rate is not None and not _is_number(asset.interest_rate):
                raise ValidationError(f"{path}.interest_rate", "must be a number", sid)
            if asset.min_balance is not None and not _is_number(asset.min_balance):
                raise ValidationError(f"{path}.min_balance", "must be a number", sid)
            if asset.compounding not in COMPOUNDING_MODES:
                raise ValidationError(f"{path}.compounding",
                                      f"unknown compounding mode {asset.compounding!r}", sid)
            if asset.return_schedule and asset.return_schedule not in self.rate_schedules:
                raise ValidationError(f"{path}.return_schedule",
                                      f"no rate schedule named {asset.return_schedule!r}", sid)

        for i, source in enumerate(self.income):
            self._validate_window(f"income[{i}]", source.amount, source.start_month,
                                  source.stop_month)

        deposit_targets = set()
        for i, event in enumerate(self.deposits):
            if not event.target:
                raise ValidationError(f"deposits[{i}].target", "is required", sid)
            self._validate_window(f"deposits[{i}]", event.amount, event.start_month,
                                  event.stop_month)
            deposit_targets.add(event.target)

        for i, entry in enumerate(self.order):
            if entry.account not in names and entry.account not in deposit_targets:
                raise ValidationError(f"order[{i}].account",
                                      f"references unknown asset {entry.account!r}", sid)
            if not _is_number(entry.order):
                raise ValidationError(f"order[{i}].order", "must be a number", sid)
            if entry.weight is not None and (not _is_number(entry.weight) or entry.weight < 0):
                raise ValidationError(f"order[{i}].weight", "must be a non-negative number", sid)

        if plan.inflation_schedule and plan.inflation_schedule not in self.rate_schedules:
            raise ValidationError("plan.inflation_schedule",
                                  f"no rate schedule named {plan.inflation_schedule!r}", sid)

        try:
            RateScheduleManager.from_config(self.rate_schedules)
        except ConfigurationError as e:
            raise ValidationError("rate_schedules", str(e), sid) from e
        return self

    def _validate_window(self, path: str, amount: Any, start: Any, stop: Any):
        sid = self.scenario_id
        if not _is_number(amount):
            raise ValidationError(f"{path}.amount", "must be a number", sid)
        if not _is_number(start):
            raise ValidationError(f"{path}.start_month", "must be a number", sid)
        if stop is not None:
            if not _is_number(stop):
                raise ValidationError(f"{path}.stop_month", "must be a number", sid)
            if stop < start:
                raise ValidationError(f"{path}.stop_month", "is before start_month", sid)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scenario':
        """Build and validate a scenario from JSON-shaped data.

        Raises:
            ValidationError: If required sections are missing or malformed
        """
        if not isinstance(data, dict):
            raise ValidationError("<root>", "scenario must be an object")
        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        title = data.get("title") or metadata.get("title")

        for section in ("plan", "assets"):
            if section not in data or data[section] is None:
                raise ValidationError(section, "missing required section", title)
        raw_plan = data["plan"]
        if not isinstance(raw_plan, dict):
            raise ValidationError("plan", "must be an object", title)
        if not isinstance(data["assets"], list):
            raise ValidationError("assets", "must be a list", title)
        for key in ("income", "deposits", "order"):
            if data.get(key) is not None and not isinstance(data[key], list):
                raise ValidationError(key, "must be a list", title)
            for i, raw in enumerate(data.get(key) or []):
                if not isinstance(raw, dict):
                    raise ValidationError(f"{key}[{i}]", "must be an object", title)

        plan = Plan(
            monthly_expenses=raw_plan.get("monthly_expenses"),
            duration_months=raw_plan.get("duration_months"),
            inflation_rate=raw_plan.get("inflation_rate"),
            inflation_schedule=raw_plan.get("inflation_schedule"),
            stop_on_shortfall=bool(raw_plan.get("stop_on_shortfall", False)),
        )
        if _is_number(plan.duration_months) and float(plan.duration_months).is_integer():
            plan.duration_months = int(plan.duration_months)

        assets = []
        for i, raw in enumerate(data["assets"]):
            if not isinstance(raw, dict):
                raise ValidationError(f"assets[{i}]", "must be an object", title)
            assets.append(Asset(
                name=raw.get("name"),
                balance=raw.get("balance", raw.get("initial_value", 0.0)),
                interest_rate=raw.get("interest_rate"),
                compounding=raw.get("compounding"),
                min_balance=raw.get("min_balance"),
                type=raw.get("type"),
                return_schedule=raw.get("return_schedule"),
                dynamic=bool(raw.get("dynamic", False)),
            ))

        income = [
            IncomeSource(
                name=raw.get("name", f"income_{i}"),
                amount=raw.get("amount"),
                start_month=raw.get("start_month", 0),
                stop_month=raw.get("stop_month", raw.get("end_month")),
            )
            for i, raw in enumerate(data.get("income") or [])
        ]
        deposits = [
            DepositEvent(
                target=raw.get("target", raw.get("name")),
                amount=raw.get("amount"),
                start_month=raw.get("start_month", 0),
                stop_month=raw.get("stop_month"),
            )
            for raw in data.get("deposits") or []
        ]
        order = [
            WithdrawalOrderEntry(
                account=raw.get("account"),
                order=raw.get("order", i + 1),
                weight=raw.get("weight"),
            )
            for i, raw in enumerate(data.get("order") or [])
        ]

        scenario = cls(
            plan=plan,
            assets=assets,
            income=income,
            deposits=deposits,
            order=order,
            rate_schedules=copy.deepcopy(data.get("rate_schedules") or {}),
            title=title,
        )
        return scenario.validate()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation, inverse of from_dict."""
        plan = {
            "monthly_expenses": self.plan.monthly_expenses,
            "duration_months": self.plan.duration_months,
        }
        if self.plan.inflation_rate is not None:
            plan["inflation_rate"] = self.plan.inflation_rate
        if self.plan.inflation_schedule is not None:
            plan["inflation_schedule"] = self.plan.inflation_schedule
        if self.plan.stop_on_shortfall:
            plan["stop_on_shortfall"] = True

        data = {
            "plan": plan,
            "assets": [_drop_none(vars(a)) for a in self.assets],
            "income": [_drop_none(vars(s)) for s in self.income],
            "deposits": [_drop_none(vars(d)) for d in self.deposits],
            "order": [_drop_none(vars(o)) for o in self.order],
        }
        if self.rate_schedules:
            data["rate_schedules"] = copy.deepcopy(self.rate_schedules)
        if self.title:
            data["title"] = self.title
        return data


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None and v is not False}
