# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Scenario fields a Monte Carlo trial is allowed to perturb.

Variable ranges are keyed by dotted paths. Only the paths below are
accepted; anything else is rejected up front instead of silently creating
new nested fields:

    plan.monthly_expenses
    plan.duration_months
    plan.inflation_rate
    assets.<asset name>.balance
    assets.<asset name>.interest_rate
    income.<income name>.amount
    deposits.<index>.amount
    rate_schedules.<schedule name>.rate      (fixed schedules only)
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from ..errors import ConfigurationError
from ..scenario import Scenario
from .distributions import Distribution, parse_distribution
from .random_source import RandomSource

PLAN_FIELDS = ("monthly_expenses", "duration_months", "inflation_rate")
ASSET_FIELDS = ("balance", "interest_rate")


@dataclass(frozen=True)
class OverrideTarget:
    """A validated location inside a scenario."""
    section: str
    key: str
    attribute: str

    @property
    def path(self) -> str:
        if self.section == "plan":
            return f"plan.{self.attribute}"
        return f"{self.section}.{self.key}.{self.attribute}"

    def apply(self, scenario: Scenario, value: float):
        """Write value into scenario (which must be a trial's own copy)."""
        if self.section == "plan":
            if self.attribute == "duration_months":
                value = max(1, int(round(value)))
            setattr(scenario.plan, self.attribute, value)
        elif self.section == "assets":
            setattr(scenario.get_asset(self.key), self.attribute, value)
        elif self.section == "income":
            for source in scenario.income:
                if source.name == self.key:
                    source.amount = value
        elif self.section == "deposits":
            scenario.deposits[int(self.key)].amount = value
        else:
            scenario.rate_schedules[self.key]["rate"] = value


@dataclass(frozen=True)
class VariableOverride:
    target: OverrideTarget
    distribution: Distribution

    def apply(self, scenario: Scenario, rng: RandomSource) -> float:
        value = self.distribution.sample(rng)
        self.target.apply(scenario, value)
        return value


def parse_override_path(path: str, scenario: Scenario) -> OverrideTarget:
    """Resolve a dotted path against the allow-list and the scenario.

    Raises:
        ConfigurationError: If the path is not allowed or names something
                            the scenario does not have
    """
    if not isinstance(path, str) or "." not in path:
        raise ConfigurationError(f"Unsupported override path: {path!r}")

    section, rest = path.split(".", 1)
    if section == "plan":
        if rest not in PLAN_FIELDS:
            raise ConfigurationError(f"Unsupported override path: {path!r}")
        return OverrideTarget("plan", "", rest)

    if "." not in rest:
        raise ConfigurationError(f"Unsupported override path: {path!r}")
    key, attribute = rest.rsplit(".", 1)

    if section == "assets":
        if attribute not in ASSET_FIELDS:
            raise ConfigurationError(f"Unsupported override path: {path!r}")
        if scenario.get_asset(key) is None:
            raise ConfigurationError(f"Override path {path!r} names unknown asset {key!r}")
    elif section == "income":
        if attribute != "amount":
            raise ConfigurationError(f"Unsupported override path: {path!r}")
        if not any(source.name == key for source in scenario.income):
            raise ConfigurationError(f"Override path {path!r} names unknown income {key!r}")
    elif section == "deposits":
        if attribute != "amount" or not key.isdigit() or int(key) >= len(scenario.deposits):
            raise ConfigurationError(f"Override path {path!r} names no deposit")
    elif section == "rate_schedules":
        schedule = scenario.rate_schedules.get(key)
        if attribute != "rate" or schedule is None or schedule.get("type") != "fixed":
            raise ConfigurationError(
                f"Override path {path!r} must name the rate of a fixed rate schedule")
    else:
        raise ConfigurationError(f"Unsupported override path: {path!r}")
    return OverrideTarget(section, key, attribute)


def build_overrides(variable_ranges: Dict[str, Any], scenario: Scenario) -> List[VariableOverride]:
    """Validate every variable range before a run starts.

    Overrides are returned sorted by path so sampling order, and therefore
    every trial's random stream, does not depend on dict ordering.
    """
    overrides = []
    for path in sorted(variable_ranges or {}):
        target = parse_override_path(path, scenario)
        distribution = parse_distribution(variable_ranges[path], path)
        overrides.append(VariableOverride(target, distribution))
    return overrides
