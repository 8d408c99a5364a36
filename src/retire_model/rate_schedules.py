# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Time-varying annual rates.

A scenario can declare named rate schedules and point assets (growth) or
the plan (inflation) at them. Schedules are pure functions of the 0-indexed
ledger month, so a simulation that uses them stays deterministic.

Supported schedule shapes:
    {"type": "fixed", "rate": 0.05}
    {"type": "sequence", "values": [0.05, -0.10, ...], "start_year": 0,
     "default_rate": 0.04}
    {"type": "map", "periods": [{"start_year": 2025, "stop_year": 2030,
     "rate": 0.03}], "default_rate": 0.02, "base_year": 2025}
    {"pipeline": [{"start_with": 0.05}, {"add_trend": {"annual_change": -0.001}},
                  {"clamp": {"min": 0.0, "max": 0.08}}]}
"""

from typing import Any, Dict

from .errors import ConfigurationError

DEFAULT_BASE_YEAR = 2025

SCHEDULE_TYPES = ("fixed", "sequence", "map")
PIPELINE_OPERATIONS = (
    "start_with", "add", "multiply", "add_trend", "add_cycles",
    "overlay_sequence", "clamp", "floor", "ceiling",
)
SCALAR_OPERATIONS = ("start_with", "add", "multiply", "floor", "ceiling")
# Required numeric keys of the object-valued operations
STEP_PARAMS = {
    "add_trend": ("annual_change",),
    "add_cycles": ("period", "amplitude"),
    "clamp": ("min", "max"),
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RateSchedule:
    """A single named schedule returning an annual rate for a month."""

    def __init__(self, name: str, config: Dict[str, Any]):
        self.name = name
        self.config = config
        self._cache: Dict[int, float] = {}
        self._validate()

    def _fail(self, message: str):
        raise ConfigurationError(f"Rate schedule '{self.name}': {message}")

    def _validate(self):
        config = self.config
        if not isinstance(config, dict):
            raise ConfigurationError(f"Rate schedule '{self.name}' must be an object")
        for key in ("base_year", "start_year"):
            if key in config and not _is_int(config[key]):
                self._fail(f"{key} must be an integer")
        if config.get("default_rate") is not None and not _is_number(config["default_rate"]):
            self._fail("default_rate must be a number")

        if "type" in config:
            kind = config["type"]
            if kind not in SCHEDULE_TYPES:
                self._fail(f"unknown type {kind!r}")
            if kind == "fixed" and not _is_number(config.get("rate")):
                self._fail("fixed schedule needs a numeric rate")
            if kind == "sequence":
                values = config.get("values")
                if not isinstance(values, list) or not all(_is_number(v) for v in values):
                    self._fail("sequence needs a list of numeric values")
            if kind == "map":
                self._validate_periods(config.get("periods"))
        elif "pipeline" in config:
            if not isinstance(config["pipeline"], list):
                self._fail("pipeline must be a list of steps")
            for step in config["pipeline"]:
                if not isinstance(step, dict) or len(step) != 1:
                    self._fail("pipeline steps must be single-key objects")
                operation, params = next(iter(step.items()))
                if operation not in PIPELINE_OPERATIONS:
                    self._fail(f"unknown pipeline operation {operation!r}")
                self._validate_step(operation, params)
        else:
            raise ConfigurationError(f"Rate schedule '{self.name}' needs a type or a pipeline")

    def _validate_periods(self, periods: Any):
        if not isinstance(periods, list):
            self._fail("map needs a list of periods")
        for i, period in enumerate(periods):
            if not isinstance(period, dict):
                self._fail(f"periods[{i}] must be an object")
            for key in ("start_year", "stop_year", "rate"):
                if not _is_number(period.get(key)):
                    self._fail(f"periods[{i}] needs a numeric {key}")

    def _validate_step(self, operation: str, params: Any):
        if operation in SCALAR_OPERATIONS:
            if not _is_number(params):
                self._fail(f"{operation} needs a number")
            return
        if not isinstance(params, dict):
            self._fail(f"{operation} needs an object")
        if operation == "overlay_sequence":
            if not all(_is_number(v) for v in params.values()):
                self._fail("overlay_sequence values must be numbers")
            return
        for key in STEP_PARAMS[operation]:
            if not _is_number(params.get(key)):
                self._fail(f"{operation} needs a numeric {key}")
        if operation == "add_cycles" and (not _is_int(params["period"]) or params["period"] < 1):
            self._fail("add_cycles period must be a positive integer")
        if operation == "clamp" and params["min"] > params["max"]:
            self._fail("clamp min exceeds max")

    def rate_for_month(self, month: int) -> float:
        """Annual rate in effect for a 0-indexed ledger month."""
        if month in self._cache:
            return self._cache[month]

        if "type" in self.config:
            rate = self._typed_rate(month)
        else:
            rate = 0.0
            for step in self.config["pipeline"]:
                rate = self._apply_step(rate, step, month)

        self._cache[month] = rate
        return rate

    def _typed_rate(self, month: int) -> float:
        kind = self.config["type"]
        if kind == "fixed":
            return self.config["rate"]
        if kind == "sequence":
            values = self.config["values"]
            year_index = month // 12 - self.config.get("start_year", 0)
            if 0 <= year_index < len(values):
                return values[year_index]
            default = self.config.get("default_rate")
            if default is not None:
                return default
            return values[-1] if values else 0.0

        year = self.config.get("base_year", DEFAULT_BASE_YEAR) + month // 12
        for period in self.config["periods"]:
            if period["start_year"] <= year <= period["stop_year"]:
                return period["rate"]
        return self.config.get("default_rate", 0.0)

    def _apply_step(self, rate: float, step: Dict[str, Any], month: int) -> float:
        operation, params = next(iter(step.items()))
        years = month // 12

        if operation == "start_with":
            return params
        if operation == "add":
            return rate + params
        if operation == "multiply":
            return rate * params
        if operation == "add_trend":
            return rate + params["annual_change"] * years
        if operation == "add_cycles":
            # Boom at the start of each cycle, bust halfway through it
            cycle_year = years % params["period"]
            if cycle_year == 0:
                return rate + params["amplitude"]
            if cycle_year == params["period"] // 2:
                return rate - params["amplitude"]
            return rate
        if operation == "overlay_sequence":
            year = str(self.config.get("base_year", DEFAULT_BASE_YEAR) + years)
            overlay = {str(k): v for k, v in params.items()}
            return overlay.get(year, rate)
        if operation == "clamp":
            return max(params["min"], min(params["max"], rate))
        if operation == "floor":
            return max(params, rate)
        # ceiling
        return min(params, rate)


class RateScheduleManager:
    """Registry of the named schedules declared by a scenario."""

    def __init__(self):
        self.schedules: Dict[str, RateSchedule] = {}

    def add_schedule(self, name: str, config: Dict[str, Any]):
        self.schedules[name] = RateSchedule(name, config)

    def get_rate(self, name: str, month: int) -> float:
        schedule = self.schedules.get(name)
        if schedule is None:
            raise ConfigurationError(f"Rate schedule '{name}' not found")
        return schedule.rate_for_month(month)

    def __contains__(self, name: str) -> bool:
        return name in self.schedules

    @classmethod
    def from_config(cls, schedules: Dict[str, Dict[str, Any]]) -> 'RateScheduleManager':
        manager = cls()
        for name, config in (schedules or {}).items():
            manager.add_schedule(name, config)
        return manager
