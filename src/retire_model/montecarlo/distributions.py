# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Distribution specs for Monte Carlo variable ranges.

A spec is a plain mapping with a ``type`` and its parameters, either flat
or nested under ``params``:

    {"type": "normal", "mean": 0.065, "stdDev": 0.15}
    {"type": "uniform", "params": {"min": 2500, "max": 3500}}
    {"type": "lognormal", "mean": 1.05, "stdDev": 0.1}
    {"type": "triangular", "min": 0.02, "mode": 0.05, "max": 0.09}
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import ConfigurationError, UnknownDistributionError
from .random_source import RandomSource

REQUIRED_PARAMS = {
    "normal": ("mean", "stdDev"),
    "uniform": ("min", "max"),
    "lognormal": ("mean", "stdDev"),
    "triangular": ("min", "mode", "max"),
}

_ALIASES = {"std_dev": "stdDev", "stddev": "stdDev", "sd": "stdDev"}


@dataclass(frozen=True)
class Distribution:
    """A validated distribution spec."""
    type: str
    params: Dict[str, float]

    def sample(self, rng: RandomSource) -> float:
        p = self.params
        if self.type == "normal":
            return rng.normal(p["mean"], p["stdDev"])
        if self.type == "uniform":
            return rng.uniform(p["min"], p["max"])
        if self.type == "lognormal":
            return rng.lognormal(p["mean"], p["stdDev"])
        return rng.triangular(p["min"], p["mode"], p["max"])


def parse_distribution(spec: Any, field_path: Optional[str] = None) -> Distribution:
    """Validate a distribution spec.

    Raises:
        UnknownDistributionError: If the type is not supported
        ConfigurationError: If parameters are missing or inconsistent
    """
    where = f" for {field_path}" if field_path else ""
    if isinstance(spec, Distribution):
        return spec
    if not isinstance(spec, dict):
        raise ConfigurationError(f"Distribution spec{where} must be an object")

    dist_type = spec.get("type")
    if dist_type not in REQUIRED_PARAMS:
        raise UnknownDistributionError(dist_type, field_path)

    raw = spec.get("params") if isinstance(spec.get("params"), dict) else spec
    params = {}
    for key, value in raw.items():
        if key in ("type", "params"):
            continue
        params[_ALIASES.get(key, key)] = value

    for name in REQUIRED_PARAMS[dist_type]:
        value = params.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"Distribution '{dist_type}'{where} needs numeric '{name}'")

    if dist_type in ("normal", "lognormal") and params["stdDev"] < 0:
        raise ConfigurationError(f"Distribution '{dist_type}'{where}: stdDev cannot be negative")
    if dist_type == "lognormal" and params["mean"] <= 0:
        raise ConfigurationError(f"Distribution 'lognormal'{where}: mean must be positive")
    if dist_type == "uniform" and params["min"] > params["max"]:
        raise ConfigurationError(f"Distribution 'uniform'{where}: min exceeds max")
    if dist_type == "triangular" and not params["min"] <= params["mode"] <= params["max"]:
        raise ConfigurationError(f"Distribution 'triangular'{where}: needs min <= mode <= max")

    return Distribution(dist_type, {k: float(params[k]) for k in REQUIRED_PARAMS[dist_type]})


def sample(spec: Any, rng: RandomSource, field_path: Optional[str] = None) -> float:
    """Draw one value from a distribution spec."""
    return parse_distribution(spec, field_path).sample(rng)
