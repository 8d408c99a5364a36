# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Return models for Monte Carlo trials.

All models share one call shape:

    model.generate(asset_types, duration_periods, seed=None, config=None)
        -> {asset_type: [return_period_0, return_period_1, ...]}

and are pure functions of their arguments: the same seed always yields the
same sequences. Returns are annual decimals (0.07 == 7%).

Config keys understood by every model:
    "<type>_adjustment": additive shift applied to every return of that type

Independent-normal also reads "<type>_mean" / "<type>_stddev".
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ConfigurationError, UnknownModelError
from .market_assumptions import HistoricalReturns, MarketAssumptions, asset_class_for
from .random_source import RandomSource

ReturnSequence = Dict[str, List[float]]


def ordered_types(asset_types: Iterable[str]) -> List[str]:
    """Deterministic iteration order for asset type labels.

    Sets are sorted; sequences keep their order with duplicates dropped.
    """
    if isinstance(asset_types, (set, frozenset)):
        return sorted(asset_types)
    ordered = []
    for asset_type in asset_types:
        if asset_type not in ordered:
            ordered.append(asset_type)
    return ordered


class ReturnModel(ABC):
    """Base class for return models."""

    model_id = "base"
    display_name = "Base Return Model"
    description = "Base class for return models"
    capabilities = {
        'supportsMultipleAssets': False,
        'supportsCorrelation': False,
        'supportsSequenceRisk': False,
    }

    def generate(self, asset_types: Iterable[str], duration_periods: int,
                 seed: Optional[int] = None,
                 config: Optional[Dict[str, Any]] = None) -> ReturnSequence:
        """Generate one return sequence per asset type.

        Args:
            asset_types: Asset type labels to generate for
            duration_periods: Number of periods (years) per sequence
            seed: Seed for the RandomSource; None draws a fresh one
            config: Model-specific options

        Returns:
            Dict mapping each asset type to duration_periods returns

        Raises:
            ConfigurationError: If duration_periods is not a non-negative int
        """
        if isinstance(duration_periods, bool) or not isinstance(duration_periods, int) \
                or duration_periods < 0:
            raise ConfigurationError(
                f"duration_periods must be a non-negative integer, got {duration_periods!r}")
        return self._generate(ordered_types(asset_types), duration_periods,
                              RandomSource(seed), config or {})

    @abstractmethod
    def _generate(self, asset_types: List[str], duration_periods: int,
                  rng: RandomSource, config: Dict[str, Any]) -> ReturnSequence:
        ...

    def describe(self) -> Dict[str, Any]:
        return {
            'name': self.model_id,
            'displayName': self.display_name,
            'description': self.description,
            'capabilities': dict(self.capabilities),
        }

    @staticmethod
    def adjustment(asset_type: str, config: Dict[str, Any]) -> float:
        return config.get(f"{asset_type}_adjustment", 0) or 0


class IndependentNormalModel(ReturnModel):
    """Each period of each asset type is an independent normal draw."""

    model_id = "independent-normal"
    display_name = "Simple Random"
    description = "Independent random returns using normal distribution"
    capabilities = {
        'supportsMultipleAssets': True,
        'supportsCorrelation': False,
        'supportsSequenceRisk': False,
    }

    def __init__(self, market_assumptions: Optional[MarketAssumptions] = None):
        self.market = market_assumptions or MarketAssumptions.create_default()

    def _generate(self, asset_types, duration_periods, rng, config):
        returns = {}
        for asset_type in asset_types:
            default_mean, default_std = self.market.for_type(asset_type)
            mean = config.get(f"{asset_type}_mean", default_mean)
            std_dev = config.get(f"{asset_type}_stddev", default_std)
            shift = self.adjustment(asset_type, config)
            returns[asset_type] = [rng.normal(mean, std_dev) + shift
                                   for _ in range(duration_periods)]
        return returns


class HistoricalReturnModel(ReturnModel):
    """Shared plumbing for the models that replay historical years."""

    def __init__(self, history: Optional[HistoricalReturns] = None):
        self.history = history or HistoricalReturns.create_default()

    def _series_for(self, asset_type: str) -> Optional[List[float]]:
        return self.history.get(asset_class_for(asset_type) or asset_type)

    def _returns_for_years(self, asset_types: List[str], years: List[int],
                           config: Dict[str, Any]) -> ReturnSequence:
        returns = {}
        for asset_type in asset_types:
            series = self._series_for(asset_type)
            shift = self.adjustment(asset_type, config)
            if series is None:
                # No history for this label: flat zero returns
                returns[asset_type] = [0.0 + shift for _ in years]
            else:
                returns[asset_type] = [series[year] + shift for year in years]
        return returns


class HistoricalBootstrapModel(HistoricalReturnModel):
    """Samples whole historical years with replacement.

    One year index is drawn per period and every asset type reads its
    return for that same year.
    """

    model_id = "historical-bootstrap"
    display_name = "Historical Bootstrap"
    description = "Random sampling from actual historical market returns"
    capabilities = {
        'supportsMultipleAssets': True,
        'supportsCorrelation': True,
        'supportsSequenceRisk': False,
    }

    def _generate(self, asset_types, duration_periods, rng, config):
        years = [rng.randint(self.history.span) for _ in range(duration_periods)]
        return self._returns_for_years(asset_types, years, config)


class HistoricalSequenceModel(HistoricalReturnModel):
    """Replays one contiguous run of historical years.

    The window keeps the original order of returns. A horizon longer than
    the table wraps around, concatenating the raw series with itself.
    """

    model_id = "historical-sequence"
    display_name = "Historical Sequence"
    description = "Complete historical return sequences preserving sequence risk"
    capabilities = {
        'supportsMultipleAssets': True,
        'supportsCorrelation': True,
        'supportsSequenceRisk': True,
    }

    def window(self, duration_periods: int, rng: RandomSource) -> List[int]:
        """Year indices of one contiguous (possibly wrapping) window."""
        span = self.history.span
        if duration_periods <= span:
            start = rng.randint(span - duration_periods + 1)
        else:
            start = rng.randint(span)
        return [(start + offset) % span for offset in range(duration_periods)]

    def _generate(self, asset_types, duration_periods, rng, config):
        return self._returns_for_years(asset_types, self.window(duration_periods, rng), config)


RETURN_MODELS = {
    IndependentNormalModel.model_id: IndependentNormalModel,
    HistoricalBootstrapModel.model_id: HistoricalBootstrapModel,
    HistoricalSequenceModel.model_id: HistoricalSequenceModel,
}

MODEL_ALIASES = {
    'simple-random': IndependentNormalModel.model_id,
    'normal': IndependentNormalModel.model_id,
    'bootstrap': HistoricalBootstrapModel.model_id,
    'sequence': HistoricalSequenceModel.model_id,
}


def get_return_model(model_type: str) -> ReturnModel:
    """Instantiate a return model by identifier.

    Raises:
        UnknownModelError: If model_type is not registered
    """
    if not isinstance(model_type, str):
        raise UnknownModelError(model_type)
    key = MODEL_ALIASES.get(model_type, model_type)
    if key not in RETURN_MODELS:
        raise UnknownModelError(model_type)
    return RETURN_MODELS[key]()


def available_models() -> List[Dict[str, Any]]:
    return [model_cls().describe() for model_cls in RETURN_MODELS.values()]
