# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Market assumptions used by the return models.

Two kinds of data live here: forward-looking mean/volatility assumptions per
asset class (used by the independent-normal model) and an embedded table of
historical annual returns (used by the bootstrap and sequence models).

Scenario assets carry free-form type labels ("investment", "401k",
"savings", ...). ``asset_class_for`` maps those labels onto the classes the
tables know about; labels it cannot map return None.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..errors import ConfigurationError


@dataclass
class AssetClassAssumptions:
    """Return and volatility assumptions for a single asset class.

    Attributes:
        name: Asset class identifier (e.g., "stock")
        expected_return: Annual expected return as decimal (e.g., 0.07 for 7%)
        volatility: Annual standard deviation as decimal (e.g., 0.15 for 15%)
    """
    name: str
    expected_return: float
    volatility: float

    def __post_init__(self):
        if self.volatility < 0:
            raise ConfigurationError(f"Volatility cannot be negative: {self.volatility}")


# Fallback for labels without their own assumptions
DEFAULT_EXPECTED_RETURN = 0.07
DEFAULT_VOLATILITY = 0.15

TYPE_TO_ASSET_CLASS = {
    'stock': 'stock',
    'equity': 'stock',
    'investment': 'stock',
    '401k': 'stock',
    'ira': 'stock',
    'roth_ira': 'stock',
    'bond': 'bond',
    'fixed_income': 'bond',
    'pension': 'bond',
    'cash': 'bond',
    'savings': 'bond',
}

# S&P 500 total returns, oldest first, ending 2023
_STOCK_RETURNS = [
    0.1162, 0.3749, 0.4361, -0.0842, -0.2512, -0.4384, -0.0864, 0.4998, 0.4674, 0.3194,
    -0.3534, 0.2928, 0.2109, -0.0119, 0.2003, 0.1131, -0.0067, 0.2070, 0.2550, 0.1885,
    0.1421, 0.1906, 0.2589, -0.0897, 0.2031, 0.1653, 0.0262, 0.1849, 0.3237, 0.2011,
    0.1279, -0.0110, 0.2168, 0.2234, 0.0615, 0.1240, 0.0970, 0.0110, 0.4372, 0.1206,
    0.0034, 0.2664, 0.1488, -0.0658, 0.1244, 0.0200, 0.1561, 0.3148, -0.0306, 0.3023,
    0.0749, -0.0110, 0.0400, 0.1361, 0.1131, -0.0847, -0.1054, 0.2031, 0.2233, 0.0685,
    0.1506, 0.0317, 0.1854, 0.3256, 0.1854, 0.0581, 0.1654, 0.3115, -0.0307, 0.3042,
    0.0742, -0.1146, 0.0491, 0.1579, 0.0549, -0.3655, 0.2594, 0.2236, -0.0881, 0.1040,
    0.1301, 0.1917, 0.3138, 0.3056, 0.0754, 0.0970, 0.0133, 0.3719, 0.2268, -0.0881,
    -0.0903, -0.1189, -0.2210, 0.2868, 0.1088, 0.0491, 0.1579,
]

# Intermediate government bond returns, oldest first, ending 2023
_BOND_RETURNS = [
    0.0744, 0.0884, 0.0010, 0.0446, 0.0479, 0.0884, 0.0668, 0.0010, 0.0446, 0.0479,
] * 9 + [0.0884, 0.0668, 0.0010, 0.0446, 0.0479]

HISTORICAL_END_YEAR = 2023


class HistoricalReturns:
    """Year-aligned table of historical annual returns per asset class.

    Series of different lengths are aligned on their most recent year and
    truncated to the common span, so index ``i`` always refers to the same
    calendar year for every class. Sampling one index per period therefore
    keeps the cross-asset relationship of that year.
    """

    def __init__(self, series: Dict[str, List[float]], end_year: int = HISTORICAL_END_YEAR):
        if not series:
            raise ConfigurationError("Historical return table is empty")
        self.span = min(len(values) for values in series.values())
        if self.span == 0:
            raise ConfigurationError("Historical return series cannot be empty")
        self.series = {name: list(values[-self.span:]) for name, values in series.items()}
        self.end_year = end_year
        self.start_year = end_year - self.span + 1

    @property
    def asset_classes(self) -> List[str]:
        return list(self.series.keys())

    def get(self, asset_class: str) -> Optional[List[float]]:
        return self.series.get(asset_class)

    def year_of(self, index: int) -> int:
        return self.start_year + index

    @classmethod
    def create_default(cls) -> 'HistoricalReturns':
        return cls({'stock': _STOCK_RETURNS, 'bond': _BOND_RETURNS})


class MarketAssumptions:
    """Forward-looking assumptions keyed by asset class.

    Example:
        >>> market = MarketAssumptions.create_default()
        >>> market.for_type("401k")
        (0.07, 0.15)
    """

    def __init__(self, asset_classes: Dict[str, AssetClassAssumptions]):
        self.asset_classes = asset_classes

    def for_type(self, asset_type: str) -> Tuple[float, float]:
        """(expected_return, volatility) for an asset type label."""
        label = (asset_type or "").lower()
        assumption = self.asset_classes.get(label)
        if assumption is None:
            assumption = self.asset_classes.get(asset_class_for(label))
        if assumption is None:
            return DEFAULT_EXPECTED_RETURN, DEFAULT_VOLATILITY
        return assumption.expected_return, assumption.volatility

    @classmethod
    def create_default(cls) -> 'MarketAssumptions':
        """Default assumptions for the classes the historical table covers."""
        return cls({
            "stock": AssetClassAssumptions("stock", 0.07, 0.15),
            "bond": AssetClassAssumptions("bond", 0.04, 0.06),
            "cash": AssetClassAssumptions("cash", 0.02, 0.01),
        })


def asset_class_for(asset_type: Optional[str]) -> Optional[str]:
    """Map a scenario asset type label to a historical asset class."""
    if not asset_type:
        return None
    return TYPE_TO_ASSET_CLASS.get(asset_type.lower())
