"""Tunable constants for risk scoring and opportunity suitability."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


def _frozen(values: dict) -> Mapping:
    return MappingProxyType(values)


@dataclass(frozen=True)
class RiskParameters:
    protocol_weights: Mapping[str, float] = field(
        default_factory=lambda: _frozen(
            {"aave": 3, "compound": 4, "lido": 4, "curve": 5, "uniswap": 6}
        )
    )
    unknown_protocol_weight: float = 5
    asset_weights: Mapping[str, float] = field(
        default_factory=lambda: _frozen(
            {
                "usdc": 2,
                "usdt": 3,
                "dai": 2,
                "busd": 2,
                "frax": 2,
                "lusd": 2,
                "3pool": 2,
                "eth": 5,
                "weth": 5,
                "steth": 6,
                "wbtc": 6,
                "btc": 6,
            }
        )
    )
    unknown_asset_weight: float = 7
    trend_adjustments: Mapping[str, float] = field(
        default_factory=lambda: _frozen({"bearish": 1.0, "bullish": -0.5})
    )
    # AMM pools carry impermanent-loss exposure on top of protocol risk
    amm_protocols: frozenset[str] = frozenset({"uniswap", "curve"})
    liquidity_pool_penalty: float = 1
    min_score: int = 1
    max_score: int = 10


@dataclass(frozen=True)
class SuitabilityBand:
    min_risk: int
    max_risk: int

    def admits(self, risk_score: int) -> bool:
        return self.min_risk <= risk_score <= self.max_risk


SUITABILITY_BANDS: Mapping[str, SuitabilityBand] = _frozen(
    {
        "conservative": SuitabilityBand(1, 4),
        "moderate": SuitabilityBand(3, 7),
        "aggressive": SuitabilityBand(5, 10),
    }
)

DEFAULT_RISK_PARAMETERS = RiskParameters()

MAX_OPPORTUNITIES = 5
# price ratio used for the impermanent-loss estimate on AMM opportunities
IL_PRICE_RATIO = 1.1
