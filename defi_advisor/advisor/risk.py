import math
import re

from defi_advisor.advisor.parameters import DEFAULT_RISK_PARAMETERS, RiskParameters

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def asset_weight(asset: str, params: RiskParameters = DEFAULT_RISK_PARAMETERS) -> float:
    """Highest keyword weight among the label's tokens ("ETH-USDC" -> max(eth, usdc))."""
    tokens = [t for t in _TOKEN_SPLIT.split(str(asset).lower()) if t]
    weights = [params.asset_weights[t] for t in tokens if t in params.asset_weights]
    return max(weights) if weights else params.unknown_asset_weight


def score(
    protocol: str,
    asset: str,
    trend: str | None,
    kind: str | None = None,
    params: RiskParameters = DEFAULT_RISK_PARAMETERS,
) -> int:
    """Risk score in [1, 10] for holding ``asset`` on ``protocol`` in the given trend.

    ``kind`` is accepted for callers that track opportunity type; AMM exposure is
    derived from the protocol itself.
    """
    protocol_key = str(protocol).lower()
    total = (
        params.protocol_weights.get(protocol_key, params.unknown_protocol_weight)
        + asset_weight(asset, params)
        + params.trend_adjustments.get(str(trend).lower(), 0.0)
    )
    if protocol_key in params.amm_protocols:
        total += params.liquidity_pool_penalty

    return max(params.min_score, min(params.max_score, round_half_up(total / 2)))
