"""Rule-based asset allocation and the initial recommendation handed to the LLM."""

import structlog

from defi_advisor.advisor.formatting import format_usd
from defi_advisor.advisor.schemas import (
    ExpectedReturns,
    GasCosts,
    Opportunity,
    Recommendation,
    RiskProfileClass,
    UserProfile,
)
from defi_advisor.market.schemas import MarketSnapshot
from defi_advisor.protocols.schemas import OpportunityType
from defi_advisor.simulation.calculator import GAS_UNITS, gas_cost_usd

logger = structlog.get_logger()

STABLECOINS = "Stablecoins"
ETHEREUM = "Ethereum"
ALTCOINS = "Altcoins"
USDC_POOL = "USDC Liquidity Pool"
CURVE_STETH_POOL = "Curve stETH Liquidity Pool"
STAKING_ETH = "Staking ETH"
STAKING_RANGE = "4-6"

BASE_ALLOCATIONS: dict[str, dict[str, float | str]] = {
    RiskProfileClass.conservative: {
        STABLECOINS: 70,
        ETHEREUM: 20,
        ALTCOINS: 10,
        USDC_POOL: 9,
        CURVE_STETH_POOL: 3,
        STAKING_ETH: STAKING_RANGE,
    },
    RiskProfileClass.moderate: {
        STABLECOINS: 50,
        ETHEREUM: 30,
        ALTCOINS: 20,
        USDC_POOL: 6,
        CURVE_STETH_POOL: 2,
        STAKING_ETH: STAKING_RANGE,
    },
    RiskProfileClass.aggressive: {
        STABLECOINS: 25,
        ETHEREUM: 45,
        ALTCOINS: 30,
        USDC_POOL: 9,
        CURVE_STETH_POOL: 3,
        STAKING_ETH: STAKING_RANGE,
    },
}

# points moved from Stablecoins into Ethereum (negative moves them back)
TREND_DELTAS: dict[str, dict[str, float]] = {
    RiskProfileClass.conservative: {"bullish": 5, "bearish": -10},
    RiskProfileClass.moderate: {"bullish": 10, "bearish": -5},
    RiskProfileClass.aggressive: {"bullish": 5, "bearish": -10},
}

EXPECTED_RETURNS: dict[str, tuple[float, float]] = {
    RiskProfileClass.conservative: (5, 10),
    RiskProfileClass.moderate: (8, 16),
    RiskProfileClass.aggressive: (12, 24),
}

STANDARD_RISKS = [
    "Market volatility may affect ETH price and impact overall returns",
    "Smart contract risk associated with protocol interactions",
    "Impermanent loss risk when providing liquidity in volatile markets",
    "Regulatory changes could impact DeFi platforms and strategies",
]

_KIND_LABELS = {
    OpportunityType.lending: "Lending",
    OpportunityType.liquidity: "Liquidity Provisioning",
    OpportunityType.staking: "Staking",
}

DEFAULT_PROTOCOLS = [
    "Uniswap Liquidity Provisioning (ETH-USDC)",
    "Curve Liquidity Provisioning (stETH)",
    "Lido Staking (stETH)",
]


def _profile_key(profile_class: str) -> str:
    key = str(profile_class).lower()
    return key if key in BASE_ALLOCATIONS else RiskProfileClass.moderate


def recommend(profile_class: str, trend: str | None) -> dict[str, float | str]:
    """Allocation per bucket; primary buckets always sum to 100."""
    key = _profile_key(profile_class)
    allocation = dict(BASE_ALLOCATIONS[key])
    delta = TREND_DELTAS[key].get(str(trend).lower())
    if delta is None:
        return allocation

    # clamp so neither side goes negative and the pair keeps its total
    delta = max(-allocation[ETHEREUM], min(allocation[STABLECOINS], delta))
    allocation[ETHEREUM] = max(0, allocation[ETHEREUM] + delta)
    allocation[STABLECOINS] = max(0, allocation[STABLECOINS] - delta)
    return allocation


def _range_midpoint(value: float | str) -> float:
    if isinstance(value, str):
        low, _, high = value.partition("-")
        try:
            return (float(low) + float(high or low)) / 2
        except ValueError:
            return 0.0
    return float(value)


def _protocols(opportunities: list[Opportunity], profile_class: str) -> list[str]:
    if not opportunities:
        protocols = list(DEFAULT_PROTOCOLS)
        if profile_class == RiskProfileClass.conservative:
            protocols.insert(0, "Aave Lending (USDC/DAI)")
        return protocols

    protocols: list[str] = []
    for opp in opportunities:
        label = f"{opp.protocol} {_KIND_LABELS.get(opp.type, str(opp.type).title())} ({opp.asset})"
        if label not in protocols:
            protocols.append(label)
    return protocols


def _steps(capital: float, allocation: dict[str, float | str]) -> list[str]:
    def share(bucket: str) -> float:
        return capital * _range_midpoint(allocation.get(bucket, 0)) / 100

    steps = [
        f"Deposit {format_usd(share(STABLECOINS))} into a stablecoin (e.g., USDC or DAI) "
        "on a lending protocol like Aave or Compound.",
        f"Acquire {format_usd(share(ETHEREUM))} worth of Ethereum and hold it in a self-custody wallet.",
        f"Allocate {format_usd(share(USDC_POOL))} to Uniswap's ETH-USDC liquidity pool.",
        f"Allocate {format_usd(share(CURVE_STETH_POOL))} to Curve's stETH liquidity pool.",
        f"Stake {format_usd(share(STAKING_ETH))} worth of Ethereum with a liquid staking provider such as Lido.",
    ]
    if share(ALTCOINS) > 0:
        steps.append(
            f"Keep {format_usd(share(ALTCOINS))} in established altcoins and rebalance monthly."
        )
    return steps


def estimate_gas_costs(gas_price_gwei: float, eth_price_usd: float) -> GasCosts:
    return GasCosts(
        swap=round(gas_cost_usd(GAS_UNITS["swap"], gas_price_gwei, eth_price_usd), 2),
        lending=round(gas_cost_usd(GAS_UNITS["lending"], gas_price_gwei, eth_price_usd), 2),
        liquidity_providing=round(gas_cost_usd(GAS_UNITS["liquidity"], gas_price_gwei, eth_price_usd), 2),
    )


def build_recommendation(
    profile: UserProfile,
    snapshot: MarketSnapshot,
    opportunities: list[Opportunity],
) -> Recommendation:
    profile_class = profile.risk_profile_class
    allocation = recommend(profile_class, snapshot.trend)
    low, high = EXPECTED_RETURNS[_profile_key(profile_class)]

    recommendation = Recommendation(
        asset_allocation=allocation,
        protocols=_protocols(opportunities, profile_class),
        steps=_steps(profile.capital, allocation),
        expected_returns=ExpectedReturns(min=low, max=high, timeframe_months=profile.time_horizon),
        risks=list(STANDARD_RISKS),
        gas_costs=estimate_gas_costs(snapshot.gas_price_gwei, snapshot.eth_price_usd),
    )
    logger.info(
        "recommendation_built",
        profile=profile_class,
        trend=snapshot.trend,
        protocols=len(recommendation.protocols),
    )
    return recommendation
