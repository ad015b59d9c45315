import pytest

from defi_advisor import fallbacks
from defi_advisor.advisor import allocation
from defi_advisor.advisor.schemas import UserProfile
from defi_advisor.market.schemas import MarketTrend
from defi_advisor.market.service import build_snapshot

PRIMARY = (allocation.STABLECOINS, allocation.ETHEREUM, allocation.ALTCOINS)


@pytest.mark.parametrize("profile_class", ["conservative", "moderate", "aggressive"])
@pytest.mark.parametrize("trend", ["bullish", "bearish", "neutral"])
def test_primary_buckets_sum_to_100(profile_class, trend):
    result = allocation.recommend(profile_class, trend)

    assert sum(result[bucket] for bucket in PRIMARY) == 100
    assert all(result[bucket] >= 0 for bucket in PRIMARY)
    assert result[allocation.STAKING_ETH] == "4-6"


@pytest.mark.parametrize(
    ("profile_class", "trend", "stables", "eth"),
    [
        ("conservative", "bullish", 65, 25),
        ("conservative", "bearish", 80, 10),
        ("conservative", "neutral", 70, 20),
        ("moderate", "bullish", 40, 40),
        ("moderate", "bearish", 55, 25),
        ("aggressive", "bullish", 20, 50),
        ("aggressive", "bearish", 35, 35),
    ],
)
def test_trend_moves_points_between_eth_and_stables(profile_class, trend, stables, eth):
    result = allocation.recommend(profile_class, trend)
    assert result[allocation.STABLECOINS] == stables
    assert result[allocation.ETHEREUM] == eth


@pytest.mark.parametrize("trend", ["overbought", "oversold", None, "sideways"])
def test_unknown_trend_returns_base_template(trend):
    assert allocation.recommend("moderate", trend) == allocation.BASE_ALLOCATIONS["moderate"]


def test_recommend_does_not_mutate_templates():
    allocation.recommend("aggressive", "bullish")
    assert allocation.BASE_ALLOCATIONS["aggressive"][allocation.ETHEREUM] == 45


def test_build_recommendation_sizes_steps_from_capital():
    profile = UserProfile(risk_tolerance=2, time_horizon=18, capital=10_000, experience="none")
    snapshot = build_snapshot(fallbacks.ETH_PRICE_USD, fallbacks.GAS_PRICE_GWEI, None)

    rec = allocation.build_recommendation(profile, snapshot, [])

    assert snapshot.trend == MarketTrend.neutral
    assert "$7,000.00" in rec.steps[0]
    assert "$2,000.00" in rec.steps[1]
    assert "$900.00" in rec.steps[2]
    assert "$300.00" in rec.steps[3]
    assert "$500.00" in rec.steps[4]
    assert "$1,000.00" in rec.steps[5]
    assert rec.expected_returns.min == 5
    assert rec.expected_returns.max == 10
    assert rec.expected_returns.timeframe_months == 18
    assert rec.risks == allocation.STANDARD_RISKS
    assert rec.protocols[0] == "Aave Lending (USDC/DAI)"


def test_gas_costs_in_usd():
    costs = allocation.estimate_gas_costs(gas_price_gwei=50, eth_price_usd=3000)
    assert costs.swap == pytest.approx(22.5)
    assert costs.lending == pytest.approx(37.5)
    assert costs.liquidity_providing == pytest.approx(45.0)
