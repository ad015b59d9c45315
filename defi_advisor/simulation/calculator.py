"""Closed-form DeFi arithmetic used by the simulator and the recommendation builder."""

import math

# Typical gas units per operation type
GAS_UNITS: dict[str, int] = {
    "swap": 150_000,
    "lending": 250_000,
    "liquidity": 300_000,
}


def compound_interest(principal: float, rate_pct: float, months: float, periods_per_year: int = 365) -> float:
    """Final balance for ``principal`` at ``rate_pct`` APR compounded ``periods_per_year`` times."""
    rate = rate_pct / 100
    years = months / 12
    return principal * (1 + rate / periods_per_year) ** (periods_per_year * years)


def impermanent_loss(price_ratio: float) -> float:
    """Loss vs holding for a 50/50 pool when one asset's price moves by ``price_ratio``.

    Returns a non-positive fraction (e.g. -0.0057 for a 10% move).
    """
    if price_ratio <= 0:
        return -1.0
    return 2 * math.sqrt(price_ratio) / (1 + price_ratio) - 1


def lp_fee_returns(
    amount_usd: float, fee_pct: float, daily_volume_usd: float, pool_liquidity_usd: float, days: int
) -> float:
    if pool_liquidity_usd <= 0:
        return 0.0
    share = amount_usd / pool_liquidity_usd
    daily_fees = daily_volume_usd * (fee_pct / 100)
    return daily_fees * share * days


def loan_to_value(
    collateral_amount: float, borrow_amount: float, collateral_price: float, borrow_price: float
) -> float:
    collateral_value = collateral_amount * collateral_price
    if collateral_value <= 0:
        return math.inf
    return borrow_amount * borrow_price / collateral_value * 100


def liquidation_risk(current_ltv: float, liquidation_threshold: float, volatility: float) -> float:
    """Heuristic 0-100 score; higher means closer to liquidation given volatility."""
    if volatility <= 0:
        return 0.0 if current_ltv < liquidation_threshold else 100.0
    buffer = liquidation_threshold - current_ltv
    score = 100 - (buffer / (volatility / 10) * 100)
    return max(0.0, min(100.0, score))


def max_borrow(collateral_value: float, max_ltv_pct: float, current_debt: float = 0.0) -> float:
    return max(0.0, collateral_value * max_ltv_pct / 100 - current_debt)


def health_factor(collateral_value: float, liquidation_threshold_pct: float, total_borrows: float) -> float:
    if total_borrows == 0:
        return math.inf
    return collateral_value * liquidation_threshold_pct / 100 / total_borrows


def gas_cost_usd(gas_units: int, gas_price_gwei: float, eth_price_usd: float) -> float:
    return gas_units * gas_price_gwei * 1e-9 * eth_price_usd
