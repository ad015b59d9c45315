"""Values substituted when an upstream data source is unavailable."""

ETH_PRICE_USD = 3000.0
GAS_PRICE_GWEI = 50.0

VOLATILITY_PCT = 23.5
PRICE_CHANGE_1D = -2.3
PRICE_CHANGE_7D = 5.8
PRICE_CHANGE_30D = -12.4
RSI = 50.0

AAVE_RATES: dict[str, dict] = {
    "DAI": {"supply_apy": 2.5, "borrow_apy": 3.8, "total_liquidity": 150_000_000, "utilization_rate": 0.65, "ltv": 0.75},
    "USDC": {"supply_apy": 2.7, "borrow_apy": 4.1, "total_liquidity": 250_000_000, "utilization_rate": 0.72, "ltv": 0.80},
    "ETH": {"supply_apy": 0.5, "borrow_apy": 1.8, "total_liquidity": 100_000, "utilization_rate": 0.45, "ltv": 0.80},
}

COMPOUND_RATES: dict[str, dict] = {
    "DAI": {"supply_apy": 2.2, "borrow_apy": 3.5, "total_liquidity": 120_000_000, "ltv": 0.75},
    "USDC": {"supply_apy": 2.4, "borrow_apy": 3.8, "total_liquidity": 200_000_000, "ltv": 0.75},
    "ETH": {"supply_apy": 0.3, "borrow_apy": 1.5, "total_liquidity": 80_000, "ltv": 0.75},
}

UNISWAP_POOLS: list[dict] = [
    {"name": "ETH-USDC", "apy": 9.1, "fee_pct": 0.3, "volume_usd": 12_500_000, "liquidity_usd": 150_000_000},
    {"name": "ETH-USDT", "apy": 8.7, "fee_pct": 0.3, "volume_usd": 11_200_000, "liquidity_usd": 140_000_000},
    {"name": "WBTC-ETH", "apy": 8.1, "fee_pct": 0.3, "volume_usd": 8_900_000, "liquidity_usd": 120_000_000},
]

CURVE_POOLS: list[dict] = [
    {"name": "3pool", "apy": 2.8, "volume_usd": 5_600_000, "liquidity_usd": 580_000_000},
    {"name": "stETH", "apy": 3.2, "volume_usd": 4_200_000, "liquidity_usd": 320_000_000},
    {"name": "BUSD", "apy": 2.5, "volume_usd": 3_100_000, "liquidity_usd": 210_000_000},
]

STAKING_POOLS: list[dict] = [
    {"name": "stETH", "apy": 3.4, "liquidity_usd": 25_000_000_000},
]
