"""Prompt templates used by the advisor pipeline."""

from defi_advisor.advisor.formatting import format_pct, format_usd, format_value
from defi_advisor.advisor.schemas import Opportunity, Recommendation, UserProfile
from defi_advisor.market.schemas import MarketSnapshot
from defi_advisor.protocols.schemas import LendingRate, PoolRate, ProtocolSnapshot
from defi_advisor.wallet.schemas import WalletActivity

SYSTEM_PROMPT = (
    "You are an expert DeFi advisor. You only use the market and protocol data "
    "provided to you and never invent rates, prices or protocols."
)

REPLY_CONTRACT = """{
  "summary": "2-3 sentence overview of the strategy",
  "allocation": {"Stablecoins": 60, "Ethereum": 30, "Altcoins": 10},
  "protocols": ["Aave Lending (USDC)", "..."],
  "steps": ["1. ...", "2. ..."],
  "expectedReturns": {"min": 5, "max": 10, "timeframeMonths": 12},
  "risks": ["..."]
}"""

STRATEGY_PROMPT = """As a DeFi advisor, suggest optimal strategies based on the following real blockchain and market data:

## User Profile
- Risk tolerance: {risk_tolerance} (1-10)
- Investment horizon: {time_horizon} months
- Capital available: {capital}
- Previous DeFi experience: {experience}
- Investment goals: {goals}
- Risk profile assessment: {risk_profile}

## Current Market Conditions
- ETH price: {eth_price}
- Market trend: {trend}
- Market volatility: {volatility}
- 1-day price change: {change_1d}
- 7-day price change: {change_7d}
- 30-day price change: {change_30d}
- Gas prices: {gas_price}
- RSI: {rsi}

## DeFi Protocol Data
### Lending Rates (APY)
{lending}

### Liquidity Pools (APY)
{liquidity}

### Top Opportunities Based on Risk Profile
{opportunities}

### User Wallet Activity
{wallet}

## Initial Recommendations
### Asset Allocation
{allocation}

### Recommended Protocols
{protocols}

## Instructions
Based on this real-time data, provide a personalized DeFi strategy including:

1. Precise asset allocation with percentages
2. Specific DeFi protocols to use with detailed rationale
3. Step-by-step implementation instructions
4. Expected returns with timeframes
5. Risk mitigation strategies
6. Gas optimization recommendations

Balance risk and reward according to the user's profile. Use only the data provided above.
Reply with a single JSON object in a ```json code block using exactly this shape:
{contract}
"""


def _lending_lines(name: str, rates: dict[str, LendingRate]) -> list[str]:
    if not rates:
        return []
    lines = [f"{name}:"]
    for asset, rate in rates.items():
        lines.append(
            f"- {asset}: Supply {format_pct(rate.supply_apy)}, Borrow {format_pct(rate.borrow_apy)}"
        )
    return lines


def _pool_lines(name: str, pools: list[PoolRate]) -> list[str]:
    if not pools:
        return []
    lines = [f"{name}:"]
    for pool in pools:
        line = f"- {pool.name}: {format_pct(pool.apy)}"
        if pool.fee_pct is not None:
            line += f" (Fee: {format_pct(pool.fee_pct)})"
        if pool.liquidity_usd is not None:
            line += f", TVL {format_usd(pool.liquidity_usd)}"
        lines.append(line)
    return lines


def format_lending(protocols: ProtocolSnapshot) -> str:
    lines = _lending_lines("Aave", protocols.aave) + _lending_lines("Compound", protocols.compound)
    return "\n".join(lines) or "No lending rate data available"


def format_liquidity(protocols: ProtocolSnapshot) -> str:
    lines = (
        _pool_lines("Uniswap", protocols.uniswap)
        + _pool_lines("Curve", protocols.curve)
        + _pool_lines("Lido", protocols.lido)
    )
    return "\n".join(lines) or "No liquidity pool data available"


def format_opportunities(opportunities: list[Opportunity]) -> str:
    if not opportunities:
        return "No suitable opportunities found"
    lines = []
    for opp in opportunities:
        line = f"- {opp.protocol} {opp.type} ({opp.asset}): {format_pct(opp.apy)} APY [Risk: {opp.risk_score}/10]"
        if opp.impermanent_loss_pct is not None:
            line += f" [IL at 10% move: {format_pct(opp.impermanent_loss_pct)}]"
        lines.append(line)
    return "\n".join(lines)


def _allocation_share(value: float | str) -> str:
    # ranges such as "4-6" are kept verbatim
    if isinstance(value, str):
        return f"{value}%"
    return format_pct(value)


def format_allocation(allocation: dict[str, float | str]) -> str:
    if not allocation:
        return "No allocation data available"
    return "\n".join(f"- {bucket}: {_allocation_share(value)}" for bucket, value in allocation.items())


def build_strategy_prompt(
    profile: UserProfile,
    snapshot: MarketSnapshot,
    protocols: ProtocolSnapshot,
    opportunities: list[Opportunity],
    recommendation: Recommendation,
    wallet_activity: WalletActivity | None = None,
) -> str:
    return STRATEGY_PROMPT.format(
        risk_tolerance=profile.risk_tolerance,
        time_horizon=profile.time_horizon,
        capital=format_usd(profile.capital),
        experience=profile.experience,
        goals=", ".join(profile.investment_goals) or "N/A",
        risk_profile=profile.risk_profile_class,
        eth_price=format_usd(snapshot.eth_price_usd),
        trend=snapshot.trend,
        volatility=format_pct(snapshot.volatility_pct),
        change_1d=format_pct(snapshot.price_change_1d),
        change_7d=format_pct(snapshot.price_change_7d),
        change_30d=format_pct(snapshot.price_change_30d),
        gas_price=format_value(snapshot.gas_price_gwei, " gwei"),
        rsi=format_value(snapshot.rsi),
        lending=format_lending(protocols),
        liquidity=format_liquidity(protocols),
        opportunities=format_opportunities(opportunities),
        wallet=wallet_activity.summary if wallet_activity else "No wallet data provided",
        allocation=format_allocation(recommendation.asset_allocation),
        protocols=", ".join(recommendation.protocols) or "N/A",
        contract=REPLY_CONTRACT,
    )
