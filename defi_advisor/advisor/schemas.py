"""Request, response and pipeline-state models for the advice endpoint."""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any, TypedDict

from pydantic import Field, field_validator

from defi_advisor.market.schemas import MarketSnapshot, MarketTrend
from defi_advisor.protocols.schemas import OpportunityType, ProtocolSnapshot
from defi_advisor.schemas import CamelModel
from defi_advisor.wallet.schemas import WalletActivity
from defi_advisor.wallet.service import ADDRESS_RE

DISCLAIMER = (
    "This is AI-generated financial advice based on real-time blockchain data. "
    "Always conduct your own research before making investment decisions."
)


class Experience(StrEnum):
    none = "none"
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class RiskProfileClass(StrEnum):
    conservative = "conservative"
    moderate = "moderate"
    aggressive = "aggressive"


class AdviceSource(StrEnum):
    llm = "llm"
    fallback = "fallback"


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


class UserProfile(CamelModel):
    risk_tolerance: int
    time_horizon: int
    capital: float
    experience: Experience
    investment_goals: list[str] = Field(default_factory=list)

    @field_validator("risk_tolerance", mode="before")
    @classmethod
    def _check_risk_tolerance(cls, value: Any) -> int:
        number = _as_number(value)
        if number is None or not 1 <= number <= 10 or not number.is_integer():
            raise ValueError("Risk tolerance must be a number between 1 and 10")
        return int(number)

    @field_validator("time_horizon", mode="before")
    @classmethod
    def _check_time_horizon(cls, value: Any) -> int:
        number = _as_number(value)
        if number is None or number < 1 or math.isinf(number):
            raise ValueError("Time horizon must be a positive number of months")
        return math.ceil(number)

    @field_validator("capital", mode="before")
    @classmethod
    def _check_capital(cls, value: Any) -> float:
        number = _as_number(value)
        if number is None or number <= 0 or math.isinf(number):
            raise ValueError("Capital must be a positive number")
        return number

    @field_validator("experience", mode="before")
    @classmethod
    def _check_experience(cls, value: Any) -> str:
        allowed = [e.value for e in Experience]
        if value not in allowed:
            raise ValueError(f"Experience must be one of: {', '.join(allowed)}")
        return value

    @field_validator("investment_goals", mode="before")
    @classmethod
    def _default_goals(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def risk_profile_class(self) -> RiskProfileClass:
        if self.risk_tolerance <= 3:
            return RiskProfileClass.conservative
        if self.risk_tolerance <= 7:
            return RiskProfileClass.moderate
        return RiskProfileClass.aggressive


class AdviceRequest(UserProfile):
    wallet_address: str | None = None

    @field_validator("wallet_address", mode="before")
    @classmethod
    def _check_wallet_address(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        if not isinstance(value, str) or not ADDRESS_RE.match(value):
            raise ValueError("Invalid Ethereum address format")
        return value

    def profile(self) -> UserProfile:
        return UserProfile.model_validate(self.model_dump(exclude={"wallet_address"}))


class Opportunity(CamelModel):
    protocol: str
    asset: str
    apy: float
    risk_score: int
    type: OpportunityType
    suitable: bool
    impermanent_loss_pct: float | None = None


class ExpectedReturns(CamelModel):
    min: float
    max: float
    timeframe_months: int = 12


class GasCosts(CamelModel):
    """Estimated USD cost of a typical transaction of each kind."""

    swap: float
    lending: float
    liquidity_providing: float


class Recommendation(CamelModel):
    asset_allocation: dict[str, float | str]
    protocols: list[str]
    steps: list[str]
    expected_returns: ExpectedReturns
    risks: list[str]
    gas_costs: GasCosts


class MarketInsights(CamelModel):
    eth_price: float
    gas_price: float
    trend: MarketTrend
    volatility_pct: float
    rsi: float
    price_change_1d: float
    price_change_7d: float
    price_change_30d: float


class StrategyAdvice(CamelModel):
    summary: str
    allocation: dict[str, float | str]
    protocols: list[str]
    steps: list[str]
    expected_returns: ExpectedReturns
    risks: list[str]
    market_insights: MarketInsights
    top_opportunities: list[Opportunity]
    gas_costs: GasCosts
    risk_profile: RiskProfileClass
    source: AdviceSource
    timestamp: str
    disclaimer: str = DISCLAIMER


class AdviceResponse(CamelModel):
    success: bool = True
    advice: StrategyAdvice


class AdvisorState(TypedDict, total=False):
    profile: UserProfile
    wallet_address: str | None
    # gathered data
    snapshot: MarketSnapshot
    protocols: ProtocolSnapshot
    wallet_activity: WalletActivity | None
    # computed
    opportunities: list[Opportunity]
    recommendation: Recommendation
    prompt: str
    # generation
    raw_advice: str
    source: AdviceSource
    advice: StrategyAdvice
