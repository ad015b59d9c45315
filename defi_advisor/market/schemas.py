from enum import StrEnum

from pydantic import Field

from defi_advisor.protocols.schemas import ProtocolSnapshot
from defi_advisor.schemas import CamelModel


class MarketTrend(StrEnum):
    bullish = "bullish"
    bearish = "bearish"
    neutral = "neutral"
    overbought = "overbought"
    oversold = "oversold"


class PriceHistory(CamelModel):
    symbol: str
    closes: list[float]
    source: str


class MarketSnapshot(CamelModel):
    eth_price_usd: float
    gas_price_gwei: float
    trend: MarketTrend = MarketTrend.neutral
    volatility_pct: float | None = None
    rsi: float | None = None
    sma_short: float | None = None
    sma_long: float | None = None
    price_change_1d: float | None = None
    price_change_7d: float | None = None
    price_change_30d: float | None = None
    # field name -> source that produced it ("chainlink", "etherscan", "fallback", ...)
    sources: dict[str, str] = Field(default_factory=dict)
    timestamp: str = ""


class MarketData(CamelModel):
    eth_price: float
    gas_price: float
    market_trend: MarketTrend
    market_details: MarketSnapshot
    protocol_data: ProtocolSnapshot


class MarketResponse(CamelModel):
    success: bool = True
    data: MarketData
