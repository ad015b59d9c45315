import asyncio
import math
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from defi_advisor import fallbacks
from defi_advisor.fetching import FALLBACK_SOURCE, first_available
from defi_advisor.market import indicators
from defi_advisor.market.providers.base import (
    EthPriceProvider,
    GasPriceProvider,
    PriceHistoryProvider,
)
from defi_advisor.market.schemas import MarketSnapshot, MarketTrend, PriceHistory

logger = structlog.get_logger()

ETH_SYMBOL = "ETH-USD"
HISTORY_DAYS = 90
SMA_SHORT_PERIOD = 7
SMA_LONG_PERIOD = 30
RSI_PERIOD = 14
VOLATILITY_WINDOW = 30


class MarketService:
    def __init__(
        self,
        price_providers: Sequence[EthPriceProvider],
        gas_providers: Sequence[GasPriceProvider],
        history_provider: PriceHistoryProvider | None,
        price_timeout: float = 8.0,
        history_timeout: float = 10.0,
    ) -> None:
        self._price_providers = list(price_providers)
        self._gas_providers = list(gas_providers)
        self._history_provider = history_provider
        self._price_timeout = price_timeout
        self._history_timeout = history_timeout

    async def get_eth_price(self) -> tuple[float, str]:
        return await first_available(
            "eth_price",
            [(p.name, p.get_eth_price) for p in self._price_providers],
            self._price_timeout,
            fallbacks.ETH_PRICE_USD,
        )

    async def get_gas_price(self) -> tuple[float, str]:
        return await first_available(
            "gas_price",
            [(p.name, p.get_gas_price) for p in self._gas_providers],
            self._price_timeout,
            fallbacks.GAS_PRICE_GWEI,
        )

    async def get_history(self) -> PriceHistory | None:
        if self._history_provider is None:
            return None
        provider = self._history_provider
        history, _ = await first_available(
            "price_history",
            [(provider.name, lambda: provider.get_history(ETH_SYMBOL, HISTORY_DAYS))],
            self._history_timeout,
            None,
        )
        return history

    async def get_snapshot(self) -> MarketSnapshot:
        (price, price_source), (gas, gas_source), history = await asyncio.gather(
            self.get_eth_price(),
            self.get_gas_price(),
            self.get_history(),
        )
        snapshot = build_snapshot(price, gas, history)
        snapshot.sources.update({"ethPrice": price_source, "gasPrice": gas_source})
        logger.info(
            "market_snapshot_built",
            eth_price=snapshot.eth_price_usd,
            gas_gwei=snapshot.gas_price_gwei,
            trend=snapshot.trend,
            sources=snapshot.sources,
        )
        return snapshot


def build_snapshot(
    eth_price: float, gas_price: float, history: PriceHistory | None
) -> MarketSnapshot:
    """Derive indicators from the price history, or use fallback constants without one."""
    timestamp = datetime.now(UTC).isoformat()
    closes = history.closes if history else []

    if len(closes) <= RSI_PERIOD:
        return MarketSnapshot(
            eth_price_usd=eth_price,
            gas_price_gwei=gas_price,
            trend=MarketTrend.neutral,
            volatility_pct=fallbacks.VOLATILITY_PCT,
            rsi=fallbacks.RSI,
            sma_short=eth_price,
            sma_long=eth_price,
            price_change_1d=fallbacks.PRICE_CHANGE_1D,
            price_change_7d=fallbacks.PRICE_CHANGE_7D,
            price_change_30d=fallbacks.PRICE_CHANGE_30D,
            sources={"history": FALLBACK_SOURCE},
            timestamp=timestamp,
        )

    sma_short = indicators.sma(closes, SMA_SHORT_PERIOD)[-1]
    sma_long = indicators.sma(closes, SMA_LONG_PERIOD)[-1]
    current_rsi = indicators.rsi(closes, RSI_PERIOD)[-1]
    # daily return std-dev, annualised over a 365-day crypto year
    volatility = indicators.volatility_pct(closes[-(VOLATILITY_WINDOW + 1):]) * math.sqrt(365)
    trend = indicators.classify_trend(eth_price, sma_short, sma_long, current_rsi)

    return MarketSnapshot(
        eth_price_usd=eth_price,
        gas_price_gwei=gas_price,
        trend=MarketTrend(trend),
        volatility_pct=round(volatility, 2),
        rsi=round(current_rsi, 2),
        sma_short=round(sma_short, 2),
        sma_long=round(sma_long, 2),
        price_change_1d=round(indicators.pct_change(closes, 1), 2),
        price_change_7d=round(indicators.pct_change(closes, 7), 2),
        price_change_30d=round(indicators.pct_change(closes, 30), 2),
        sources={"history": history.source if history else FALLBACK_SOURCE},
        timestamp=timestamp,
    )
