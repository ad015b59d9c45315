import asyncio

import structlog
import yfinance as yf

from defi_advisor.exceptions import NotFoundError, UpstreamError
from defi_advisor.market.providers.base import PriceHistoryProvider
from defi_advisor.market.schemas import PriceHistory

logger = structlog.get_logger()


def _fetch_closes(symbol: str, period: str) -> list[float]:
    """Fetch daily closing prices synchronously (to be run in a thread)."""
    hist = yf.Ticker(symbol).history(period=period, interval="1d")
    if hist.empty:
        raise NotFoundError("Ticker", symbol)
    return [float(close) for close in hist["Close"].dropna().tolist()]


class YahooFinanceProvider(PriceHistoryProvider):
    name = "yfinance"

    async def get_history(self, symbol: str, days: int) -> PriceHistory:
        try:
            closes = await asyncio.to_thread(_fetch_closes, symbol, f"{days}d")
        except Exception as exc:
            logger.error("yfinance_history_error", symbol=symbol, error=str(exc))
            raise UpstreamError(self.name, f"Failed to fetch history for {symbol}: {exc}") from exc

        logger.info("price_history_fetched", symbol=symbol, points=len(closes))
        return PriceHistory(symbol=symbol, closes=closes, source=self.name)
