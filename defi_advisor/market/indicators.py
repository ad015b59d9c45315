"""Technical indicators over an ordered price series (most recent last).

Every function is pure and total: empty or undersized input returns a
documented neutral value instead of raising.
"""

import math
from collections.abc import Sequence

NEUTRAL_RSI = 50.0
OVERBOUGHT_RSI = 70.0
OVERSOLD_RSI = 30.0


def sma(prices: Sequence[float], period: int) -> list[float]:
    """Simple moving average of each sliding window of ``period`` values.

    Shorter input yields a single element holding the last price; empty
    input yields ``[0.0]``.
    """
    if not prices:
        return [0.0]
    if period <= 0 or len(prices) < period:
        return [float(prices[-1])]

    window_sum = float(sum(prices[:period]))
    averages = [window_sum / period]
    for i in range(period, len(prices)):
        window_sum += prices[i] - prices[i - period]
        averages.append(window_sum / period)
    return averages


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def rsi(prices: Sequence[float], period: int = 14) -> list[float]:
    """Relative Strength Index with Wilder smoothing.

    Returns ``[50.0]`` when fewer than ``period + 1`` prices are supplied.
    """
    if period <= 0 or len(prices) < period + 1:
        return [NEUTRAL_RSI]

    deltas = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
    gains = [d if d > 0 else 0.0 for d in deltas]
    losses = [-d if d < 0 else 0.0 for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    values = [_rsi_value(avg_gain, avg_loss)]

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        values.append(_rsi_value(avg_gain, avg_loss))

    return values


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation (divides by N)."""
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def pct_change(prices: Sequence[float], days: int) -> float:
    """Percent change between the latest price and the one ``days`` steps back."""
    if days <= 0 or len(prices) <= days:
        return 0.0
    past = prices[-1 - days]
    if not past:
        return 0.0
    return (prices[-1] - past) / past * 100


def volatility_pct(prices: Sequence[float]) -> float:
    """Population std-dev of step-to-step returns, in percent."""
    returns = [
        (prices[i] - prices[i - 1]) / prices[i - 1]
        for i in range(1, len(prices))
        if prices[i - 1]
    ]
    return std_dev(returns) * 100


def classify_trend(price: float, sma_short: float, sma_long: float, current_rsi: float) -> str:
    """Map price vs moving averages and RSI to a trend label."""
    if current_rsi > OVERBOUGHT_RSI:
        return "overbought"
    if current_rsi < OVERSOLD_RSI:
        return "oversold"
    if not sma_short or not sma_long:
        return "neutral"
    if price > sma_short > sma_long:
        return "bullish"
    if price < sma_short < sma_long:
        return "bearish"
    return "neutral"
