"""
Domain service: Price-derived sentiment scores.

Pure business logic turning a series of daily closes into a sentiment
score in [0, 1]. No IO. No side effects.

All functions take closes ordered oldest first and work on a pandas
Series internally.

Scores:
    - technical_score: trend (moving averages), momentum (returns) and
      mean reversion (RSI) around a neutral 0.5
    - volatility_score: a volatility proxy that only leans when the
      market is moving
"""

import math
from typing import Sequence

import pandas as pd

NEUTRAL = 0.5

TREND_ABOVE_SMA5 = 0.10
TREND_ABOVE_SMA20 = 0.15
TREND_GOLDEN = 0.15
MOMENTUM_CAP = 0.15
MOMENTUM_1D_GAIN = 5.0
MOMENTUM_5D_GAIN = 3.0
RSI_PERIOD = 14
RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
RSI_ADJUSTMENT = 0.10

VOLATILITY_WINDOW = 5
VOLATILITY_THRESHOLD = 0.03
VOLATILE_UP_SCORE = 0.7
VOLATILE_DOWN_SCORE = 0.3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _series(closes: Sequence[float]) -> pd.Series:
    return pd.Series(list(closes), dtype="float64")


def simple_moving_average(closes: Sequence[float], window: int) -> float:
    """Mean of the last ``window`` closes (or all of them when fewer)."""
    return float(_series(closes).rolling(window=window, min_periods=1).mean().iloc[-1])


def period_return(closes: Sequence[float], periods: int) -> float:
    """Fractional change from ``periods`` closes back to the latest close."""
    if len(closes) <= periods:
        return 0.0
    close = _series(closes)
    change = float((close / close.shift(periods) - 1).iloc[-1])
    return change if math.isfinite(change) else 0.0


def relative_strength_index(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """RSI over the last ``period`` changes using simple averages.

    Returns 50 with fewer than two closes or no movement at all, and 100
    when there were gains but no losses.
    """
    delta = _series(closes).tail(period + 1).diff().dropna()
    if delta.empty:
        return 50.0

    avg_gain = float(delta.clip(lower=0).mean())
    avg_loss = float(-delta.clip(upper=0).mean())
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def technical_score(closes: Sequence[float]) -> float:
    """Score price action around a neutral 0.5.

    Args:
        closes: Daily closes, oldest first. At least two are needed for
            anything but the neutral score.

    Returns:
        Score clamped to [0, 1].
    """
    if len(closes) < 2:
        return NEUTRAL

    price = closes[-1]
    sma5 = simple_moving_average(closes, 5)
    sma20 = simple_moving_average(closes, 20)

    score = NEUTRAL
    if price > sma5:
        score += TREND_ABOVE_SMA5
    if price > sma20:
        score += TREND_ABOVE_SMA20
    if sma5 > sma20:
        score += TREND_GOLDEN

    score += _clamp(period_return(closes, 1) * MOMENTUM_1D_GAIN, -MOMENTUM_CAP, MOMENTUM_CAP)
    score += _clamp(period_return(closes, 4) * MOMENTUM_5D_GAIN, -MOMENTUM_CAP, MOMENTUM_CAP)

    rsi = relative_strength_index(closes)
    if rsi < RSI_OVERSOLD:
        score += RSI_ADJUSTMENT
    elif rsi > RSI_OVERBOUGHT:
        score -= RSI_ADJUSTMENT

    return _clamp(score, 0.0, 1.0)


def daily_returns(closes: Sequence[float]) -> list[float]:
    close = _series(closes)
    previous = close.shift(1)
    returns = (close - previous) / previous
    return returns[previous != 0].dropna().tolist()


def volatility_score(
    closes: Sequence[float], threshold: float = VOLATILITY_THRESHOLD
) -> float:
    """Lean with the latest move when recent volatility is high.

    Volatility is the population standard deviation of the daily returns
    inside the last five closes.

    Returns:
        0.7 for a volatile up-move, 0.3 for a volatile down-move, else 0.5.
    """
    returns = pd.Series(daily_returns(closes[-VOLATILITY_WINDOW:]), dtype="float64")
    if len(returns) < 2:
        return NEUTRAL

    if returns.std(ddof=0) > threshold:
        return VOLATILE_UP_SCORE if returns.iloc[-1] > 0 else VOLATILE_DOWN_SCORE
    return NEUTRAL
