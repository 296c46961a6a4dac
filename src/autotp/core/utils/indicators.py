# src/autotp/core/utils/indicators.py
from __future__ import annotations

from typing import Sequence

from src.autotp.core.models.enums import Trend
from src.autotp.core.models.order import HistoricalPrice
from src.autotp.core.models.params import TrendThresholds


# ---------------------------------------------------------------------
# moving averages
# ---------------------------------------------------------------------

def wma(values: Sequence[float], period: int) -> list[float]:
    """
    Linear weighted moving average, newest value weighted `period`.

    Returns one value per full window, oldest -> newest.
    Input shorter than `period` gives an empty list.
    """
    if period <= 0:
        raise ValueError("period must be > 0")

    n = len(values)
    if n < period:
        return []

    denom = period * (period + 1) / 2
    out: list[float] = []
    for end in range(period, n + 1):
        window = values[end - period:end]
        out.append(sum(v * w for v, w in zip(window, range(1, period + 1))) / denom)
    return out


def atr(highs: Sequence[float], lows: Sequence[float], period: int) -> float:
    """Volatility proxy: WMA(highs) - WMA(lows) at the newest bar."""
    h = wma(highs, period)
    l = wma(lows, period)
    if not h or not l:
        return 0.0
    return h[-1] - l[-1]


# ---------------------------------------------------------------------
# bars
# ---------------------------------------------------------------------

def get_closes(prices: Sequence[HistoricalPrice]) -> list[float]:
    return [p.close for p in prices]


def get_highs_lows(prices: Sequence[HistoricalPrice]) -> tuple[list[float], list[float]]:
    return [p.high for p in prices], [p.low for p in prices]


def get_hl_ratio(prices: Sequence[HistoricalPrice], price: float) -> float:
    """
    Position of `price` inside the high/low range of `prices`.
    0 = at the lowest low, 1 = at the highest high, 0.5 for a flat range.
    """
    if not prices:
        return 0.5
    hh = max(p.high for p in prices)
    ll = min(p.low for p in prices)
    if hh == ll:
        return 0.5
    return (price - ll) / (hh - ll)


# ---------------------------------------------------------------------
# trend
# ---------------------------------------------------------------------

def get_trend(
    closes: Sequence[float],
    period: int,
    thresholds: TrendThresholds | None = None,
) -> Trend:
    """
    Classifies the slope of WMA(closes) between the last two full windows.
    Not enough data -> NEUTRAL.
    """
    th = thresholds or TrendThresholds()
    w = wma(closes, period)
    if len(w) < 2 or w[-2] == 0:
        return Trend.NEUTRAL

    slope_pct = (w[-1] - w[-2]) / w[-2] * 100

    if slope_pct >= th.strong_up_pct:
        return Trend.STRONG_UP
    if slope_pct >= th.up_pct:
        return Trend.UP
    if slope_pct <= -th.strong_up_pct:
        return Trend.STRONG_DOWN
    if slope_pct <= -th.up_pct:
        return Trend.DOWN
    return Trend.NEUTRAL
