"""
Classical technical indicators: EMA, RSI, ATR and MACD, plus a candle range
volatility regime.

All functions are total: short inputs return a documented fallback value
(mean, neutral 50, zero) instead of raising.
"""

from typing import List, Sequence

import numpy as np

from smcsignals.config import IndicatorConfig
from smcsignals.models import Candle, IndicatorSnapshot, MACDResult, MACDTrend, Volatility


def ema(values: Sequence[float], period: int) -> float:
    """
    Exponential moving average of the whole series, evaluated at the last value.

    Seeds with the simple mean of the first `period` values. When the series is
    shorter than `period` the simple mean of the series is returned instead.

    Args:
        values: Price series, oldest first
        period: EMA period

    Returns:
        EMA value (0.0 for an empty series)
    """
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        return 0.0
    if data.size < period:
        return float(data.mean())

    k = 2.0 / (period + 1)
    result = float(data[:period].mean())
    for x in data[period:]:
        result = (float(x) - result) * k + result
    return result


def ema_series(values: Sequence[float], period: int) -> np.ndarray:
    """
    EMA evaluated at every position.

    The first `period` entries hold the running mean of the values seen so far,
    after which the EMA recurrence takes over.
    """
    data = np.asarray(values, dtype=float)
    result = np.zeros(data.size, dtype=float)
    if data.size == 0:
        return result

    k = 2.0 / (period + 1)
    current = 0.0
    for i in range(data.size):
        if i < period:
            current = float(data[:i + 1].mean())
        else:
            current = (float(data[i]) - current) * k + current
        result[i] = current
    return result


def rsi(closes: Sequence[float], period: int = 14) -> float:
    """
    Relative Strength Index with Wilder smoothing.

    Returns:
        RSI in [0, 100]; 50.0 when fewer than period + 1 closes,
        100.0 when there were no losses
    """
    data = np.asarray(closes, dtype=float)
    if data.size < period + 1:
        return 50.0

    changes = np.diff(data)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = float(gains[:period].sum()) / period
    avg_loss = float(losses[:period].sum()) / period
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + float(gain)) / period
        avg_loss = (avg_loss * (period - 1) + float(loss)) / period

    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def true_ranges(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]) -> np.ndarray:
    """True range for every candle after the first."""
    high = np.asarray(highs, dtype=float)
    low = np.asarray(lows, dtype=float)
    close = np.asarray(closes, dtype=float)
    if high.size < 2:
        return np.zeros(0, dtype=float)

    prev_close = close[:-1]
    return np.maximum(
        high[1:] - low[1:],
        np.maximum(np.abs(high[1:] - prev_close), np.abs(low[1:] - prev_close)),
    )


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14
) -> float:
    """
    Average True Range with Wilder smoothing.

    Returns:
        ATR value; 0.0 with fewer than 2 candles, the plain mean of the true
        ranges when fewer than `period` of them exist
    """
    trs = true_ranges(highs, lows, closes)
    if trs.size == 0:
        return 0.0
    if trs.size < period:
        return float(trs.mean())

    result = float(trs[:period].mean())
    for tr in trs[period:]:
        result = (result * (period - 1) + float(tr)) / period
    return result


def _classify_histogram(histogram: float, previous: float) -> MACDTrend:
    if histogram > 0:
        return MACDTrend.BULLISH if histogram > previous else MACDTrend.BULLISH_WEAKENING
    if histogram < 0:
        return MACDTrend.BEARISH if histogram < previous else MACDTrend.BEARISH_WEAKENING
    return MACDTrend.NEUTRAL


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9
) -> MACDResult:
    """
    MACD line, signal line and histogram at the last close.

    The signal line is the EMA of the MACD line starting where the slow EMA
    has a full window. Returns a zeroed NEUTRAL result when fewer than
    slow + signal_period closes are available.
    """
    data = np.asarray(closes, dtype=float)
    if data.size < slow + signal_period:
        return MACDResult()

    line_series = ema_series(data, fast) - ema_series(data, slow)
    signal_series = ema_series(line_series[slow - 1:], signal_period)

    line = float(line_series[-1])
    signal = float(signal_series[-1])
    histogram = line - signal
    previous = float(line_series[-2] - signal_series[-2]) if signal_series.size > 1 else 0.0

    return MACDResult(
        line=line,
        signal=signal,
        histogram=histogram,
        trending=_classify_histogram(histogram, previous),
    )


def classify_volatility(
    highs: Sequence[float],
    lows: Sequence[float],
    window: int = 10,
    high_ratio: float = 1.3,
    low_ratio: float = 0.7
) -> Volatility:
    """
    Compare the mean range of the last `window` candles with the mean range
    of the whole series.

    Returns:
        HIGH above average * high_ratio, LOW below average * low_ratio,
        NORMAL otherwise, UNKNOWN for an empty series
    """
    ranges = np.asarray(highs, dtype=float) - np.asarray(lows, dtype=float)
    if ranges.size == 0:
        return Volatility.UNKNOWN

    average = float(ranges.mean())
    recent = float(ranges[-window:].mean())
    if recent > average * high_ratio:
        return Volatility.HIGH
    if recent < average * low_ratio:
        return Volatility.LOW
    return Volatility.NORMAL


def compute_indicators(candles: Sequence[Candle], config: IndicatorConfig) -> IndicatorSnapshot:
    """Evaluate every indicator on the latest candle."""
    highs: List[float] = [c.high for c in candles]
    lows: List[float] = [c.low for c in candles]
    closes: List[float] = [c.close for c in candles]

    return IndicatorSnapshot(
        current_price=closes[-1] if closes else 0.0,
        ema20=ema(closes, config.ema_fast),
        ema50=ema(closes, config.ema_mid),
        ema200=ema(closes, config.ema_slow),
        rsi=rsi(closes, config.rsi_period),
        atr=atr(highs, lows, closes, config.atr_period),
        macd=macd(closes, config.macd_fast, config.macd_slow, config.macd_signal),
        volatility=classify_volatility(
            highs, lows, config.volatility_window,
            config.volatility_high_ratio, config.volatility_low_ratio,
        ),
    )
