"""
Tests for the classical technical indicators.

Tests cover:
- EMA seeding and the short-series mean fallback
- RSI sentinels, Wilder smoothing and bounds
- ATR true range, partial mean and Wilder smoothing
- MACD histogram classification
- Volatility regime from candle ranges
"""

import numpy as np
import pytest

from smcsignals.config import IndicatorConfig
from smcsignals.indicators.technical import (
    _classify_histogram,
    atr,
    classify_volatility,
    compute_indicators,
    ema,
    ema_series,
    macd,
    rsi,
    true_ranges,
)
from smcsignals.models import MACDResult, MACDTrend, Volatility


class TestEMA:
    """Tests for the exponential moving average."""

    def test_short_series_returns_mean(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert ema(values, 10) == np.mean(values)

    def test_empty_series(self):
        assert ema([], 20) == 0.0

    def test_constant_series(self):
        assert ema([5.0] * 50, 20) == pytest.approx(5.0)

    def test_linear_series_lags_by_half_period(self):
        """A unit-slope series settles (period - 1) / 2 below the last value."""
        closes = [100.0 + i for i in range(40)]
        assert ema(closes, 20) == pytest.approx(139.0 - 9.5)

    def test_exact_period_is_seed_mean(self):
        values = [2.0, 4.0, 6.0]
        assert ema(values, 3) == pytest.approx(4.0)

    def test_series_matches_scalar_at_end(self):
        closes = [100.0 + np.sin(i / 3.0) for i in range(60)]
        series = ema_series(closes, 20)
        assert len(series) == 60
        assert series[-1] == pytest.approx(ema(closes, 20))

    def test_series_starts_with_running_mean(self):
        series = ema_series([2.0, 4.0, 6.0, 8.0], 3)
        assert series[0] == pytest.approx(2.0)
        assert series[1] == pytest.approx(3.0)
        assert series[2] == pytest.approx(4.0)
        assert series[3] == pytest.approx(6.0)


class TestRSI:
    """Tests for the relative strength index."""

    def test_insufficient_data_is_neutral(self):
        assert rsi([100.0 + i for i in range(14)], 14) == 50.0

    def test_no_losses_is_100(self):
        assert rsi([100.0 + i for i in range(30)], 14) == 100.0

    def test_flat_series_is_100(self):
        assert rsi([100.0] * 30, 14) == 100.0

    def test_no_gains_is_0(self):
        assert rsi([100.0 - i for i in range(30)], 14) == pytest.approx(0.0)

    def test_balanced_seed(self):
        assert rsi([1.0, 2.0, 1.0], period=2) == pytest.approx(50.0)

    def test_wilder_smoothing(self):
        # seed gain/loss 0.5/0.5, then a +1 change -> 0.75/0.25
        assert rsi([1.0, 2.0, 1.0, 2.0], period=2) == pytest.approx(75.0)

    def test_bounded(self):
        closes = [100.0 + 5 * np.sin(i / 2.0) + (i % 3) for i in range(80)]
        value = rsi(closes, 14)
        assert 0.0 <= value <= 100.0


class TestATR:
    """Tests for the average true range."""

    def test_single_candle_is_zero(self):
        assert atr([10.0], [9.0], [9.5]) == 0.0

    def test_true_range_uses_previous_close(self):
        trs = true_ranges([10.0, 12.0], [8.0, 11.0], [9.0, 11.5])
        # gap up: |12 - 9| beats the 1.0 candle range
        assert trs.tolist() == [3.0]

    def test_partial_mean(self):
        assert atr([10.0, 12.0], [8.0, 9.0], [9.0, 11.0], period=14) == pytest.approx(3.0)

    def test_wilder_smoothing(self):
        highs = [11.0, 11.0, 12.0, 13.0]
        lows = [9.0, 9.0, 8.0, 7.0]
        closes = [10.0, 10.0, 10.0, 10.0]
        # true ranges 2, 4, 6: seed mean(2, 4) = 3, then (3 * 1 + 6) / 2
        assert atr(highs, lows, closes, period=2) == pytest.approx(4.5)

    def test_non_negative(self, rising_candles):
        value = atr(
            [c.high for c in rising_candles],
            [c.low for c in rising_candles],
            [c.close for c in rising_candles],
        )
        assert value > 0


class TestMACD:
    """Tests for MACD and its histogram classification."""

    def test_short_series_is_zeroed(self):
        result = macd([100.0 + i for i in range(34)])
        assert result == MACDResult()
        assert result.trending == MACDTrend.NEUTRAL

    def test_constant_series_is_neutral(self):
        result = macd([100.0] * 60)
        assert result.line == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)
        assert result.trending == MACDTrend.NEUTRAL

    def test_rising_series_has_positive_line(self):
        result = macd([100.0 + i for i in range(60)])
        assert result.line > 0
        assert result.histogram == pytest.approx(result.line - result.signal)

    def test_falling_series_has_negative_line(self):
        result = macd([200.0 - i for i in range(60)])
        assert result.line < 0

    @pytest.mark.parametrize("histogram,previous,expected", [
        (1.0, 0.5, MACDTrend.BULLISH),
        (0.5, 1.0, MACDTrend.BULLISH_WEAKENING),
        (-1.0, -0.5, MACDTrend.BEARISH),
        (-0.5, -1.0, MACDTrend.BEARISH_WEAKENING),
        (0.0, 1.0, MACDTrend.NEUTRAL),
    ])
    def test_histogram_classification(self, histogram, previous, expected):
        assert _classify_histogram(histogram, previous) == expected


def ranges_to_bars(ranges):
    lows = [100.0] * len(ranges)
    highs = [100.0 + r for r in ranges]
    return highs, lows


class TestVolatility:
    """Tests for classify_volatility."""

    def test_empty_is_unknown(self):
        assert classify_volatility([], []) == Volatility.UNKNOWN

    def test_uniform_ranges_are_normal(self):
        assert classify_volatility(*ranges_to_bars([2.0] * 30)) == Volatility.NORMAL

    def test_expanding_ranges_are_high(self):
        # average 50 / 30, recent 3.0
        assert classify_volatility(*ranges_to_bars([1.0] * 20 + [3.0] * 10)) == Volatility.HIGH

    def test_contracting_ranges_are_low(self):
        assert classify_volatility(*ranges_to_bars([3.0] * 20 + [1.0] * 10)) == Volatility.LOW

    def test_ratios_are_configurable(self):
        bars = ranges_to_bars([1.0] * 20 + [3.0] * 10)
        assert classify_volatility(*bars, high_ratio=2.0) == Volatility.NORMAL

    def test_flat_series_is_normal(self):
        assert classify_volatility(*ranges_to_bars([0.0] * 5)) == Volatility.NORMAL


class TestComputeIndicators:
    """Tests for the indicator snapshot."""

    def test_snapshot_on_rising_series(self, rising_candles):
        snapshot = compute_indicators(rising_candles, IndicatorConfig())

        assert snapshot.current_price == 139.0
        assert snapshot.ema20 == pytest.approx(129.5)
        # fewer than 50 / 200 closes: both fall back to the mean
        assert snapshot.ema50 == pytest.approx(119.5)
        assert snapshot.ema200 == pytest.approx(119.5)
        assert snapshot.rsi == 100.0
        assert snapshot.atr > 0
        assert snapshot.volatility == Volatility.NORMAL

    def test_custom_periods(self, rising_candles):
        config = IndicatorConfig(ema_fast=5, ema_mid=10, ema_slow=20)
        snapshot = compute_indicators(rising_candles, config)
        assert snapshot.ema20 == pytest.approx(139.0 - 2.0)
        assert snapshot.ema50 == pytest.approx(139.0 - 4.5)
