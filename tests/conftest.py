"""
Pytest configuration and shared candle fixtures for SMC Signals tests.

Synthetic series are fully deterministic:
- rising: closes step up by 1, with high spikes every 7 candles (from index 3)
  and low dips every 7 candles (from index 6), giving higher highs and higher lows
- falling: the mirror image
- flat: open == high == low == close for every candle
"""

import os
import sys

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from smcsignals.models import Candle


SPIKE = 5.0


def make_candle(index, open_, high, low, close, volume=1000.0):
    return Candle(time=index, open=open_, high=high, low=low, close=close, volume=volume)


def trending_candles(n=40, step=1.0, start=100.0):
    """
    Build a trending series with regular swing points.

    Each candle opens at the previous close. Extreme candles get a wick of
    SPIKE beyond the base range: with-trend extremes at 3, 10, 17, ...
    and counter-trend extremes at 6, 13, 20, ...
    """
    closes = start + step * np.arange(n)
    candles = []
    for i, close in enumerate(closes):
        open_ = close - step
        if step > 0:
            high, low = close + 0.5, close - 1.5
            if i % 7 == 3:
                high += SPIKE
            if i % 7 == 6:
                low -= SPIKE
        else:
            high, low = close + 1.5, close - 0.5
            if i % 7 == 3:
                low -= SPIKE
            if i % 7 == 6:
                high += SPIKE
        candles.append(make_candle(i, float(open_), float(high), float(low), float(close)))
    return candles


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def rising_candles():
    """40 candles, close 100 -> 139."""
    return trending_candles(40, step=1.0, start=100.0)


@pytest.fixture
def falling_candles():
    """40 candles, close 200 -> 161."""
    return trending_candles(40, step=-1.0, start=200.0)


@pytest.fixture
def flat_candles():
    return [make_candle(i, 100.0, 100.0, 100.0, 100.0) for i in range(30)]


@pytest.fixture
def gap_example_candles():
    """
    Five candles with a bullish imbalance between the third candle's high
    and the fifth candle's low. The third candle is not a valid OHLC
    envelope (high below open), so it bypasses validation.
    """
    rows = [
        (100, 102, 99, 101),
        (101, 103, 100, 102),
        (102, 99, 97, 98),
        (98, 104, 97, 103),
        (103, 105, 102, 104),
    ]
    return [make_candle(i, *map(float, row)) for i, row in enumerate(rows)]


@pytest.fixture
def rising_dataframe(rising_candles):
    """Rising series as an OHLCV DataFrame with an hourly DatetimeIndex."""
    index = pd.date_range("2024-01-01 00:00", periods=len(rising_candles), freq="h")
    return pd.DataFrame(
        {
            "open": [c.open for c in rising_candles],
            "high": [c.high for c in rising_candles],
            "low": [c.low for c in rising_candles],
            "close": [c.close for c in rising_candles],
            "volume": [c.volume for c in rising_candles],
        },
        index=index,
    )
