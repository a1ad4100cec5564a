"""
Tests for candle construction, validation and the DataFrame adapter.
"""

import math

import pandas as pd
import pytest

from smcsignals.models import (
    Candle,
    InvalidCandleError,
    Signal,
    SignalDirection,
    candles_from_dataframe,
    to_candle,
    validate_candles,
)


def row(time=0, open_=100.0, high=101.0, low=99.0, close=100.5, volume=10.0):
    return {"time": time, "open": open_, "high": high, "low": low, "close": close, "volume": volume}


class TestCandle:
    """Tests for the Candle dataclass."""

    def test_body_properties(self):
        candle = Candle(time=0, open=100.0, high=103.0, low=98.0, close=102.0)
        assert candle.is_bullish
        assert not candle.is_bearish
        assert candle.body == 2.0
        assert candle.body_top == 102.0
        assert candle.body_bottom == 100.0

    def test_doji_is_neither(self):
        candle = Candle(time=0, open=100.0, high=100.0, low=100.0, close=100.0)
        assert not candle.is_bullish
        assert not candle.is_bearish


class TestToCandle:
    """Tests for building candles from mappings."""

    def test_numeric_strings_are_coerced(self):
        candle = to_candle(row(open_="100", close="100.5"))
        assert candle.open == 100.0
        assert candle.close == 100.5

    def test_missing_field(self):
        data = row()
        del data["volume"]
        with pytest.raises(InvalidCandleError, match="missing field"):
            to_candle(data, 4)

    def test_none_field(self):
        with pytest.raises(InvalidCandleError, match="missing field"):
            to_candle(row(high=None))

    def test_boolean_rejected(self):
        with pytest.raises(InvalidCandleError, match="not numeric"):
            to_candle(row(volume=True))

    def test_text_rejected(self):
        with pytest.raises(InvalidCandleError, match="not numeric"):
            to_candle(row(low="low"))

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_non_finite_rejected(self, value):
        with pytest.raises(InvalidCandleError, match="not finite"):
            to_candle(row(close=value))

    @pytest.mark.parametrize("value", [math.nan, math.inf])
    def test_non_finite_time_rejected(self, value):
        with pytest.raises(InvalidCandleError, match="'time' is not finite"):
            to_candle(row(time=value), 2)

    def test_boolean_time_rejected(self):
        with pytest.raises(InvalidCandleError, match="not a timestamp"):
            to_candle(row(time=True))

    def test_unsupported_type(self):
        with pytest.raises(InvalidCandleError, match="unsupported type"):
            to_candle([0, 100, 101, 99, 100, 1])

    def test_invalid_candle_is_value_error(self):
        assert issubclass(InvalidCandleError, ValueError)


class TestValidateCandles:
    """Tests for sequence validation."""

    def test_returns_tuple(self):
        candles = validate_candles([row(0), row(1)])
        assert isinstance(candles, tuple)
        assert all(isinstance(c, Candle) for c in candles)

    def test_equal_times_allowed(self):
        assert len(validate_candles([row(5), row(5)])) == 2

    def test_decreasing_time(self):
        with pytest.raises(InvalidCandleError, match="earlier than previous"):
            validate_candles([row(5), row(4)])

    def test_string_times(self):
        candles = validate_candles([row("2024-01-01T00:00:00"), row("2024-01-01T01:00:00")])
        assert candles[1].time == "2024-01-01T01:00:00"

    def test_mixed_time_types(self):
        with pytest.raises(InvalidCandleError, match="not comparable"):
            validate_candles([row(1), row("2024-01-01")])

    @pytest.mark.parametrize("raw", [None, 7])
    def test_non_iterable_input(self, raw):
        with pytest.raises(InvalidCandleError, match="iterable of candles"):
            validate_candles(raw)

    def test_nan_time_cannot_hide_decrease(self):
        with pytest.raises(InvalidCandleError, match="Candle 1"):
            validate_candles([row(5.0), row(math.nan), row(3.0)])

    def test_high_below_close(self):
        with pytest.raises(InvalidCandleError, match="high"):
            validate_candles([row(high=100.2)])

    def test_low_above_open(self):
        with pytest.raises(InvalidCandleError, match="low"):
            validate_candles([row(low=100.2)])


class TestDataFrameAdapter:
    """Tests for candles_from_dataframe."""

    def test_index_timestamps_become_iso(self, rising_dataframe):
        candles = candles_from_dataframe(rising_dataframe)

        assert len(candles) == len(rising_dataframe)
        assert candles[0].time == "2024-01-01T00:00:00"
        assert candles[-1].close == 139.0

    def test_time_column_and_case(self):
        df = pd.DataFrame({
            "Time": [1, 2],
            "Open": [1.0, 2.0],
            "High": [2.0, 3.0],
            "Low": [0.5, 1.5],
            "Close": [1.5, 2.5],
        })
        candles = candles_from_dataframe(df)

        assert [c.time for c in candles] == [1, 2]
        assert candles[1].high == 3.0
        assert candles[0].volume == 0.0

    def test_missing_timestamp_is_rejected(self):
        df = pd.DataFrame({
            "time": [1.0, float("nan")],
            "open": [1.0, 2.0],
            "high": [2.0, 3.0],
            "low": [0.5, 1.5],
            "close": [1.5, 2.5],
        })
        with pytest.raises(InvalidCandleError, match="Candle 1: missing field"):
            candles_from_dataframe(df)

    def test_missing_column(self):
        df = pd.DataFrame({"open": [1.0], "high": [2.0], "low": [0.5]})
        with pytest.raises(InvalidCandleError, match="close"):
            candles_from_dataframe(df)


class TestSignal:
    """Tests for the Signal dataclass."""

    def test_wait_factory(self):
        signal = Signal.wait("Insufficient data", entry=101.0)

        assert signal.direction == SignalDirection.WAIT
        assert signal.entry == 101.0
        assert signal.stop_loss == 0.0
        assert signal.risk_reward == 0.0
        assert not signal.is_actionable

    def test_actionable(self):
        assert Signal(direction=SignalDirection.BUY).is_actionable
