"""
Tests for the end-to-end signal pipeline.

Tests cover:
- Input validation and insufficient data handling
- Fault conversion at the pipeline boundary
- Determinism across repeated runs
- Trend scenarios (rising, falling, flat) with liquidity context
- WAIT gating against confluence
"""

import logging
import math

import pytest

from conftest import make_candle
from smcsignals import analyze_candles, candles_from_dataframe
from smcsignals.config import AnalysisConfig
from smcsignals.models import AnalysisStatus, PriceZone, SignalDirection, Trend, Volatility
from smcsignals.pipeline import SignalPipeline
from smcsignals.schemas import to_report


def loose_threshold_config():
    """Label confluence from 40% so trending fixtures produce trades."""
    return AnalysisConfig().with_overrides(confluence={"direction_threshold": 40})


class TestPipelineInput:
    """Tests for input handling at the pipeline boundary."""

    def test_insufficient_data(self, rising_candles):
        result = analyze_candles(rising_candles[:10])

        assert result.status == AnalysisStatus.INSUFFICIENT_DATA
        assert result.signal.direction == SignalDirection.WAIT
        assert result.signal.rationale == "Insufficient data"
        assert result.current_price == rising_candles[9].close
        assert result.structure is None
        assert result.confluence is None

    def test_empty_input(self):
        result = analyze_candles([])
        assert result.status == AnalysisStatus.INSUFFICIENT_DATA
        assert result.current_price is None

    def test_broken_envelope_is_invalid(self, rising_candles):
        candles = list(rising_candles)
        candles[5] = make_candle(5, 105.0, 104.0, 103.0, 105.5)

        result = analyze_candles(candles)

        assert result.status == AnalysisStatus.INVALID_INPUT
        assert result.signal.direction == SignalDirection.WAIT
        assert "Candle 5" in result.error

    def test_decreasing_time_is_invalid(self, rising_candles):
        candles = list(rising_candles)
        candles[10], candles[11] = candles[11], candles[10]
        assert analyze_candles(candles).status == AnalysisStatus.INVALID_INPUT

    def test_missing_field_is_invalid(self, rising_candles):
        rows = [
            {"time": c.time, "open": c.open, "high": c.high, "low": c.low, "close": c.close, "volume": c.volume}
            for c in rising_candles
        ]
        del rows[3]["close"]

        result = analyze_candles(rows)

        assert result.status == AnalysisStatus.INVALID_INPUT
        assert "close" in result.error

    def test_non_finite_value_is_invalid(self, rising_candles):
        rows = [
            {"time": c.time, "open": c.open, "high": c.high, "low": c.low, "close": c.close, "volume": c.volume}
            for c in rising_candles
        ]
        rows[0]["volume"] = math.nan
        assert analyze_candles(rows).status == AnalysisStatus.INVALID_INPUT

    @pytest.mark.parametrize("candles", [None, 5, 3.5])
    def test_non_iterable_input_is_invalid(self, candles):
        result = analyze_candles(candles)

        assert result.status == AnalysisStatus.INVALID_INPUT
        assert result.signal.direction == SignalDirection.WAIT
        assert "iterable" in result.error

    def test_nan_time_is_invalid(self, rising_candles):
        rows = [
            {"time": float(c.time), "open": c.open, "high": c.high, "low": c.low, "close": c.close, "volume": c.volume}
            for c in rising_candles
        ]
        # candle 11 is earlier than candle 9; a NaN between them would hide it
        rows[10]["time"] = math.nan
        rows[11]["time"] = 3.0

        result = analyze_candles(rows)

        assert result.status == AnalysisStatus.INVALID_INPUT
        assert "Candle 10" in result.error

    def test_failing_candle_source_becomes_error(self, rising_candles):
        def broken_source():
            yield rising_candles[0]
            raise RuntimeError("feed dropped")

        result = analyze_candles(broken_source())

        assert result.status == AnalysisStatus.ERROR
        assert result.signal.rationale == "Analysis error: feed dropped"

    def test_mappings_are_accepted(self, rising_candles):
        rows = [
            {"time": c.time, "open": c.open, "high": c.high, "low": c.low, "close": c.close, "volume": c.volume}
            for c in rising_candles
        ]
        assert analyze_candles(rows) == analyze_candles(rising_candles)

    def test_dataframe_input(self, rising_dataframe, rising_candles):
        result = analyze_candles(candles_from_dataframe(rising_dataframe))

        assert result.status == AnalysisStatus.OK
        assert result.structure.trend == Trend.BULLISH
        assert result.signal == analyze_candles(rising_candles).signal

    def test_invalid_input_is_logged(self, rising_candles, caplog):
        candles = list(rising_candles)
        candles[5] = make_candle(5, 105.0, 104.0, 103.0, 105.5)

        with caplog.at_level(logging.WARNING, logger="smcsignals.pipeline"):
            analyze_candles(candles)

        assert "Rejected candle input" in caplog.text

    def test_invalid_config_is_rejected(self):
        config = AnalysisConfig().with_overrides(signal={"min_confidence": 150})
        with pytest.raises(ValueError):
            SignalPipeline(config)


class TestPipelineFaults:
    """Tests for conversion of unexpected errors."""

    def test_stage_error_becomes_wait(self, rising_candles, monkeypatch, caplog):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("smcsignals.pipeline.score_bias", explode)

        with caplog.at_level(logging.ERROR, logger="smcsignals.pipeline"):
            result = analyze_candles(rising_candles)

        assert result.status == AnalysisStatus.ERROR
        assert result.signal.direction == SignalDirection.WAIT
        assert result.signal.rationale == "Analysis error: boom"
        assert result.error == "boom"
        assert "Signal pipeline failed" in caplog.text


class TestPipelineScenarios:
    """Tests for full runs over synthetic series."""

    def test_rising_series_is_bullish(self, rising_candles):
        result = analyze_candles(rising_candles)

        assert result.status == AnalysisStatus.OK
        assert result.structure.trend == Trend.BULLISH
        assert result.bias.direction == Trend.BULLISH

    def test_liquidity_is_reported(self, rising_candles):
        result = analyze_candles(rising_candles)

        assert result.liquidity.zone == PriceZone.PREMIUM
        assert result.liquidity.sweep is True
        assert len(result.liquidity_pools) == 10
        assert result.indicators.volatility == Volatility.NORMAL

    def test_falling_series_is_bearish(self, falling_candles):
        result = analyze_candles(falling_candles)

        assert result.structure.trend == Trend.BEARISH
        assert result.bias.direction == Trend.BEARISH

    def test_flat_series_waits(self, flat_candles):
        result = analyze_candles(flat_candles)

        assert result.status == AnalysisStatus.OK
        assert result.structure.swing_highs == ()
        assert result.structure.swing_lows == ()
        assert result.structure.trend == Trend.NEUTRAL
        assert result.confluence.confidence == 0
        assert result.signal.direction == SignalDirection.WAIT
        assert result.liquidity is None
        assert result.liquidity_pools == ()

    def test_rising_series_buys_with_loose_threshold(self, rising_candles):
        result = analyze_candles(rising_candles, loose_threshold_config())
        signal = result.signal

        assert signal.direction == SignalDirection.BUY
        assert signal.entry == 139.0
        # no order blocks in a one-way series, so the stop sits under the last swing low
        assert signal.rationale.startswith("Buy from swing low support | Structure: BULLISH")
        assert signal.stop_loss < 127.5
        assert signal.stop_loss < signal.entry < signal.tp1 < signal.tp2 < signal.tp3
        assert signal.risk_reward == 2.5

    def test_falling_series_sells_with_loose_threshold(self, falling_candles):
        result = analyze_candles(falling_candles, loose_threshold_config())
        signal = result.signal

        assert signal.direction == SignalDirection.SELL
        assert signal.rationale.startswith("Sell from swing high resistance | Structure: BEARISH")
        assert signal.stop_loss > 172.5
        assert signal.stop_loss > signal.entry > signal.tp1 > signal.tp2 > signal.tp3

    @pytest.mark.parametrize("fixture_name", ["rising_candles", "falling_candles", "flat_candles"])
    def test_wait_iff_gate(self, request, fixture_name):
        candles = request.getfixturevalue(fixture_name)
        for config in (AnalysisConfig(), loose_threshold_config()):
            result = analyze_candles(candles, config)
            confluence = result.confluence

            gated = confluence.confidence < 40 or confluence.direction.value == "WAIT"
            assert (result.signal.direction == SignalDirection.WAIT) == gated
            if not gated:
                expected = SignalDirection.BUY if result.bias.direction == Trend.BULLISH else SignalDirection.SELL
                assert result.signal.direction == expected

    @pytest.mark.parametrize("fixture_name", ["rising_candles", "falling_candles", "flat_candles"])
    def test_value_bounds(self, request, fixture_name):
        result = analyze_candles(request.getfixturevalue(fixture_name))

        assert 0.0 <= result.indicators.rsi <= 100.0
        assert result.indicators.atr >= 0.0
        assert 0 <= result.confluence.confidence <= 100

    def test_repeated_runs_are_identical(self, rising_candles):
        pipeline = SignalPipeline()
        first = to_report(pipeline.run(rising_candles)).model_dump_json()
        second = to_report(pipeline.run(rising_candles)).model_dump_json()
        third = to_report(analyze_candles(tuple(rising_candles))).model_dump_json()

        assert first == second == third
