"""
Signal Pipeline

Runs the analysis stages left to right over one candle sequence:

    indicators -> structure -> order blocks -> fair value gaps
    -> key levels -> liquidity -> bias -> confluence -> signal

Every failure is converted into a WAIT result at this boundary; nothing
raises out of run().
"""

import logging
from typing import Iterable, Mapping, Optional, Union

from smcsignals.config import AnalysisConfig
from smcsignals.indicators.smart_money import SmartMoneyAnalyzer
from smcsignals.indicators.technical import compute_indicators
from smcsignals.models import (
    AnalysisResult,
    AnalysisStatus,
    Candle,
    InvalidCandleError,
    Signal,
    validate_candles,
)
from smcsignals.scoring.bias import score_bias
from smcsignals.scoring.confluence import score_confluence
from smcsignals.signals.synthesizer import synthesize_signal

logger = logging.getLogger(__name__)

CandleInput = Iterable[Union[Candle, Mapping]]


class SignalPipeline:
    """
    Deterministic candle-to-signal pipeline.

    Holds only its frozen configuration and a stateless analyzer, so a single
    instance can serve concurrent callers.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid analysis config: {'; '.join(errors)}")
        self.analyzer = SmartMoneyAnalyzer(self.config)

    def run(self, candles: CandleInput) -> AnalysisResult:
        """
        Analyze a candle sequence.

        Args:
            candles: Candles (or mappings with time/open/high/low/close/volume),
                oldest first

        Returns:
            AnalysisResult; status is OK unless the input was short, invalid,
            or an unexpected error occurred, in which case the signal is WAIT
        """
        try:
            validated = validate_candles(candles)
        except InvalidCandleError as e:
            logger.warning(f"Rejected candle input: {e}")
            return AnalysisResult(
                status=AnalysisStatus.INVALID_INPUT,
                signal=Signal.wait(f"Invalid input: {e}"),
                error=str(e),
            )
        except Exception as e:
            # e.g. a candle generator failing mid-iteration
            logger.exception("Candle validation failed")
            return AnalysisResult(
                status=AnalysisStatus.ERROR,
                signal=Signal.wait(f"Analysis error: {e}"),
                error=str(e),
            )

        minimum = self.config.pipeline.min_candles
        if len(validated) < minimum:
            logger.debug(f"Insufficient data: {len(validated)} candles, need {minimum}")
            return AnalysisResult(
                status=AnalysisStatus.INSUFFICIENT_DATA,
                signal=Signal.wait("Insufficient data"),
                current_price=validated[-1].close if validated else None,
            )

        try:
            return self._analyze(validated)
        except Exception as e:
            logger.exception("Signal pipeline failed")
            return AnalysisResult(
                status=AnalysisStatus.ERROR,
                signal=Signal.wait(f"Analysis error: {e}"),
                error=str(e),
            )

    def _analyze(self, candles) -> AnalysisResult:
        cfg = self.config
        price = candles[-1].close

        indicators = compute_indicators(candles, cfg.indicators)
        logger.debug(
            f"Indicators: ema20={indicators.ema20:.5f} ema50={indicators.ema50:.5f} "
            f"rsi={indicators.rsi:.1f} atr={indicators.atr:.5f} macd={indicators.macd.trending.value} "
            f"volatility={indicators.volatility.value}"
        )

        structure = self.analyzer.analyze_structure(candles)
        logger.debug(
            f"Structure: trend={structure.trend.value} highs={len(structure.swing_highs)} "
            f"lows={len(structure.swing_lows)} bos={len(structure.breaks)} choch={len(structure.reversals)}"
        )

        zones = self.analyzer.detect_order_blocks(candles, indicators.atr)
        gaps = self.analyzer.detect_fair_value_gaps(candles)
        logger.debug(f"Order blocks: {len(zones)}, fair value gaps: {len(gaps)}")

        levels = self.analyzer.resolve_key_levels(candles, structure)
        logger.debug(f"Levels: support={levels.support} resistance={levels.resistance}")

        liquidity = self.analyzer.analyze_liquidity(candles)
        pools = self.analyzer.detect_liquidity_pools(candles, structure)
        if liquidity is not None:
            logger.debug(
                f"Liquidity: zone={liquidity.zone.value} sweep={liquidity.sweep} pools={len(pools)}"
            )

        bias = score_bias(indicators, structure, cfg.bias)
        confluence = score_confluence(indicators, structure, zones, gaps, bias, cfg.confluence)
        logger.debug(
            f"Bias: {bias.direction.value} ({bias.strength}%), "
            f"confluence: {confluence.direction.value} ({confluence.confidence}%)"
        )

        signal = synthesize_signal(price, indicators, structure, zones, levels, confluence, cfg.signal)
        logger.debug(f"Signal: {signal.direction.value} - {signal.rationale}")

        return AnalysisResult(
            status=AnalysisStatus.OK,
            signal=signal,
            current_price=price,
            indicators=indicators,
            structure=structure,
            zones=tuple(zones),
            gaps=tuple(gaps),
            levels=levels,
            liquidity=liquidity,
            liquidity_pools=tuple(pools),
            bias=bias,
            confluence=confluence,
        )


def analyze_candles(candles: CandleInput, config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """Run a one-off SignalPipeline over candles."""
    return SignalPipeline(config).run(candles)
