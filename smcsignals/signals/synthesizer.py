"""
Signal Synthesizer

Turns a labelled confluence result into concrete trade levels.

Stop placement (BUY; SELL mirrors it):
    1. Bottom of the most recent unmitigated bullish order block - buffer
    2. Latest swing low - buffer
    3. Price - fallback ATR multiple

Targets are fixed multiples of the risk. The first target is pulled in to the
opposing key level when that level sits between entry and the second target.
"""

import logging
from typing import Optional, Sequence, Tuple

from smcsignals.config import SignalConfig
from smcsignals.models import (
    ConfluenceDirection,
    ConfluenceResult,
    IndicatorSnapshot,
    KeyLevels,
    Signal,
    SignalDirection,
    StructureState,
    Zone,
    ZoneType,
)

logger = logging.getLogger(__name__)


def _bullish_stop(
    price: float,
    atr: float,
    structure: StructureState,
    zones: Sequence[Zone],
    config: SignalConfig
) -> Tuple[float, str]:
    buffer = atr * config.stop_buffer_atr

    zone = next((z for z in zones if z.type == ZoneType.BULLISH and not z.mitigated), None)
    if zone is not None and zone.bottom - buffer < price:
        return zone.bottom - buffer, "Buy from bullish order block"

    swing = structure.last_swing_low
    if swing is not None and swing.price - buffer < price:
        return swing.price - buffer, "Buy from swing low support"

    return price - atr * config.fallback_stop_atr, "Buy - bullish bias with ATR stop"


def _bearish_stop(
    price: float,
    atr: float,
    structure: StructureState,
    zones: Sequence[Zone],
    config: SignalConfig
) -> Tuple[float, str]:
    buffer = atr * config.stop_buffer_atr

    zone = next((z for z in zones if z.type == ZoneType.BEARISH and not z.mitigated), None)
    if zone is not None and zone.top + buffer > price:
        return zone.top + buffer, "Sell from bearish order block"

    swing = structure.last_swing_high
    if swing is not None and swing.price + buffer > price:
        return swing.price + buffer, "Sell from swing high resistance"

    return price + atr * config.fallback_stop_atr, "Sell - bearish bias with ATR stop"


def synthesize_signal(
    current_price: float,
    indicators: IndicatorSnapshot,
    structure: StructureState,
    zones: Sequence[Zone],
    levels: Optional[KeyLevels],
    confluence: ConfluenceResult,
    config: SignalConfig
) -> Signal:
    """
    Build a BUY/SELL signal from the confluence result, or WAIT.

    Args:
        current_price: Latest close, used as entry
        indicators: Indicator snapshot (ATR and RSI are used)
        structure: Structure state, for swing-based stops
        zones: Evaluated order blocks, most recent first
        levels: Key levels, for the first target
        confluence: Confluence result; its direction selects the side
        config: Gating and level construction parameters

    Returns:
        Signal with prices rounded to config.price_decimals
    """
    confidence = confluence.confidence
    if confidence < config.min_confidence or confluence.direction == ConfluenceDirection.WAIT:
        return Signal.wait(
            f"Low confluence ({confidence}%) - no clear edge",
            confidence=confidence,
            entry=current_price,
        )

    atr = indicators.atr or current_price * config.fallback_atr_pct
    entry = current_price
    bullish = confluence.direction == ConfluenceDirection.BULLISH

    if bullish:
        stop, source = _bullish_stop(entry, atr, structure, zones, config)
    else:
        stop, source = _bearish_stop(entry, atr, structure, zones, config)

    risk = abs(entry - stop)
    if risk <= 0:
        logger.debug(f"Zero risk setup at {entry}, returning WAIT")
        return Signal.wait("Zero risk setup - no valid stop", confidence=confidence, entry=entry)

    side = 1.0 if bullish else -1.0
    tp1, tp2, tp3 = (entry + side * risk * m for m in config.target_multiples)

    if levels is not None:
        if bullish and entry < levels.resistance < tp2:
            tp1 = levels.resistance
        elif not bullish and tp2 < levels.support < entry:
            tp1 = levels.support

    notes = [source, f"Structure: {structure.trend.value}", f"RSI: {indicators.rsi:.0f}"]

    if config.enforce_min_risk_reward and abs(tp2 - entry) / risk < config.min_risk_reward:
        tp2 = entry + side * risk * config.min_risk_reward
        notes.append(f"TP2 adjusted to 1:{config.min_risk_reward} R:R")

    decimals = config.price_decimals
    return Signal(
        direction=SignalDirection.BUY if bullish else SignalDirection.SELL,
        confidence=confidence,
        entry=round(entry, decimals),
        stop_loss=round(stop, decimals),
        tp1=round(tp1, decimals),
        tp2=round(tp2, decimals),
        tp3=round(tp3, decimals),
        risk_reward=round(abs(tp2 - entry) / risk, 2),
        rationale=" | ".join(notes),
    )
