"""
Confluence Scoring

Weighs six independent evidence factors against the bias direction:

    Factor           Default weight
    EMA alignment    20
    Market structure 25
    Order block      20
    Fair value gap   15
    RSI              10
    MACD             10

Each factor awards a fraction of its weight (see CreditFractions), so the
weights can be retuned in ConfluenceConfig without rewriting the rules.
"""

from typing import List, Optional, Sequence

from smcsignals.config import ConfluenceConfig
from smcsignals.models import (
    Bias,
    ConfluenceDirection,
    ConfluenceFactor,
    ConfluenceResult,
    Gap,
    IndicatorSnapshot,
    StructureState,
    Trend,
    Zone,
    ZoneType,
)


class CreditFractions:
    """Share of each factor's weight awarded by its rules."""
    EMA_ALIGNED = 0.75
    EMA_BEYOND_SLOW = 0.25

    STRUCTURE_TREND = 0.8
    STRUCTURE_BOS = 0.2
    STRUCTURE_CHOCH = 0.6

    ORDER_BLOCK_AT = 1.0
    ORDER_BLOCK_NEAR = 0.75
    ORDER_BLOCK_DISTANT = 0.25

    GAP_ACTIVE = 1.0
    GAP_PRESENT = 1.0 / 3.0

    RSI_CONFIRMS = 1.0
    RSI_NEUTRAL = 0.5

    MACD_AGREES = 1.0


_ZONE_TYPE_FOR = {
    Trend.BULLISH: ZoneType.BULLISH,
    Trend.BEARISH: ZoneType.BEARISH,
}


def _points(weight: float, fraction: float) -> float:
    return round(weight * fraction, 6)


def _in_band(value: float, band: Sequence[float]) -> bool:
    low, high = band
    return low < value < high


def _score_ema(direction: Trend, ind: IndicatorSnapshot, weight: float) -> ConfluenceFactor:
    if direction == Trend.BULLISH and ind.ema20 > ind.ema50:
        score = _points(weight, CreditFractions.EMA_ALIGNED)
        if ind.current_price > ind.ema200:
            score = _points(weight, CreditFractions.EMA_ALIGNED + CreditFractions.EMA_BEYOND_SLOW)
        return ConfluenceFactor("EMA Alignment", score, weight, "EMA20 > EMA50 (bullish)")
    if direction == Trend.BEARISH and ind.ema20 < ind.ema50:
        score = _points(weight, CreditFractions.EMA_ALIGNED)
        if ind.current_price < ind.ema200:
            score = _points(weight, CreditFractions.EMA_ALIGNED + CreditFractions.EMA_BEYOND_SLOW)
        return ConfluenceFactor("EMA Alignment", score, weight, "EMA20 < EMA50 (bearish)")
    return ConfluenceFactor("EMA Alignment", 0.0, weight, "EMAs not aligned")


def _score_structure(direction: Trend, structure: StructureState, weight: float) -> ConfluenceFactor:
    if direction != Trend.NEUTRAL and structure.trend == direction:
        label = direction.value.capitalize()
        if any(b.direction == direction for b in structure.breaks):
            score = _points(weight, CreditFractions.STRUCTURE_TREND + CreditFractions.STRUCTURE_BOS)
            return ConfluenceFactor("Market Structure", score, weight, f"{label} structure with BOS")
        score = _points(weight, CreditFractions.STRUCTURE_TREND)
        return ConfluenceFactor("Market Structure", score, weight, f"{label} structure")

    reversal = structure.last_reversal
    if reversal is not None:
        if direction != Trend.NEUTRAL and reversal.direction == direction:
            score = _points(weight, CreditFractions.STRUCTURE_CHOCH)
            return ConfluenceFactor("Market Structure", score, weight, "CHoCH detected")
        return ConfluenceFactor("Market Structure", 0.0, weight, "Structure unclear")
    return ConfluenceFactor("Market Structure", 0.0, weight, "No clear structure")


def _score_order_block(
    direction: Trend,
    zones: Sequence[Zone],
    atr: float,
    config: ConfluenceConfig
) -> ConfluenceFactor:
    weight = config.order_block_weight
    zone_type = _ZONE_TYPE_FOR.get(direction)
    relevant = [z for z in zones if zone_type is not None and z.type == zone_type and z.active]
    if not relevant:
        return ConfluenceFactor("Order Block", 0.0, weight, "No relevant order block")

    # zones arrive most recent first
    nearest = relevant[0]
    distance_atr = abs(nearest.distance) / (atr or 1.0)

    if distance_atr < config.order_block_at_atr:
        return ConfluenceFactor("Order Block", _points(weight, CreditFractions.ORDER_BLOCK_AT), weight,
                                "Price AT order block")
    if distance_atr < config.order_block_near_atr:
        return ConfluenceFactor("Order Block", _points(weight, CreditFractions.ORDER_BLOCK_NEAR), weight,
                                "Price NEAR order block")
    return ConfluenceFactor("Order Block", _points(weight, CreditFractions.ORDER_BLOCK_DISTANT), weight,
                            "Order block found but distant")


def _score_gap(direction: Trend, gaps: Sequence[Gap], weight: float) -> ConfluenceFactor:
    zone_type = _ZONE_TYPE_FOR.get(direction)
    matching = [g for g in gaps if zone_type is not None and g.type == zone_type]
    active = [g for g in matching if g.active]

    if active:
        return ConfluenceFactor("Fair Value Gap", _points(weight, CreditFractions.GAP_ACTIVE), weight,
                                f"{len(active)} active FVG(s)")
    if matching:
        return ConfluenceFactor("Fair Value Gap", _points(weight, CreditFractions.GAP_PRESENT), weight,
                                "FVG exists but not active")
    return ConfluenceFactor("Fair Value Gap", 0.0, weight, "No supporting FVG")


def _score_rsi(direction: Trend, rsi: float, config: ConfluenceConfig) -> ConfluenceFactor:
    weight = config.rsi_weight
    if direction == Trend.BULLISH and _in_band(rsi, config.rsi_bullish_band):
        return ConfluenceFactor("RSI", _points(weight, CreditFractions.RSI_CONFIRMS), weight,
                                f"RSI {rsi:.0f} - bullish confirmation")
    if direction == Trend.BEARISH and _in_band(rsi, config.rsi_bearish_band):
        return ConfluenceFactor("RSI", _points(weight, CreditFractions.RSI_CONFIRMS), weight,
                                f"RSI {rsi:.0f} - bearish confirmation")
    if _in_band(rsi, config.rsi_neutral_band):
        return ConfluenceFactor("RSI", _points(weight, CreditFractions.RSI_NEUTRAL), weight,
                                f"RSI {rsi:.0f} - neutral zone")
    return ConfluenceFactor("RSI", 0.0, weight, f"RSI {rsi:.0f} - extreme")


def _score_macd(direction: Trend, ind: IndicatorSnapshot, weight: float) -> ConfluenceFactor:
    histogram = ind.macd.histogram
    if (direction == Trend.BULLISH and histogram > 0) or (direction == Trend.BEARISH and histogram < 0):
        return ConfluenceFactor("MACD", _points(weight, CreditFractions.MACD_AGREES), weight,
                                f"MACD {ind.macd.trending.value}")
    return ConfluenceFactor("MACD", 0.0, weight, "MACD opposing direction")


def score_confluence(
    indicators: IndicatorSnapshot,
    structure: StructureState,
    zones: Sequence[Zone],
    gaps: Sequence[Gap],
    bias: Bias,
    config: ConfluenceConfig,
    atr: Optional[float] = None
) -> ConfluenceResult:
    """
    Score how much independent evidence supports the bias direction.

    Args:
        indicators: Indicator snapshot
        structure: Structure state
        zones: Order blocks, most recent first
        gaps: Fair value gaps, most recent first
        bias: Bias from score_bias
        config: Weight table and thresholds
        atr: ATR override for order block proximity (defaults to indicators.atr)

    Returns:
        ConfluenceResult; direction is the bias direction when confidence
        reaches the labelling threshold, otherwise WAIT
    """
    direction = bias.direction
    atr_value = indicators.atr if atr is None else atr

    breakdown: List[ConfluenceFactor] = [
        _score_ema(direction, indicators, config.ema_weight),
        _score_structure(direction, structure, config.structure_weight),
        _score_order_block(direction, zones, atr_value, config),
        _score_gap(direction, gaps, config.gap_weight),
        _score_rsi(direction, indicators.rsi, config),
        _score_macd(direction, indicators, config.macd_weight),
    ]

    total = sum(f.score for f in breakdown)
    max_score = config.max_score
    confidence = round(total / max_score * 100) if max_score > 0 else 0
    confidence = max(0, min(100, confidence))

    if direction == Trend.NEUTRAL or confidence < config.direction_threshold:
        label = ConfluenceDirection.WAIT
    else:
        label = ConfluenceDirection(direction.value)

    return ConfluenceResult(
        direction=label,
        confidence=confidence,
        total_score=round(total, 6),
        max_score=max_score,
        breakdown=tuple(breakdown),
    )
