"""
Market bias from an additive bullish/bearish point system.
"""

from smcsignals.config import BiasConfig
from smcsignals.models import Bias, IndicatorSnapshot, StructureState, StructureType, Trend


_STRUCTURE_TYPES = {
    Trend.BULLISH: StructureType.UPTREND,
    Trend.BEARISH: StructureType.DOWNTREND,
    Trend.NEUTRAL: StructureType.RANGING,
}


def score_bias(indicators: IndicatorSnapshot, structure: StructureState, config: BiasConfig) -> Bias:
    """
    Combine EMA alignment, price location, structure, RSI, MACD and the
    latest CHoCH into a directional bias.

    Each rule is evaluated independently and awards its points to one side.
    The EMA rules always award (ties count as bearish); the RSI and MACD rules
    award nothing inside their neutral band.

    Args:
        indicators: Indicator snapshot at the latest candle
        structure: Structure state
        config: Point table

    Returns:
        Bias with direction (NEUTRAL on a tie) and strength 0-100
    """
    bull = 0
    bear = 0
    price = indicators.current_price

    if indicators.ema20 > indicators.ema50:
        bull += config.ema_fast_mid_points
    else:
        bear += config.ema_fast_mid_points

    if indicators.ema50 > indicators.ema200:
        bull += config.ema_mid_slow_points
    else:
        bear += config.ema_mid_slow_points

    if price > indicators.ema20:
        bull += config.price_ema_fast_points
    else:
        bear += config.price_ema_fast_points

    if price > indicators.ema200:
        bull += config.price_ema_slow_points
    else:
        bear += config.price_ema_slow_points

    if structure.trend == Trend.BULLISH:
        bull += config.structure_points
    elif structure.trend == Trend.BEARISH:
        bear += config.structure_points

    if indicators.rsi > config.rsi_bullish_above:
        bull += config.rsi_points
    elif indicators.rsi < config.rsi_bearish_below:
        bear += config.rsi_points

    if indicators.macd.histogram > 0:
        bull += config.macd_points
    elif indicators.macd.histogram < 0:
        bear += config.macd_points

    reversal = structure.last_reversal
    if reversal is not None:
        if reversal.direction == Trend.BULLISH:
            bull += config.reversal_points
        elif reversal.direction == Trend.BEARISH:
            bear += config.reversal_points

    if bull > bear:
        direction = Trend.BULLISH
    elif bear > bull:
        direction = Trend.BEARISH
    else:
        direction = Trend.NEUTRAL

    total = bull + bear
    strength = round(abs(bull - bear) / total * 100) if total > 0 else 0

    return Bias(
        direction=direction,
        strength=strength,
        bullish_points=bull,
        bearish_points=bear,
        structure_type=_STRUCTURE_TYPES[structure.trend],
    )
