"""
Technical and smart money indicators

Components:
- technical: EMA, RSI, ATR, MACD, volatility regime
- smart_money: swings, structure (BOS/CHoCH), order blocks, fair value gaps, key levels,
  liquidity
"""

from .technical import atr, classify_volatility, compute_indicators, ema, ema_series, macd, rsi
from .smart_money import (
    SmartMoneyAnalyzer,
    cluster_prices,
    evaluate_gap,
    evaluate_zone,
    trend_from_swings,
)

__all__ = [
    "atr",
    "classify_volatility",
    "compute_indicators",
    "ema",
    "ema_series",
    "macd",
    "rsi",
    "SmartMoneyAnalyzer",
    "cluster_prices",
    "evaluate_gap",
    "evaluate_zone",
    "trend_from_swings",
]
