"""
SMC Signals

Deterministic smart money concepts analysis: turns an ordered candle
sequence into a BUY/SELL/WAIT signal with entry, stop, three targets and a
transparent confluence breakdown.

Usage:
    from smcsignals import analyze_candles

    result = analyze_candles(candles)
    print(result.signal.direction, result.signal.confidence)
"""

from .config import AnalysisConfig, get_default_config, load_analysis_config, save_analysis_config
from .models import (
    AnalysisResult,
    AnalysisStatus,
    Candle,
    InvalidCandleError,
    Signal,
    SignalDirection,
    Trend,
    candles_from_dataframe,
    validate_candles,
)
from .pipeline import SignalPipeline, analyze_candles

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "get_default_config",
    "load_analysis_config",
    "save_analysis_config",
    "AnalysisResult",
    "AnalysisStatus",
    "Candle",
    "InvalidCandleError",
    "Signal",
    "SignalDirection",
    "Trend",
    "candles_from_dataframe",
    "validate_candles",
    "SignalPipeline",
    "analyze_candles",
]
