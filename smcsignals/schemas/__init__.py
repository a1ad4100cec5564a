"""
SMC Signals Schemas

Pydantic models describing the serialized form of a pipeline run. The JSON
produced by AnalysisReport.model_dump_json() is the contract for display
layers.

Usage:
    from smcsignals import analyze_candles
    from smcsignals.schemas import to_report

    report = to_report(analyze_candles(candles))
    print(report.model_dump_json(indent=2))
"""

from .base import BaseSchema, GapSchema, PriceLevelSchema, ZoneSchema
from .analysis import (
    AnalysisReport,
    BiasSchema,
    ConfluenceFactorSchema,
    ConfluenceSchema,
    IndicatorSchema,
    KeyLevelsSchema,
    LiquidityPoolSchema,
    LiquiditySchema,
    MACDSchema,
    SignalSchema,
    StructureEventSchema,
    StructureSchema,
    SwingSchema,
    to_report,
)

__all__ = [
    "BaseSchema",
    "GapSchema",
    "PriceLevelSchema",
    "ZoneSchema",
    "AnalysisReport",
    "BiasSchema",
    "ConfluenceFactorSchema",
    "ConfluenceSchema",
    "IndicatorSchema",
    "KeyLevelsSchema",
    "LiquidityPoolSchema",
    "LiquiditySchema",
    "MACDSchema",
    "SignalSchema",
    "StructureEventSchema",
    "StructureSchema",
    "SwingSchema",
    "to_report",
]
