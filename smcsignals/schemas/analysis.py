"""Schema for serialized pipeline results."""

from dataclasses import asdict
from typing import List, Optional

from pydantic import Field

from smcsignals.models import (
    AnalysisResult,
    AnalysisStatus,
    ConfluenceDirection,
    LiquiditySide,
    MACDTrend,
    PriceZone,
    SignalDirection,
    StructureType,
    SwingKind,
    Trend,
    Volatility,
)

from .base import BaseSchema, GapSchema, PriceLevelSchema, ZoneSchema


class MACDSchema(BaseSchema):
    line: float = Field(0.0, description="MACD line (fast EMA - slow EMA)")
    signal: float = Field(0.0, description="Signal line")
    histogram: float = Field(0.0, description="line - signal")
    trending: MACDTrend = Field(MACDTrend.NEUTRAL, description="Histogram momentum")


class IndicatorSchema(BaseSchema):
    """Indicator values at the latest candle."""

    current_price: float = Field(..., description="Latest close")
    ema20: float = Field(..., description="Fast EMA")
    ema50: float = Field(..., description="Mid EMA")
    ema200: float = Field(..., description="Slow EMA")
    rsi: float = Field(..., ge=0, le=100, description="RSI 0-100")
    atr: float = Field(..., ge=0, description="Average true range")
    macd: MACDSchema
    volatility: Volatility = Field(Volatility.UNKNOWN, description="Recent vs average candle range")


class SwingSchema(BaseSchema):
    index: int = Field(..., ge=0)
    price: float
    kind: SwingKind


class StructureEventSchema(BaseSchema):
    """A break of structure or change of character."""

    direction: Trend
    level: float = Field(..., description="Swing level that was crossed")
    index: int = Field(..., ge=0, description="Candle index of the event")


class StructureSchema(BaseSchema):
    trend: Trend = Field(..., description="Trend from the last two swing highs and lows")
    swing_highs: List[SwingSchema] = Field(default_factory=list)
    swing_lows: List[SwingSchema] = Field(default_factory=list)
    breaks: List[StructureEventSchema] = Field(default_factory=list, description="BOS events")
    reversals: List[StructureEventSchema] = Field(default_factory=list, description="CHoCH events")


class KeyLevelsSchema(BaseSchema):
    support: float
    resistance: float
    midpoint: float
    range: float
    price_position: float = Field(..., description="Price location within the range, percent")
    levels: List[PriceLevelSchema] = Field(default_factory=list)


class LiquiditySchema(BaseSchema):
    """Premium/discount location and sweep state over the recent session."""

    session_high: float
    session_low: float
    midpoint: float = Field(..., description="Premium/discount boundary")
    zone: PriceZone = Field(..., description="PREMIUM, DISCOUNT or EQUILIBRIUM")
    sweep: bool = Field(..., description="Latest candle ran beyond the recent swings")
    recent_swing_highs: List[float] = Field(default_factory=list)
    recent_swing_lows: List[float] = Field(default_factory=list)


class LiquidityPoolSchema(BaseSchema):
    side: LiquiditySide = Field(..., description="BSL above equal highs, SSL below equal lows")
    level: float = Field(..., description="Average price of the clustered swings")
    count: int = Field(..., ge=1, description="Swings in the cluster")
    strength: int = Field(..., ge=0, le=100)


class BiasSchema(BaseSchema):
    direction: Trend
    strength: int = Field(..., ge=0, le=100)
    bullish_points: int = Field(..., ge=0)
    bearish_points: int = Field(..., ge=0)
    structure_type: StructureType


class ConfluenceFactorSchema(BaseSchema):
    factor: str = Field(..., description="Evidence factor name")
    score: float = Field(..., ge=0, description="Points awarded")
    max: float = Field(..., ge=0, description="Factor weight")
    detail: str = Field("", description="Why the points were (not) awarded")


class ConfluenceSchema(BaseSchema):
    direction: ConfluenceDirection
    confidence: int = Field(..., ge=0, le=100, description="Confidence 0-100")
    total_score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    breakdown: List[ConfluenceFactorSchema] = Field(default_factory=list)


class SignalSchema(BaseSchema):
    """Trade signal. Price fields are zero for WAIT except entry."""

    direction: SignalDirection = Field(..., description="BUY, SELL or WAIT")
    confidence: int = Field(0, ge=0, le=100)
    entry: float = Field(0.0, description="Entry price")
    stop_loss: float = Field(0.0, description="Stop loss price")
    tp1: float = Field(0.0, description="First target")
    tp2: float = Field(0.0, description="Second target (R:R reference)")
    tp3: float = Field(0.0, description="Third target")
    risk_reward: float = Field(0.0, ge=0, description="Reward:risk to tp2")
    rationale: str = Field("", description="Stop source, structure and RSI summary")


class AnalysisReport(BaseSchema):
    """
    Complete result of one pipeline run.

    Artifacts other than the signal are only populated when status is OK.
    """

    status: AnalysisStatus = Field(..., description="OK, INSUFFICIENT_DATA, INVALID_INPUT or ERROR")
    signal: SignalSchema
    current_price: Optional[float] = Field(None, description="Latest close")
    indicators: Optional[IndicatorSchema] = None
    structure: Optional[StructureSchema] = None
    zones: List[ZoneSchema] = Field(default_factory=list, description="Order blocks, most recent first")
    gaps: List[GapSchema] = Field(default_factory=list, description="Fair value gaps, most recent first")
    levels: Optional[KeyLevelsSchema] = None
    liquidity: Optional[LiquiditySchema] = None
    liquidity_pools: List[LiquidityPoolSchema] = Field(
        default_factory=list, description="Equal high/low pools, strongest first"
    )
    bias: Optional[BiasSchema] = None
    confluence: Optional[ConfluenceSchema] = None
    error: Optional[str] = Field(None, description="Error message for INVALID_INPUT or ERROR")


def to_report(result: AnalysisResult) -> AnalysisReport:
    """
    Convert a pipeline result into its serializable report.

    Entities are dataclasses whose fields mirror the schemas, so the nested
    dict form validates directly.
    """
    return AnalysisReport.model_validate(asdict(result))
