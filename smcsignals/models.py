"""
Core data model for the SMC signal pipeline.

Every entity is a frozen dataclass created fresh for each pipeline run.
Direction-like fields use str-valued enums so they serialize as plain strings.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd


class Trend(str, Enum):
    """Directional state of the market structure or bias."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class ZoneType(str, Enum):
    """Polarity of an order block or fair value gap."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class SwingKind(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"


class MACDTrend(str, Enum):
    """Histogram momentum classification."""
    BULLISH = "BULLISH"
    BULLISH_WEAKENING = "BULLISH_WEAKENING"
    BEARISH = "BEARISH"
    BEARISH_WEAKENING = "BEARISH_WEAKENING"
    NEUTRAL = "NEUTRAL"


class ConfluenceDirection(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    WAIT = "WAIT"


class SignalDirection(str, Enum):
    """Final trade direction."""
    BUY = "BUY"
    SELL = "SELL"
    WAIT = "WAIT"


class StructureType(str, Enum):
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    RANGING = "RANGING"


class LevelType(str, Enum):
    SUPPORT = "SUPPORT"
    RESISTANCE = "RESISTANCE"


class PriceZone(str, Enum):
    """Where the close sits relative to the session range midpoint."""
    PREMIUM = "PREMIUM"
    DISCOUNT = "DISCOUNT"
    EQUILIBRIUM = "EQUILIBRIUM"


class LiquiditySide(str, Enum):
    BUY_SIDE = "BSL"    # resting above clustered highs
    SELL_SIDE = "SSL"   # resting below clustered lows


class Volatility(str, Enum):
    """Recent candle range against the average range."""
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


class AnalysisStatus(str, Enum):
    """Outcome of a pipeline run."""
    OK = "OK"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    INVALID_INPUT = "INVALID_INPUT"
    ERROR = "ERROR"


CANDLE_FIELDS = ("time", "open", "high", "low", "close", "volume")

TimeValue = Union[int, float, str]


class InvalidCandleError(ValueError):
    """Raised when the candle sequence violates the input contract."""


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar."""
    time: TimeValue
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def body_top(self) -> float:
        return max(self.open, self.close)

    @property
    def body_bottom(self) -> float:
        return min(self.open, self.close)


@dataclass(frozen=True)
class MACDResult:
    line: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0
    trending: MACDTrend = MACDTrend.NEUTRAL


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values evaluated on the latest candle."""
    current_price: float
    ema20: float
    ema50: float
    ema200: float
    rsi: float
    atr: float
    macd: MACDResult
    volatility: Volatility = Volatility.UNKNOWN


@dataclass(frozen=True)
class SwingPoint:
    """A local extremum over a symmetric window"""
    index: int
    price: float
    kind: SwingKind


@dataclass(frozen=True)
class BreakEvent:
    """Break of Structure: a prior swing level exceeded in the trend direction."""
    direction: Trend
    level: float
    index: int


@dataclass(frozen=True)
class ReversalEvent:
    """Change of Character: a new swing contradicting the prevailing trend."""
    direction: Trend
    level: float
    index: int


@dataclass(frozen=True)
class StructureState:
    trend: Trend = Trend.NEUTRAL
    swing_highs: Tuple[SwingPoint, ...] = ()
    swing_lows: Tuple[SwingPoint, ...] = ()
    breaks: Tuple[BreakEvent, ...] = ()
    reversals: Tuple[ReversalEvent, ...] = ()

    @property
    def last_swing_high(self) -> Optional[SwingPoint]:
        return self.swing_highs[-1] if self.swing_highs else None

    @property
    def last_swing_low(self) -> Optional[SwingPoint]:
        return self.swing_lows[-1] if self.swing_lows else None

    @property
    def last_reversal(self) -> Optional[ReversalEvent]:
        return self.reversals[-1] if self.reversals else None


@dataclass(frozen=True)
class Zone:
    """An order block (supply/demand zone)"""
    type: ZoneType
    top: float
    bottom: float
    index: int
    time: Optional[TimeValue] = None
    active: bool = False
    mitigated: bool = False
    distance: float = 0.0  # price to near edge, positive when price is on the expected side

    @property
    def midpoint(self) -> float:
        return (self.top + self.bottom) / 2


@dataclass(frozen=True)
class Gap:
    """A fair value gap (3-candle imbalance)"""
    type: ZoneType
    top: float
    bottom: float
    size: float
    index: int
    time: Optional[TimeValue] = None
    active: bool = False
    filled: bool = False
    distance: float = 0.0


@dataclass(frozen=True)
class PriceLevel:
    price: float
    type: LevelType
    source: str


@dataclass(frozen=True)
class KeyLevels:
    support: float
    resistance: float
    midpoint: float
    range: float
    price_position: float
    levels: Tuple[PriceLevel, ...] = ()


@dataclass(frozen=True)
class LiquidityState:
    """
    Session liquidity over the recent window.

    The upper half of the session range is premium, the lower half discount.
    A sweep means the latest candle traded beyond every recent swing high
    or below every recent swing low.
    """
    session_high: float
    session_low: float
    midpoint: float
    zone: PriceZone
    sweep: bool
    recent_swing_highs: Tuple[float, ...] = ()
    recent_swing_lows: Tuple[float, ...] = ()

    @property
    def premium_range(self) -> Tuple[float, float]:
        return self.midpoint, self.session_high

    @property
    def discount_range(self) -> Tuple[float, float]:
        return self.session_low, self.midpoint


@dataclass(frozen=True)
class LiquidityPool:
    """Equal highs (buy-side) or equal lows (sell-side) clustered into one level"""
    side: LiquiditySide
    level: float
    count: int
    strength: int


@dataclass(frozen=True)
class Bias:
    direction: Trend
    strength: int
    bullish_points: int
    bearish_points: int
    structure_type: StructureType = StructureType.RANGING


@dataclass(frozen=True)
class ConfluenceFactor:
    factor: str
    score: float
    max: float
    detail: str


@dataclass(frozen=True)
class ConfluenceResult:
    direction: ConfluenceDirection
    confidence: int
    total_score: float
    max_score: float
    breakdown: Tuple[ConfluenceFactor, ...] = ()


@dataclass(frozen=True)
class Signal:
    """Synthesized trade signal. Price fields are zero for WAIT."""
    direction: SignalDirection
    confidence: int = 0
    entry: float = 0.0
    stop_loss: float = 0.0
    tp1: float = 0.0
    tp2: float = 0.0
    tp3: float = 0.0
    risk_reward: float = 0.0
    rationale: str = ""

    @classmethod
    def wait(cls, rationale: str, confidence: int = 0, entry: float = 0.0) -> "Signal":
        return cls(
            direction=SignalDirection.WAIT,
            confidence=confidence,
            entry=entry,
            rationale=rationale,
        )

    @property
    def is_actionable(self) -> bool:
        return self.direction != SignalDirection.WAIT


@dataclass(frozen=True)
class AnalysisResult:
    """Signal plus the intermediate artifacts of one pipeline run."""
    status: AnalysisStatus
    signal: Signal
    current_price: Optional[float] = None
    indicators: Optional[IndicatorSnapshot] = None
    structure: Optional[StructureState] = None
    zones: Tuple[Zone, ...] = ()
    gaps: Tuple[Gap, ...] = ()
    levels: Optional[KeyLevels] = None
    liquidity: Optional[LiquidityState] = None
    liquidity_pools: Tuple[LiquidityPool, ...] = ()
    bias: Optional[Bias] = None
    confluence: Optional[ConfluenceResult] = None
    error: Optional[str] = None

    @property
    def active_zones(self) -> List[Zone]:
        return [z for z in self.zones if z.active]

    @property
    def active_gaps(self) -> List[Gap]:
        return [g for g in self.gaps if g.active]


# =============================================================================
# Candle construction and validation
# =============================================================================

def _coerce_number(value: Any, name: str, position: int) -> float:
    if isinstance(value, bool):
        raise InvalidCandleError(f"Candle {position}: field '{name}' is not numeric ({value!r})")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCandleError(
            f"Candle {position}: field '{name}' is not numeric ({value!r})"
        ) from None
    if not math.isfinite(number):
        raise InvalidCandleError(f"Candle {position}: field '{name}' is not finite ({value!r})")
    return number


def _check_time(value: Any, position: int) -> TimeValue:
    # NaN compares False both ways and would slip past the ordering check
    if isinstance(value, bool):
        raise InvalidCandleError(f"Candle {position}: field 'time' is not a timestamp ({value!r})")
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidCandleError(f"Candle {position}: field 'time' is not finite ({value!r})")
    return value


def to_candle(raw: Union[Candle, Mapping[str, Any]], position: int = 0) -> Candle:
    """
    Build a Candle from a Candle or a mapping with the six OHLCV fields.

    Raises:
        InvalidCandleError: If a field is missing or non-numeric
    """
    if isinstance(raw, Candle):
        values = {name: getattr(raw, name) for name in CANDLE_FIELDS}
    elif isinstance(raw, Mapping):
        missing = [name for name in CANDLE_FIELDS if name not in raw or raw[name] is None]
        if missing:
            raise InvalidCandleError(f"Candle {position}: missing field(s) {', '.join(missing)}")
        values = {name: raw[name] for name in CANDLE_FIELDS}
    else:
        raise InvalidCandleError(f"Candle {position}: unsupported type {type(raw).__name__}")

    return Candle(
        time=_check_time(values["time"], position),
        open=_coerce_number(values["open"], "open", position),
        high=_coerce_number(values["high"], "high", position),
        low=_coerce_number(values["low"], "low", position),
        close=_coerce_number(values["close"], "close", position),
        volume=_coerce_number(values["volume"], "volume", position),
    )


def validate_candles(raw_candles: Iterable[Union[Candle, Mapping[str, Any]]]) -> Tuple[Candle, ...]:
    """
    Validate a candle sequence and return it as an immutable tuple.

    Checks every field is present and finite, the OHLC envelope holds
    and time never decreases.

    Raises:
        InvalidCandleError: On the first violation found, including input
            that is not an iterable of candles at all
    """
    try:
        items = iter(raw_candles)
    except TypeError:
        raise InvalidCandleError(
            f"Candle input must be an iterable of candles, got {type(raw_candles).__name__}"
        ) from None
    candles = tuple(to_candle(raw, i) for i, raw in enumerate(items))

    previous_time = None
    for i, c in enumerate(candles):
        if c.high < max(c.open, c.close, c.low):
            raise InvalidCandleError(
                f"Candle {i}: high {c.high} is below open/close/low"
            )
        if c.low > min(c.open, c.close, c.high):
            raise InvalidCandleError(
                f"Candle {i}: low {c.low} is above open/close/high"
            )
        if previous_time is not None:
            try:
                decreasing = c.time < previous_time
            except TypeError:
                raise InvalidCandleError(
                    f"Candle {i}: time {c.time!r} is not comparable with {previous_time!r}"
                ) from None
            if decreasing:
                raise InvalidCandleError(
                    f"Candle {i}: time {c.time!r} is earlier than previous {previous_time!r}"
                )
        previous_time = c.time

    return candles


def candles_from_dataframe(df: pd.DataFrame) -> List[Candle]:
    """
    Convert an OHLCV DataFrame into candles.

    Uses a 'time' column when present, otherwise the index. Timestamps are
    kept as ISO strings so they stay comparable and serializable.

    Args:
        df: DataFrame with open/high/low/close columns (volume optional)

    Returns:
        List of Candle objects, oldest first
    """
    columns = {c.lower(): c for c in df.columns}
    missing = [name for name in ("open", "high", "low", "close") if name not in columns]
    if missing:
        raise InvalidCandleError(f"DataFrame missing column(s): {', '.join(missing)}")

    if "time" in columns:
        times: Sequence[Any] = df[columns["time"]].tolist()
    else:
        times = list(df.index)

    volumes = df[columns["volume"]].tolist() if "volume" in columns else [0.0] * len(df)

    candles = []
    for i, (t, o, h, l, c, v) in enumerate(zip(
        times,
        df[columns["open"]].tolist(),
        df[columns["high"]].tolist(),
        df[columns["low"]].tolist(),
        df[columns["close"]].tolist(),
        volumes,
    )):
        if isinstance(t, pd.Timestamp):
            t = t.isoformat()
        elif not isinstance(t, str) and pd.isna(t):
            t = None
        candles.append(to_candle(
            {"time": t, "open": o, "high": h, "low": l, "close": c, "volume": v}, i
        ))
    return candles
