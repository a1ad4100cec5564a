"""
Smart Money Concepts (SMC) Detectors

Implements the price-action side of the pipeline:
- Swing points: strict local highs/lows over a symmetric window
- Market structure: trend from the last two swing highs/lows
- Break of Structure (BOS): a swing level exceeded in trend direction
- Change of Character (CHoCH): a new swing contradicting the prevailing trend
- Order Blocks (OB): last opposing candle before an impulsive candle
- Fair Value Gaps (FVG): 3-candle imbalance zones
- Key levels: support/resistance and price position in range
- Liquidity: premium/discount session zone, sweeps and equal high/low pools

Active/mitigated/filled flags are pure functions of the zone boundaries and
the current price (see evaluate_zone / evaluate_gap).
"""

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from smcsignals.config import AnalysisConfig, GapConfig, ZoneConfig
from smcsignals.models import (
    BreakEvent,
    Candle,
    Gap,
    KeyLevels,
    LevelType,
    LiquidityPool,
    LiquiditySide,
    LiquidityState,
    PriceLevel,
    PriceZone,
    ReversalEvent,
    StructureState,
    SwingKind,
    SwingPoint,
    Trend,
    Zone,
    ZoneType,
)


def trend_from_swings(
    swing_highs: Sequence[SwingPoint],
    swing_lows: Sequence[SwingPoint]
) -> Trend:
    """
    Classify trend from the two most recent swing highs and lows.

    BULLISH needs a higher high and a higher low, BEARISH a lower high and a
    lower low. Anything else (including too few swings) is NEUTRAL.
    """
    if len(swing_highs) < 2 or len(swing_lows) < 2:
        return Trend.NEUTRAL

    last_high, prev_high = swing_highs[-1].price, swing_highs[-2].price
    last_low, prev_low = swing_lows[-1].price, swing_lows[-2].price

    if last_high > prev_high and last_low > prev_low:
        return Trend.BULLISH
    if last_high < prev_high and last_low < prev_low:
        return Trend.BEARISH
    return Trend.NEUTRAL


def evaluate_zone(zone: Zone, price: float, atr: float, config: ZoneConfig) -> Zone:
    """
    Recompute the active/mitigated flags of an order block against a price.

    Bullish zones are active while price sits inside [bottom, top * 1.02] or
    within 2 ATR of the top; they are mitigated once price is below the bottom.
    Bearish zones mirror this around the bottom edge.

    Returns:
        A copy of the zone with refreshed flags and distance
    """
    proximity = atr * config.proximity_atr_multiplier

    if zone.type == ZoneType.BULLISH:
        inside = zone.bottom <= price <= zone.top * config.bullish_upper_tolerance
        nearby = abs(price - zone.top) <= proximity
        mitigated = price < zone.bottom
        distance = price - zone.top
    else:
        inside = zone.bottom * config.bearish_lower_tolerance <= price <= zone.top
        nearby = abs(price - zone.bottom) <= proximity
        mitigated = price > zone.top
        distance = zone.bottom - price

    return replace(zone, active=inside or nearby, mitigated=mitigated, distance=distance)


def evaluate_gap(gap: Gap, price: float, config: GapConfig) -> Gap:
    """
    Recompute the filled/active flags of a fair value gap against a price.

    A bullish gap is filled once price trades down to its bottom and active
    while unfilled with price at most 1% above its top. Bearish gaps mirror this.
    """
    if gap.type == ZoneType.BULLISH:
        filled = price <= gap.bottom
        active = not filled and price <= gap.top * config.bullish_active_tolerance
        distance = price - gap.top
    else:
        filled = price >= gap.top
        active = not filled and price >= gap.bottom * config.bearish_active_tolerance
        distance = gap.bottom - price

    return replace(gap, filled=filled, active=active, distance=distance)


def cluster_prices(prices: Sequence[float], tolerance: float) -> List[Tuple[float, int]]:
    """
    Group prices that sit within a relative tolerance of a cluster average.

    Prices are assigned greedily in input order to the first cluster whose
    running average is within `tolerance` (as a fraction of the price).

    Returns:
        (average, count) pairs, largest clusters first
    """
    clusters: List[List[float]] = []
    for price in prices:
        for cluster in clusters:
            average = sum(cluster) / len(cluster)
            if price > 0 and abs(average - price) / price < tolerance:
                cluster.append(price)
                break
        else:
            clusters.append([price])

    grouped = [(sum(c) / len(c), len(c)) for c in clusters]
    grouped.sort(key=lambda g: g[1], reverse=True)
    return grouped


class SmartMoneyAnalyzer:
    """
    Analyzes candle sequences for smart money concepts.

    Features:
    - Swing point detection
    - Trend, BOS and CHoCH detection
    - Order block detection with activity/mitigation flags
    - Fair value gap detection with fill tracking
    - Support/resistance resolution
    - Session liquidity and equal high/low pools

    The analyzer holds only its (frozen) configuration, so one instance can be
    reused across runs and threads.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize SMC analyzer.

        Args:
            config: Analysis configuration (defaults apply when omitted)
        """
        self.config = config or AnalysisConfig()

    def find_swings(
        self,
        candles: Sequence[Candle],
        lookback: Optional[int] = None
    ) -> Tuple[List[SwingPoint], List[SwingPoint]]:
        """
        Detect swing highs and lows.

        A candle is a swing high when its high is strictly greater than every
        other high in the 2 * lookback + 1 window centred on it (swing lows
        mirror this). A single candle may be both.

        Args:
            candles: Candle sequence, oldest first
            lookback: Candles required on each side (config default when None)

        Returns:
            (swing_highs, swing_lows), each ordered by index
        """
        lookback = self.config.structure.swing_lookback if lookback is None else lookback
        swing_highs: List[SwingPoint] = []
        swing_lows: List[SwingPoint] = []

        for i in range(lookback, len(candles) - lookback):
            candle = candles[i]
            is_high = True
            is_low = True

            for j in range(1, lookback + 1):
                before, after = candles[i - j], candles[i + j]
                if candle.high <= before.high or candle.high <= after.high:
                    is_high = False
                if candle.low >= before.low or candle.low >= after.low:
                    is_low = False
                if not is_high and not is_low:
                    break

            if is_high:
                swing_highs.append(SwingPoint(index=i, price=candle.high, kind=SwingKind.HIGH))
            if is_low:
                swing_lows.append(SwingPoint(index=i, price=candle.low, kind=SwingKind.LOW))

        return swing_highs, swing_lows

    def analyze_structure(self, candles: Sequence[Candle]) -> StructureState:
        """
        Derive trend, structure breaks and reversals from swing points.

        Args:
            candles: Candle sequence, oldest first

        Returns:
            StructureState (NEUTRAL and empty when data is too short)
        """
        cfg = self.config.structure
        if len(candles) < cfg.min_candles:
            return StructureState()

        swing_highs, swing_lows = self.find_swings(candles)
        trend = trend_from_swings(swing_highs, swing_lows)

        breaks = self._detect_breaks(swing_highs, swing_lows)
        reversals = self._detect_reversals(swing_highs, swing_lows)

        return StructureState(
            trend=trend,
            swing_highs=tuple(swing_highs),
            swing_lows=tuple(swing_lows),
            breaks=tuple(breaks[-cfg.max_breaks:]) if cfg.max_breaks > 0 else (),
            reversals=tuple(reversals[-cfg.max_reversals:]) if cfg.max_reversals > 0 else (),
        )

    def _detect_breaks(
        self,
        swing_highs: Sequence[SwingPoint],
        swing_lows: Sequence[SwingPoint]
    ) -> List[BreakEvent]:
        """Every swing high above its predecessor, every swing low below its predecessor."""
        breaks = []

        for prev, current in zip(swing_highs, swing_highs[1:]):
            if current.price > prev.price:
                breaks.append(BreakEvent(direction=Trend.BULLISH, level=prev.price, index=current.index))

        for prev, current in zip(swing_lows, swing_lows[1:]):
            if current.price < prev.price:
                breaks.append(BreakEvent(direction=Trend.BEARISH, level=prev.price, index=current.index))

        return sorted(breaks, key=lambda b: b.index)

    def _detect_reversals(
        self,
        swing_highs: Sequence[SwingPoint],
        swing_lows: Sequence[SwingPoint]
    ) -> List[ReversalEvent]:
        """
        Walk swings in time order and flag the ones that contradict the
        trend established by the swings before them.

        - Lower high while the prevailing trend is bullish -> bearish CHoCH
        - Higher low while the prevailing trend is bearish -> bullish CHoCH
        """
        ordered = sorted(
            list(swing_highs) + list(swing_lows),
            key=lambda s: (s.index, 0 if s.kind == SwingKind.HIGH else 1),
        )

        reversals = []
        highs_seen: List[SwingPoint] = []
        lows_seen: List[SwingPoint] = []

        for swing in ordered:
            prevailing = trend_from_swings(highs_seen, lows_seen)

            if swing.kind == SwingKind.HIGH:
                if prevailing == Trend.BULLISH and swing.price < highs_seen[-1].price:
                    reversals.append(ReversalEvent(
                        direction=Trend.BEARISH,
                        level=highs_seen[-1].price,
                        index=swing.index,
                    ))
                highs_seen.append(swing)
            else:
                if prevailing == Trend.BEARISH and swing.price > lows_seen[-1].price:
                    reversals.append(ReversalEvent(
                        direction=Trend.BULLISH,
                        level=lows_seen[-1].price,
                        index=swing.index,
                    ))
                lows_seen.append(swing)

        return reversals

    def detect_order_blocks(self, candles: Sequence[Candle], atr: float) -> List[Zone]:
        """
        Detect order blocks (last opposing candle before an impulsive move).

        Bullish OB: a bearish candle followed, one candle later, by a bullish
        candle whose body exceeds ATR * 1.5. The zone spans the bearish
        candle's low to its body top. Bearish OB mirrors this and spans the
        bullish candle's body bottom to its high.

        Args:
            candles: Candle sequence, oldest first
            atr: Current ATR

        Returns:
            Zones sorted most recent first, capped to the configured maximum
        """
        cfg = self.config.zones
        if len(candles) < cfg.min_candles:
            return []

        price = candles[-1].close
        threshold = atr * cfg.impulse_atr_multiplier
        zones = []

        for i in range(2, len(candles) - 1):
            prev = candles[i - 1]
            nxt = candles[i + 1]

            if prev.is_bearish and nxt.is_bullish and nxt.close - nxt.open > threshold:
                zones.append(Zone(
                    type=ZoneType.BULLISH,
                    top=prev.body_top,
                    bottom=prev.low,
                    index=i - 1,
                    time=prev.time,
                ))
            elif prev.is_bullish and nxt.is_bearish and nxt.open - nxt.close > threshold:
                zones.append(Zone(
                    type=ZoneType.BEARISH,
                    top=prev.high,
                    bottom=prev.body_bottom,
                    index=i - 1,
                    time=prev.time,
                ))

        evaluated = [evaluate_zone(z, price, atr, cfg) for z in zones]
        evaluated.sort(key=lambda z: z.index, reverse=True)
        return evaluated[:cfg.max_zones]

    def detect_fair_value_gaps(self, candles: Sequence[Candle]) -> List[Gap]:
        """
        Detect fair value gaps (3-candle imbalances).

        FVG = gap between candle 1 high and candle 3 low (bullish)
              or candle 3 high and candle 1 low (bearish)

        Args:
            candles: Candle sequence, oldest first

        Returns:
            Gaps sorted most recent first, capped to the configured maximum
        """
        cfg = self.config.gaps
        if len(candles) < cfg.min_candles:
            return []

        price = candles[-1].close
        gaps = []

        for i in range(1, len(candles) - 1):
            candle1 = candles[i - 1]
            candle2 = candles[i]
            candle3 = candles[i + 1]

            if candle3.low > candle1.high:
                gaps.append(Gap(
                    type=ZoneType.BULLISH,
                    top=candle3.low,
                    bottom=candle1.high,
                    size=candle3.low - candle1.high,
                    index=i,
                    time=candle2.time,
                ))
            elif candle3.high < candle1.low:
                gaps.append(Gap(
                    type=ZoneType.BEARISH,
                    top=candle1.low,
                    bottom=candle3.high,
                    size=candle1.low - candle3.high,
                    index=i,
                    time=candle2.time,
                ))

        evaluated = [evaluate_gap(g, price, cfg) for g in gaps]
        evaluated.sort(key=lambda g: g.index, reverse=True)
        return evaluated[:cfg.max_gaps]

    def resolve_key_levels(self, candles: Sequence[Candle], structure: StructureState) -> KeyLevels:
        """
        Resolve support/resistance around the current price.

        Resistance is the latest swing high (else the highest high of the
        trailing window), support the latest swing low (else the lowest low).

        Args:
            candles: Candle sequence, oldest first (non-empty)
            structure: Structure state from analyze_structure

        Returns:
            KeyLevels with the recent swing levels tagged by side
        """
        cfg = self.config.levels
        window = candles[-cfg.window:]

        last_high = structure.last_swing_high
        last_low = structure.last_swing_low
        resistance = last_high.price if last_high else max(c.high for c in window)
        support = last_low.price if last_low else min(c.low for c in window)

        price = candles[-1].close
        price_range = resistance - support
        if price_range != 0:
            position = round((price - support) / price_range * 100, 1)
        else:
            position = 50.0

        levels: List[PriceLevel] = []
        n = cfg.max_levels_per_side
        if n > 0:
            levels.extend(
                PriceLevel(price=sh.price, type=LevelType.RESISTANCE, source="SWING_HIGH")
                for sh in structure.swing_highs[-n:]
            )
            levels.extend(
                PriceLevel(price=sl.price, type=LevelType.SUPPORT, source="SWING_LOW")
                for sl in structure.swing_lows[-n:]
            )

        return KeyLevels(
            support=support,
            resistance=resistance,
            midpoint=(support + resistance) / 2,
            range=price_range,
            price_position=position,
            levels=tuple(levels),
        )

    def analyze_liquidity(self, candles: Sequence[Candle]) -> Optional[LiquidityState]:
        """
        Locate price within the recent session range and flag liquidity sweeps.

        Swings are searched only inside the trailing window, with their own
        (shorter) lookback.

        Args:
            candles: Candle sequence, oldest first

        Returns:
            LiquidityState, or None when the data is too short or the window
            holds fewer than two swings
        """
        cfg = self.config.liquidity
        if len(candles) < cfg.min_candles:
            return None

        recent = candles[-cfg.window:]
        swing_highs, swing_lows = self.find_swings(recent, cfg.swing_lookback)
        if len(swing_highs) + len(swing_lows) < 2:
            return None

        session_high = max(c.high for c in recent)
        session_low = min(c.low for c in recent)
        midpoint = (session_high + session_low) / 2

        last = candles[-1]
        if last.close > midpoint:
            zone = PriceZone.PREMIUM
        elif last.close < midpoint:
            zone = PriceZone.DISCOUNT
        else:
            zone = PriceZone.EQUILIBRIUM

        high_prices = [s.price for s in swing_highs]
        low_prices = [s.price for s in swing_lows]
        sweep = (
            (bool(high_prices) and last.high > max(high_prices))
            or (bool(low_prices) and last.low < min(low_prices))
        )

        n = cfg.recent_swings
        return LiquidityState(
            session_high=session_high,
            session_low=session_low,
            midpoint=midpoint,
            zone=zone,
            sweep=sweep,
            recent_swing_highs=tuple(high_prices[-n:]) if n > 0 else (),
            recent_swing_lows=tuple(low_prices[-n:]) if n > 0 else (),
        )

    def _cluster_tolerance(self, candles: Sequence[Candle]) -> float:
        """Relative clustering tolerance: half the average range over average price."""
        cfg = self.config.liquidity
        recent = candles[-cfg.tolerance_window:]
        if not recent:
            return cfg.fallback_tolerance

        avg_range = sum(c.high - c.low for c in recent) / len(recent)
        avg_price = sum(c.close for c in recent) / len(recent)
        if avg_price == 0:
            return cfg.fallback_tolerance
        return avg_range / avg_price * cfg.tolerance_range_fraction

    def detect_liquidity_pools(
        self,
        candles: Sequence[Candle],
        structure: StructureState
    ) -> List[LiquidityPool]:
        """
        Cluster equal swing highs into buy-side and equal swing lows into
        sell-side liquidity pools.

        Strength grows with the number of swings in the cluster and is capped
        at 100.

        Args:
            candles: Candle sequence, oldest first (sets the tolerance)
            structure: Structure state providing the swings

        Returns:
            Pools sorted strongest first, capped to the configured maximum
        """
        cfg = self.config.liquidity
        tolerance = self._cluster_tolerance(candles)

        pools: List[LiquidityPool] = []
        for side, swings in (
            (LiquiditySide.BUY_SIDE, structure.swing_highs),
            (LiquiditySide.SELL_SIDE, structure.swing_lows),
        ):
            for level, count in cluster_prices([s.price for s in swings], tolerance):
                if count < cfg.min_touches:
                    continue
                pools.append(LiquidityPool(
                    side=side,
                    level=level,
                    count=count,
                    strength=min(100, count * cfg.strength_per_touch),
                ))

        pools.sort(key=lambda p: p.strength, reverse=True)
        return pools[:cfg.max_pools]
