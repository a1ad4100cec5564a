"""
Analysis Configuration

Every tunable threshold of the pipeline lives here, grouped per stage:
- Indicator periods (EMA/RSI/ATR/MACD)
- Swing lookback and structure history caps
- Order block and fair value gap detection thresholds
- Session liquidity window and equal high/low clustering
- Bias points and confluence weights
- Signal gating, stop buffers and target multiples

Configurations are frozen so a single instance can be shared across threads.
"""

import json
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Tuple, Type, TypeVar

import yaml

T = TypeVar("T")


def _section_from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Build a config section, rejecting unknown keys."""
    data = data or {}
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} option(s): {', '.join(unknown)}")

    values = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        # YAML/JSON give lists, the dataclasses hold tuples
        if isinstance(value, list):
            value = tuple(value)
        values[f.name] = value
    return cls(**values)


def _section_to_dict(section: Any) -> Dict[str, Any]:
    return {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in asdict(section).items()
    }


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator periods."""
    ema_fast: int = 20
    ema_mid: int = 50
    ema_slow: int = 200
    rsi_period: int = 14
    atr_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    volatility_window: int = 10
    volatility_high_ratio: float = 1.3
    volatility_low_ratio: float = 0.7


@dataclass(frozen=True)
class StructureConfig:
    swing_lookback: int = 3
    min_candles: int = 5
    max_breaks: int = 5
    max_reversals: int = 3


@dataclass(frozen=True)
class ZoneConfig:
    """Order block detection."""
    min_candles: int = 10
    impulse_atr_multiplier: float = 1.5
    bullish_upper_tolerance: float = 1.02   # active up to top * 1.02
    bearish_lower_tolerance: float = 0.98   # active down to bottom * 0.98
    proximity_atr_multiplier: float = 2.0
    max_zones: int = 10


@dataclass(frozen=True)
class GapConfig:
    """Fair value gap detection."""
    min_candles: int = 3
    bullish_active_tolerance: float = 1.01
    bearish_active_tolerance: float = 0.99
    max_gaps: int = 10


@dataclass(frozen=True)
class LevelConfig:
    window: int = 30
    max_levels_per_side: int = 5


@dataclass(frozen=True)
class LiquidityConfig:
    """Session liquidity and equal high/low clustering."""
    min_candles: int = 5
    window: int = 30
    swing_lookback: int = 2
    recent_swings: int = 2
    tolerance_window: int = 20
    tolerance_range_fraction: float = 0.5  # cluster tolerance as a share of average range / price
    fallback_tolerance: float = 0.001
    strength_per_touch: int = 25
    min_touches: int = 1
    max_pools: int = 10


@dataclass(frozen=True)
class BiasConfig:
    """Points awarded by the bias scorer."""
    ema_fast_mid_points: int = 2
    ema_mid_slow_points: int = 1
    price_ema_fast_points: int = 1
    price_ema_slow_points: int = 1
    structure_points: int = 3
    rsi_points: int = 1
    rsi_bullish_above: float = 55.0
    rsi_bearish_below: float = 45.0
    macd_points: int = 1
    reversal_points: int = 2


@dataclass(frozen=True)
class ConfluenceConfig:
    """Confluence weight table and factor thresholds."""
    ema_weight: float = 20.0
    structure_weight: float = 25.0
    order_block_weight: float = 20.0
    gap_weight: float = 15.0
    rsi_weight: float = 10.0
    macd_weight: float = 10.0
    order_block_at_atr: float = 0.5
    order_block_near_atr: float = 1.5
    rsi_bullish_band: Tuple[float, float] = (40.0, 70.0)
    rsi_bearish_band: Tuple[float, float] = (30.0, 60.0)
    rsi_neutral_band: Tuple[float, float] = (30.0, 70.0)
    direction_threshold: int = 50

    @property
    def max_score(self) -> float:
        return (
            self.ema_weight + self.structure_weight + self.order_block_weight
            + self.gap_weight + self.rsi_weight + self.macd_weight
        )


@dataclass(frozen=True)
class SignalConfig:
    """Signal gating and trade level construction."""
    min_confidence: int = 40
    stop_buffer_atr: float = 0.3
    fallback_stop_atr: float = 1.5
    fallback_atr_pct: float = 0.01  # ATR substitute as a fraction of price when ATR is 0
    target_multiples: Tuple[float, float, float] = (1.5, 2.5, 3.5)
    min_risk_reward: float = 1.5
    enforce_min_risk_reward: bool = True
    price_decimals: int = 8


@dataclass(frozen=True)
class PipelineConfig:
    min_candles: int = 20


@dataclass(frozen=True)
class AnalysisConfig:
    """Master configuration for one pipeline."""
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    structure: StructureConfig = field(default_factory=StructureConfig)
    zones: ZoneConfig = field(default_factory=ZoneConfig)
    gaps: GapConfig = field(default_factory=GapConfig)
    levels: LevelConfig = field(default_factory=LevelConfig)
    liquidity: LiquidityConfig = field(default_factory=LiquidityConfig)
    bias: BiasConfig = field(default_factory=BiasConfig)
    confluence: ConfluenceConfig = field(default_factory=ConfluenceConfig)
    signal: SignalConfig = field(default_factory=SignalConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        ind = self.indicators

        for name in ("ema_fast", "ema_mid", "ema_slow", "rsi_period", "atr_period",
                     "macd_fast", "macd_slow", "macd_signal"):
            if getattr(ind, name) < 1:
                errors.append(f"indicators.{name} must be >= 1")
        if ind.macd_fast >= ind.macd_slow:
            errors.append("indicators.macd_fast must be smaller than macd_slow")
        if ind.volatility_window < 1:
            errors.append("indicators.volatility_window must be >= 1")
        if not 0 < ind.volatility_low_ratio < ind.volatility_high_ratio:
            errors.append("indicators.volatility_low_ratio must be positive and below volatility_high_ratio")

        if self.structure.swing_lookback < 1:
            errors.append("structure.swing_lookback must be >= 1")
        if self.zones.impulse_atr_multiplier <= 0:
            errors.append("zones.impulse_atr_multiplier must be > 0")
        if self.levels.window < 1:
            errors.append("levels.window must be >= 1")

        liq = self.liquidity
        for name in ("window", "swing_lookback", "tolerance_window", "min_touches"):
            if getattr(liq, name) < 1:
                errors.append(f"liquidity.{name} must be >= 1")
        if liq.tolerance_range_fraction <= 0 or liq.fallback_tolerance <= 0:
            errors.append("liquidity tolerances must be > 0")

        conf = self.confluence
        weights = (conf.ema_weight, conf.structure_weight, conf.order_block_weight,
                   conf.gap_weight, conf.rsi_weight, conf.macd_weight)
        if any(w < 0 for w in weights):
            errors.append("confluence weights must be >= 0")
        if conf.order_block_at_atr > conf.order_block_near_atr:
            errors.append("confluence.order_block_at_atr must not exceed order_block_near_atr")
        for name in ("rsi_bullish_band", "rsi_bearish_band", "rsi_neutral_band"):
            band = getattr(conf, name)
            if len(band) != 2 or band[0] >= band[1]:
                errors.append(f"confluence.{name} must be an increasing (low, high) pair")
        if not 0 <= conf.direction_threshold <= 100:
            errors.append("confluence.direction_threshold must be between 0 and 100")

        sig = self.signal
        if not 0 <= sig.min_confidence <= 100:
            errors.append("signal.min_confidence must be between 0 and 100")
        if len(sig.target_multiples) != 3:
            errors.append("signal.target_multiples must hold exactly three values")
        elif any(m <= 0 for m in sig.target_multiples) or list(sig.target_multiples) != sorted(sig.target_multiples):
            errors.append("signal.target_multiples must be positive and ascending")
        if sig.min_risk_reward <= 0:
            errors.append("signal.min_risk_reward must be > 0")
        if sig.fallback_atr_pct <= 0:
            errors.append("signal.fallback_atr_pct must be > 0")

        if self.pipeline.min_candles < 2:
            errors.append("pipeline.min_candles must be >= 2")

        return errors

    def with_overrides(self, **sections: Dict[str, Any]) -> "AnalysisConfig":
        """
        Return a copy with selected options replaced.

        Example:
            config.with_overrides(signal={"min_confidence": 60})
        """
        updated = {}
        for name, overrides in sections.items():
            current = getattr(self, name)
            updated[name] = replace(current, **overrides)
        return replace(self, **updated)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {f.name: _section_to_dict(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        """Create from dictionary. Missing sections and options keep their defaults."""
        data = data or {}
        unknown = sorted(set(data) - {f.name for f in fields(cls)})
        if unknown:
            raise ValueError(f"Unknown config section(s): {', '.join(unknown)}")

        return cls(
            indicators=_section_from_dict(IndicatorConfig, data.get("indicators", {})),
            structure=_section_from_dict(StructureConfig, data.get("structure", {})),
            zones=_section_from_dict(ZoneConfig, data.get("zones", {})),
            gaps=_section_from_dict(GapConfig, data.get("gaps", {})),
            levels=_section_from_dict(LevelConfig, data.get("levels", {})),
            liquidity=_section_from_dict(LiquidityConfig, data.get("liquidity", {})),
            bias=_section_from_dict(BiasConfig, data.get("bias", {})),
            confluence=_section_from_dict(ConfluenceConfig, data.get("confluence", {})),
            signal=_section_from_dict(SignalConfig, data.get("signal", {})),
            pipeline=_section_from_dict(PipelineConfig, data.get("pipeline", {})),
        )


DEFAULT_CONFIG = AnalysisConfig()


def get_default_config() -> AnalysisConfig:
    """Get the default analysis configuration."""
    return DEFAULT_CONFIG


def load_analysis_config(config_path: str) -> AnalysisConfig:
    """
    Load analysis configuration from YAML or JSON file.

    Args:
        config_path: Path to configuration file (.yaml, .yml, or .json)

    Returns:
        AnalysisConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the file format or its content is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix in [".yaml", ".yml"]:
            data = yaml.safe_load(f)
        elif path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

    config = AnalysisConfig.from_dict(data or {})
    errors = config.validate()
    if errors:
        raise ValueError("Invalid analysis configuration: " + "; ".join(errors))
    return config


def save_analysis_config(config: AnalysisConfig, config_path: str) -> None:
    """
    Save analysis configuration to YAML or JSON file.

    Args:
        config: AnalysisConfig instance
        config_path: Path to save configuration
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(path, "w", encoding="utf-8") as f:
        if path.suffix in [".yaml", ".yml"]:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)
