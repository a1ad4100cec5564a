"""Base model and shared field types for SMC Signals schemas."""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

from smcsignals.models import LevelType, ZoneType

TimeField = Optional[Union[int, float, str]]


class BaseSchema(BaseModel):
    """Base class for all report schemas with common config."""

    model_config = {
        "json_schema_extra": {"additionalProperties": False},
        "use_enum_values": True,
    }

    @classmethod
    def get_json_schema(cls) -> Dict[str, Any]:
        """Get JSON schema for display layers that validate reports."""
        schema = cls.model_json_schema()
        schema["title"] = cls.__name__
        return schema


class PriceLevelSchema(BaseSchema):
    """A support or resistance level with its origin."""

    price: float = Field(..., description="Price level")
    type: LevelType = Field(..., description="SUPPORT or RESISTANCE")
    source: str = Field(..., description="Where the level came from, e.g. SWING_HIGH")


class ZoneSchema(BaseSchema):
    """Order block zone."""

    type: ZoneType = Field(..., description="Bullish (demand) or bearish (supply) zone")
    top: float = Field(..., description="Zone top price")
    bottom: float = Field(..., description="Zone bottom price")
    index: int = Field(..., ge=0, description="Index of the originating candle")
    time: TimeField = Field(None, description="Time of the originating candle")
    active: bool = Field(False, description="Price is within or near the zone")
    mitigated: bool = Field(False, description="Price has traded through the zone")
    distance: float = Field(0.0, description="Signed distance from price to the near edge")


class GapSchema(BaseSchema):
    """Fair value gap."""

    type: ZoneType = Field(..., description="Bullish or bearish imbalance")
    top: float = Field(..., description="Gap top price")
    bottom: float = Field(..., description="Gap bottom price")
    size: float = Field(..., ge=0, description="top - bottom")
    index: int = Field(..., ge=0, description="Index of the middle candle")
    time: TimeField = Field(None, description="Time of the middle candle")
    active: bool = Field(False, description="Gap is unfilled and near price")
    filled: bool = Field(False, description="Price has closed the gap")
    distance: float = Field(0.0, description="Signed distance from price to the near edge")
