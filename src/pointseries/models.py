"""
Point payload model and timestamp helpers.

Timestamps are XDate values: fractional days since 1899-12-30 (the OLE automation
epoch), so one second is roughly 1.16e-5 and the default comparison tolerance of
1e-9 is well below a millisecond.

| XDate    | UTC                 |
| :---     | :---                |
| 0.0      | 1899-12-30 00:00:00 |
| 25569.0  | 1970-01-01 00:00:00 |
| 45292.5  | 2024-01-01 12:00:00 |
"""

from datetime import UTC
from datetime import datetime
from datetime import timedelta
from typing import Protocol

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

XDATE_EPOCH = datetime(1899, 12, 30, tzinfo=UTC)
SECONDS_PER_DAY = 86400.0

PRICE_FIELDS = ("open", "high", "low", "close")


class Timestamped(Protocol):
    """Anything an ordered point store can hold."""

    @property
    def timestamp(self) -> float: ...


def to_xdate(moment: datetime) -> float:
    """Convert a datetime into XDate days. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - XDATE_EPOCH).total_seconds() / SECONDS_PER_DAY


def from_xdate(value: float) -> datetime:
    """Convert XDate days back into an aware UTC datetime."""
    return XDATE_EPOCH + timedelta(days=value)


def describe_timestamp(value: float) -> str:
    """Render an XDate for error messages, with the calendar date when representable."""
    try:
        return f"{value!r} ({from_xdate(value).isoformat(sep=' ')})"
    except (OverflowError, ValueError):
        return repr(value)


class CandlePoint(BaseModel):
    """Candle point carried by a chart series. Prices are finite, missing ones are ``None``."""

    model_config = ConfigDict(frozen=True)

    timestamp: float = Field(..., allow_inf_nan=False, description="XDate of the point")
    open: float | None = Field(None, allow_inf_nan=False)
    high: float | None = Field(None, allow_inf_nan=False)
    low: float | None = Field(None, allow_inf_nan=False)
    close: float | None = Field(None, allow_inf_nan=False)
    buy_volume: int = Field(0, ge=0, description="Buy volume must be non-negative")
    sell_volume: int = Field(0, ge=0, description="Sell volume must be non-negative")

    @field_validator("low")
    @classmethod
    def low_must_not_exceed_high(cls, v, info):
        """Validate that low is not above high when both are present."""
        high = info.data.get("high")
        if v is not None and high is not None and v > high:
            msg = "Low must be <= high"
            raise ValueError(msg)
        return v

    @classmethod
    def at(cls, moment: datetime, **fields) -> "CandlePoint":
        """Build a point stamped with ``moment``."""
        return cls(timestamp=to_xdate(moment), **fields)

    @property
    def moment(self) -> datetime:
        return from_xdate(self.timestamp)

    @property
    def volume(self) -> int:
        return self.buy_volume + self.sell_volume
