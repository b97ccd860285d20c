"""
Chart series backed by an ordered point store and a sliding extrema window.

The window's backing sequence is the store itself, so a point is appended once
and serves both date-keyed cursor lookups and the visible value range.
"""

import logging
from collections.abc import Iterator
from datetime import datetime
from operator import attrgetter
from typing import Optional

from pointseries.config import AppSettings
from pointseries.config import get_settings
from pointseries.exceptions import ConfigurationError
from pointseries.exceptions import MissingValueError
from pointseries.models import PRICE_FIELDS
from pointseries.models import CandlePoint
from pointseries.models import describe_timestamp
from pointseries.models import to_xdate
from pointseries.point_store import OrderedPointStore
from pointseries.sliding_windows import SlidingWindowMinMax

logger = logging.getLogger(__name__)


class PointSeries:
    """
    Candle series feeding a chart curve.

    add(): validates and appends a point, updating the window extrema in O(1) amortized
    value_range(): (min, max) of ``value_field`` over the last ``capacity`` points
    point_at_timestamp(): first point at or after a cursor position, O(log n)

    Unset arguments fall back to ``config.store`` / ``config.extrema``.
    """

    def __init__(
        self,
        name: str,
        *,
        capacity: Optional[int] = None,
        value_field: Optional[str] = None,
        date_index: Optional[bool] = None,
        config: Optional[AppSettings] = None,
    ):
        self.config = config or get_settings()
        self.name = name

        store_cfg = self.config.store
        extrema_cfg = self.config.extrema
        if value_field is None:
            value_field = extrema_cfg.value_field
        else:
            value_field = value_field.lower()
        if value_field not in PRICE_FIELDS:
            raise ConfigurationError(
                f"value_field must be one of {', '.join(PRICE_FIELDS)}, got {value_field!r}"
            )
        if capacity is None:
            capacity = extrema_cfg.window_capacity
        if date_index is None:
            date_index = store_cfg.date_index

        self._value_field = value_field
        self._value_of = attrgetter(value_field)
        self._store: OrderedPointStore[CandlePoint] = OrderedPointStore(
            date_index=date_index, tolerance=store_cfg.timestamp_tolerance
        )
        self._window = SlidingWindowMinMax(self._store, capacity, key=self._value_of)

        logger.debug(
            "Series %s created (capacity=%d, value_field=%s, date_index=%s)",
            name,
            capacity,
            value_field,
            date_index,
        )

    @property
    def value_field(self) -> str:
        return self._value_field

    @property
    def capacity(self) -> int:
        return self._window.capacity

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[CandlePoint]:
        return iter(self._store)

    def add(self, point: CandlePoint) -> None:
        """
        Append a point to the series.

        Raises:
            MissingValueError: If the point has no value for ``value_field``
            OrderingError: If the date index is on and the timestamp does not increase
        """
        if self._value_of(point) is None:
            raise MissingValueError(
                f"{self.name}: point at {describe_timestamp(point.timestamp)} "
                f"has no {self._value_field} value"
            )
        self._window.add(point)

    def add_values(
        self,
        timestamp: float | datetime,
        open: Optional[float],
        high: Optional[float],
        low: Optional[float],
        close: Optional[float],
        buy_volume: int = 0,
        sell_volume: int = 0,
    ) -> CandlePoint:
        """Build a :class:`CandlePoint` from raw values, append it and return it."""
        if isinstance(timestamp, datetime):
            timestamp = to_xdate(timestamp)
        point = CandlePoint(
            timestamp=timestamp,
            open=open,
            high=high,
            low=low,
            close=close,
            buy_volume=buy_volume,
            sell_volume=sell_volume,
        )
        self.add(point)
        return point

    def point_at(self, ordinal: int) -> CandlePoint:
        return self._store.get(ordinal)

    def ordinal_at_timestamp(self, timestamp: float | datetime) -> Optional[int]:
        if isinstance(timestamp, datetime):
            timestamp = to_xdate(timestamp)
        return self._store.lookup_by_timestamp(timestamp)

    def point_at_timestamp(self, timestamp: float | datetime) -> Optional[CandlePoint]:
        """Resolve a cursor position to the first point at or after it, or None."""
        if isinstance(timestamp, datetime):
            timestamp = to_xdate(timestamp)
        return self._store.point_at_or_after(timestamp)

    def extremes(self) -> tuple[CandlePoint, CandlePoint]:
        """
        Points holding the window minimum and maximum of ``value_field``.

        Raises:
            EmptyWindowError: If the series is empty
        """
        return self._window.current_min(), self._window.current_max()

    def value_range(self) -> tuple[float, float]:
        """
        (min, max) of ``value_field`` over the window, for axis scaling.

        Raises:
            EmptyWindowError: If the series is empty
        """
        low_point, high_point = self.extremes()
        return self._value_of(low_point), self._value_of(high_point)

    def clear(self) -> None:
        self._window.clear()
        logger.info("Series %s cleared", self.name)
