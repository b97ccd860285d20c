"""
Chronologically ordered point store with an optional timestamp index.

Points are appended in time order and leave only from the head, so a current
ordinal converts to the absolute insertion ordinal by adding the number of
evicted points (the offset). The index is a list of ``(timestamp, absolute_ordinal)``
pairs parallel to the points and is searched with a lower-bound binary search.

Timestamps are compared with a tolerance (``DEFAULT_TOLERANCE`` XDate days) for
ordering, equality and lookup alike.
"""

import logging
import math
from collections.abc import Iterable
from collections.abc import Iterator
from itertools import islice
from typing import Generic
from typing import Optional
from typing import TypeVar

from pointseries.exceptions import ConfigurationError
from pointseries.exceptions import InteriorRemovalError
from pointseries.exceptions import OrderingError
from pointseries.exceptions import OutOfRangeError
from pointseries.models import Timestamped
from pointseries.models import describe_timestamp

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-9

# Evicted slots are compacted away once there are at least this many and they
# make up half of the backing list.
_COMPACT_MIN = 64

P = TypeVar("P", bound=Timestamped)


class OrderedPointStore(Generic[P]):
    """
    Append-ordered sequence of timed points with lookup by timestamp.

    With ``date_index`` enabled every appended timestamp must be strictly greater
    than the last one; a violating append raises :class:`OrderingError` and leaves
    the store untouched. Without it the store is a plain head-evicting list and
    :meth:`lookup_by_timestamp` is unavailable.

    Complexity:
    - append(), get(): O(1)
    - remove_oldest(): O(1) amortized
    - lookup_by_timestamp(): O(log n)

    Usage:
        store = OrderedPointStore()
        store.append(CandlePoint(timestamp=45292.0, close=1.1))
        store.append(CandlePoint(timestamp=45293.0, close=1.2))
        store.lookup_by_timestamp(45292.5)  # 1, first point at or after
        store.remove_oldest()
        store.lookup_by_timestamp(45292.5)  # 0
    """

    def __init__(
        self,
        points: Iterable[P] = (),
        *,
        date_index: bool = True,
        tolerance: float = DEFAULT_TOLERANCE,
    ):
        """
        Initialize the store.

        Args:
            points: Initial points, appended in order
            date_index: Maintain the timestamp index and enforce increasing timestamps
            tolerance: Timestamps closer than this are considered equal

        Raises:
            ConfigurationError: If tolerance is not positive
            OrderingError: If the initial points are not strictly increasing
        """
        if not tolerance > 0:
            raise ConfigurationError(f"tolerance must be positive, got {tolerance}")

        self._tolerance = tolerance
        self._points: list[P] = []
        self._index: Optional[list[tuple[float, int]]] = [] if date_index else None
        # Evicted slots still present at the front of _points and _index
        self._head = 0
        self._offset = 0

        self.extend(points)

    # ========================================================================
    # Introspection
    # ========================================================================

    @property
    def date_indexed(self) -> bool:
        return self._index is not None

    @property
    def offset(self) -> int:
        """Number of points evicted from the head since the last clear."""
        return self._offset

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @property
    def last_timestamp(self) -> Optional[float]:
        """Timestamp of the newest point, or None when empty."""
        if not len(self):
            return None
        if self._index is not None:
            return self._index[-1][0]
        return self._points[-1].timestamp

    def __len__(self) -> int:
        return len(self._points) - self._head

    def __iter__(self) -> Iterator[P]:
        return islice(self._points, self._head, None)

    def __getitem__(self, ordinal: int) -> P:
        return self.get(ordinal)

    def __setitem__(self, ordinal: int, point: P) -> None:
        self.replace_at(ordinal, point)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={len(self)}, offset={self._offset}, "
            f"date_indexed={self.date_indexed})"
        )

    def absolute_ordinal(self, ordinal: int) -> int:
        """Translate a current ordinal into the ordinal it was appended at."""
        self._check_ordinal(ordinal)
        return self._offset + ordinal

    # ========================================================================
    # Public API
    # ========================================================================

    def append(self, point: P) -> None:
        """
        Append a point at the end of the store.

        Raises:
            OrderingError: If indexing is enabled and the timestamp does not
                exceed the last one
        """
        timestamp = point.timestamp

        if self._index is not None:
            last = self.last_timestamp
            if last is not None and not self._is_before(last, timestamp):
                logger.debug("Rejected out-of-order point %r after %r", timestamp, last)
                raise OrderingError(
                    "Timestamps must be strictly increasing: "
                    f"{describe_timestamp(timestamp)} does not follow {describe_timestamp(last)}"
                )
            self._index.append((timestamp, self._offset + len(self)))

        self._points.append(point)

    def extend(self, points: Iterable[P]) -> None:
        """Append points in order, stopping at the first ordering violation."""
        for point in points:
            self.append(point)

    def get(self, ordinal: int) -> P:
        """
        Return the point at a current ordinal.

        Raises:
            OutOfRangeError: If the ordinal is negative or past the end
        """
        self._check_ordinal(ordinal)
        return self._points[self._head + ordinal]

    def lookup_by_timestamp(self, timestamp: float) -> Optional[int]:
        """
        Return the ordinal of the first point whose timestamp is not less than ``timestamp``.

        Args:
            timestamp: XDate to resolve, typically a cursor position

        Returns:
            Current ordinal, or None if ``timestamp`` is NaN or past every stored point

        Raises:
            ConfigurationError: If the store was created without a date index
        """
        index = self._index
        if index is None:
            raise ConfigurationError("lookup_by_timestamp requires a date-indexed store")
        if math.isnan(timestamp):
            return None

        position = self._lower_bound(index, timestamp)
        if position == len(index):
            return None
        return index[position][1] - self._offset

    def point_at_or_after(self, timestamp: float) -> Optional[P]:
        """Return the first point at or after ``timestamp``, or None."""
        ordinal = self.lookup_by_timestamp(timestamp)
        if ordinal is None:
            return None
        return self.get(ordinal)

    def remove_oldest(self) -> P:
        """
        Remove and return the point at ordinal 0.

        Every remaining ordinal shifts down by one and the offset grows by one.

        Raises:
            OutOfRangeError: If the store is empty
        """
        if not len(self):
            raise OutOfRangeError("Cannot remove from an empty store")

        point = self._points[self._head]
        self._head += 1
        self._offset += 1
        self._compact()
        return point

    def remove_at(self, ordinal: int) -> P:
        """
        Remove the point at ``ordinal``, which must be the oldest one.

        Raises:
            OutOfRangeError: If the ordinal is out of range
            InteriorRemovalError: If the ordinal is anything but 0
        """
        self._check_ordinal(ordinal)
        if ordinal != 0:
            raise InteriorRemovalError(
                f"Cannot remove intermediate points (ordinal={ordinal}, "
                f"offset={self._offset}, size={len(self)})"
            )
        return self.remove_oldest()

    def replace_at(self, ordinal: int, point: P) -> None:
        """
        Replace the point at ``ordinal`` with one carrying the same timestamp.

        Raises:
            OutOfRangeError: If the ordinal is out of range
            OrderingError: If the new timestamp differs from the existing one
        """
        current = self.get(ordinal)
        if not self._same_timestamp(current.timestamp, point.timestamp):
            raise OrderingError(
                f"Cannot change date on point #{ordinal}: "
                f"{describe_timestamp(current.timestamp)} to {describe_timestamp(point.timestamp)}"
            )
        self._points[self._head + ordinal] = point

    def clear(self) -> None:
        """Remove every point and reset the offset."""
        self._points.clear()
        if self._index is not None:
            self._index.clear()
        self._head = 0
        self._offset = 0
        logger.debug("Cleared %s", self)

    def copy(self) -> "OrderedPointStore[P]":
        """Return an independent store with the same points and an offset of 0."""
        return type(self)(self, date_index=self.date_indexed, tolerance=self._tolerance)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _lower_bound(self, index: list[tuple[float, int]], timestamp: float) -> int:
        """Binary search for the first live index entry not before ``timestamp``."""
        left, right = self._head, len(index)

        while left < right:
            mid = (left + right) // 2
            if self._is_before(index[mid][0], timestamp):
                left = mid + 1
            else:
                right = mid

        return left

    def _is_before(self, a: float, b: float) -> bool:
        return b - a > self._tolerance

    def _same_timestamp(self, a: float, b: float) -> bool:
        return abs(a - b) <= self._tolerance

    def _check_ordinal(self, ordinal: int) -> None:
        if not 0 <= ordinal < len(self):
            raise OutOfRangeError(f"Ordinal {ordinal} out of range for store of size {len(self)}")

    def _compact(self) -> None:
        """Drop evicted slots from the backing lists once they dominate."""
        head = self._head
        if head == len(self._points):
            self._points.clear()
            if self._index is not None:
                self._index.clear()
            self._head = 0
        elif head >= _COMPACT_MIN and head * 2 >= len(self._points):
            del self._points[:head]
            if self._index is not None:
                del self._index[:head]
            self._head = 0
