"""
Running min/max over the last W elements of a growable sequence.

Every new element is compared with the element just before it:

- rising: the previous element can never again be the window maximum while the
  new one is in the window, so it only stays eligible as a minimum;
- falling: symmetrically it only stays eligible as a maximum;
- equal: it stays eligible for both, which keeps ties on the earliest index.

Those previous elements are pushed onto two monotonic deques of indices (min
candidates non-decreasing, max candidates non-increasing front to back). The
newest element is never stored; it wins whenever its deque is empty. Each index
enters and leaves each deque at most once, so ``add`` is O(1) amortized, and
indices that slide out of the window are dropped from the front only.

    values = []
    window = SlidingWindowMinMax(values, capacity=4)
    for v in (5, 5, 5, 5, 3):
        window.add(v)
    window.current_min(), window.current_max()  # (3, 5)
    window.min_index, window.max_index  # (4, 1)
"""

from collections import deque
from collections.abc import Callable
from typing import Any
from typing import Deque
from typing import Generic
from typing import Optional
from typing import Protocol
from typing import TypeVar

from pointseries.exceptions import ConfigurationError
from pointseries.exceptions import EmptyWindowError

DEFAULT_CAPACITY = 256

E = TypeVar("E")


class SupportsLessThan(Protocol):
    """Ordering capability required from tracked values."""

    def __lt__(self, other: Any, /) -> bool: ...


class GrowableSequence(Protocol[E]):
    """Backing sequence a window appends to and reads back by index."""

    def append(self, value: E, /) -> None: ...

    def __getitem__(self, index: int, /) -> E: ...

    def __len__(self) -> int: ...

    def clear(self) -> None: ...


def is_power_of_two(value: int) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value > 0 and value & (value - 1) == 0


class SlidingWindowMinMax(Generic[E]):
    """
    Tracks min/max over the last ``capacity`` elements of ``values``.

    ``values`` is borrowed, not owned: :meth:`add` appends to it and candidates are
    read back by index, so it must only grow through the window (or be reset with
    :meth:`clear`). Elements already present are scanned once at construction.
    ``key`` maps an element to the value it is ordered by; elements are compared
    directly when it is omitted. Values must be totally ordered (no NaN).

    https://leetcode.com/problems/sliding-window-maximum/
    """

    def __init__(
        self,
        values: GrowableSequence[E],
        capacity: int = DEFAULT_CAPACITY,
        *,
        key: Optional[Callable[[E], SupportsLessThan]] = None,
    ):
        if values is None:
            raise ConfigurationError("values must be a growable sequence, got None")
        if not is_power_of_two(capacity):
            raise ConfigurationError(f"capacity must be a power of two, got {capacity}")

        self._values = values
        self._capacity = capacity
        self._key = key
        self._min_candidates: Deque[int] = deque()
        self._max_candidates: Deque[int] = deque()
        self._min_idx = 0
        self._max_idx = 0

        for index in range(len(values)):
            self._update(index)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def min_index(self) -> int:
        """Backing index of the current minimum (earliest on ties)."""
        self._require_data()
        return self._min_idx

    @property
    def max_index(self) -> int:
        """Backing index of the current maximum (earliest on ties)."""
        self._require_data()
        return self._max_idx

    def __len__(self) -> int:
        """Number of elements currently inside the window."""
        return min(len(self._values), self._capacity)

    def add(self, value: E) -> None:
        """
        Append ``value`` to the backing sequence and update the extrema.

        If the backing sequence rejects the value, the window is left unchanged.
        """
        self._values.append(value)
        self._update(len(self._values) - 1)

    def current_min(self) -> E:
        return self._values[self.min_index]

    def current_max(self) -> E:
        return self._values[self.max_index]

    def clear(self) -> None:
        """Empty the backing sequence and reset the window."""
        self._values.clear()
        self._min_candidates.clear()
        self._max_candidates.clear()
        self._min_idx = self._max_idx = 0

    def _value(self, index: int) -> SupportsLessThan:
        item = self._values[index]
        return self._key(item) if self._key is not None else item

    def _update(self, newest: int) -> None:
        if newest == 0:
            self._min_idx = self._max_idx = 0
            return

        min_candidates = self._min_candidates
        max_candidates = self._max_candidates
        prev = newest - 1
        value = self._value(newest)
        prev_value = self._value(prev)

        if prev_value < value:
            min_candidates.append(prev)
            while max_candidates and self._value(max_candidates[-1]) < value:
                max_candidates.pop()
        elif value < prev_value:
            max_candidates.append(prev)
            while min_candidates and value < self._value(min_candidates[-1]):
                min_candidates.pop()
        else:
            min_candidates.append(prev)
            max_candidates.append(prev)

        # at most one index leaves the window per add, but W == 1 expires prev itself
        window_start = newest - self._capacity + 1
        while min_candidates and min_candidates[0] < window_start:
            min_candidates.popleft()
        while max_candidates and max_candidates[0] < window_start:
            max_candidates.popleft()

        self._min_idx = min_candidates[0] if min_candidates else newest
        self._max_idx = max_candidates[0] if max_candidates else newest

    def _require_data(self) -> None:
        if not len(self._values):
            raise EmptyWindowError("window is empty")
