from operator import attrgetter

import pytest
from fixtures.mock_data import candle_walk
from fixtures.mock_data import small_int_stream
from pointseries.exceptions import ConfigurationError
from pointseries.exceptions import EmptyWindowError
from pointseries.exceptions import OrderingError
from pointseries.models import CandlePoint
from pointseries.point_store import OrderedPointStore
from pointseries.sliding_windows import SlidingWindowMinMax
from pointseries.sliding_windows import is_power_of_two


def brute_force(values, capacity):
    """Earliest (index, value) of the min and max over the trailing window."""
    start = max(0, len(values) - capacity)
    window = list(enumerate(values))[start:]
    low = min(window, key=lambda item: (item[1], item[0]))
    high = max(window, key=lambda item: (item[1], -item[0]))
    return low, high


def trace(window, stream):
    result = []
    for value in stream:
        window.add(value)
        result.append((window.min_index, window.current_min(), window.max_index, window.current_max()))
    return result


def test_min_max_updates_within_window():
    window = SlidingWindowMinMax([], capacity=4)

    window.add(10)
    window.add(5)
    window.add(20)

    assert window.current_min() == 5
    assert window.current_max() == 20


def test_values_expire_after_window():
    window = SlidingWindowMinMax([], capacity=2)

    window.add(1)
    window.add(2)
    window.add(3)  # expires the first value

    assert window.current_min() == 2
    assert window.current_max() == 3


def test_add_appends_to_backing_sequence():
    values = []
    window = SlidingWindowMinMax(values, capacity=8)

    for v in (3, 1, 4):
        window.add(v)

    assert values == [3, 1, 4]
    assert len(window) == 3


def test_len_is_bounded_by_capacity():
    window = SlidingWindowMinMax([], capacity=2)
    for v in range(5):
        window.add(v)
    assert len(window) == 2


def test_empty_window_raises():
    window = SlidingWindowMinMax([], capacity=8)

    with pytest.raises(LookupError):
        window.current_min()

    with pytest.raises(EmptyWindowError):
        window.current_max()

    with pytest.raises(EmptyWindowError):
        window.min_index


@pytest.mark.parametrize("capacity", [0, -4, 3, 100, 255, 2.0, True])
def test_capacity_must_be_power_of_two(capacity):
    with pytest.raises(ConfigurationError):
        SlidingWindowMinMax([], capacity=capacity)


@pytest.mark.parametrize("capacity", [1, 2, 64, 256, 1024])
def test_power_of_two_capacity_accepted(capacity):
    window = SlidingWindowMinMax([], capacity=capacity)
    assert window.capacity == capacity


def test_default_capacity():
    assert SlidingWindowMinMax([]).capacity == 256


def test_missing_backing_sequence_rejected():
    with pytest.raises(ConfigurationError):
        SlidingWindowMinMax(None, capacity=4)


def test_is_power_of_two():
    assert is_power_of_two(1)
    assert is_power_of_two(4096)
    assert not is_power_of_two(0)
    assert not is_power_of_two(96)


def test_ties_keep_earliest_index():
    values = []
    window = SlidingWindowMinMax(values, capacity=4)

    for _ in range(4):
        window.add(5)

    assert window.max_index == 0
    assert window.min_index == 0

    window.add(3)  # window now covers indices 1..4

    assert window.min_index == 4
    assert window.current_min() == 3
    assert window.max_index == 1
    assert window.current_max() == 5


def test_rising_tie_keeps_earlier_max():
    window = SlidingWindowMinMax([], capacity=8)
    for v in (5, 3, 5):
        window.add(v)

    assert window.max_index == 0
    assert window.min_index == 1


def test_capacity_one_tracks_newest_only():
    window = SlidingWindowMinMax([], capacity=1)
    for v in (4, 9, 2, 2, 7):
        window.add(v)
        assert window.current_min() == v
        assert window.current_max() == v
    assert window.min_index == window.max_index == 4


@pytest.mark.parametrize("capacity", [1, 2, 4, 16, 64])
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_matches_brute_force(capacity, seed):
    stream = small_int_stream(300, seed=seed)
    values = []
    window = SlidingWindowMinMax(values, capacity=capacity)

    for value in stream:
        window.add(value)
        (low_idx, low), (high_idx, high) = brute_force(values, capacity)
        assert window.current_min() == low
        assert window.current_max() == high
        assert window.min_index == low_idx
        assert window.max_index == high_idx


def test_monotonic_runs():
    rising = SlidingWindowMinMax([], capacity=4)
    falling = SlidingWindowMinMax([], capacity=4)
    for i in range(10):
        rising.add(i)
        falling.add(-i)

    assert (rising.current_min(), rising.current_max()) == (6, 9)
    assert (falling.current_min(), falling.current_max()) == (-9, -6)


def test_clear_then_replay_reproduces_trace():
    stream = small_int_stream(100, seed=5)
    fresh = trace(SlidingWindowMinMax([], capacity=8), stream)

    values = []
    window = SlidingWindowMinMax(values, capacity=8)
    trace(window, small_int_stream(37, seed=9))
    window.clear()

    assert values == []
    with pytest.raises(EmptyWindowError):
        window.current_min()
    assert trace(window, stream) == fresh


def test_existing_values_are_scanned():
    values = [4, 8, 1, 7, 7, 2]
    window = SlidingWindowMinMax(values, capacity=4)

    assert window.current_min() == 1
    assert window.current_max() == 7
    assert window.max_index == 3

    window.add(0)
    assert window.current_min() == 0
    assert window.current_max() == 7


def test_orders_any_comparable_values():
    window = SlidingWindowMinMax([], capacity=4)
    for word in ("pear", "apple", "fig", "kiwi"):
        window.add(word)

    assert window.current_min() == "apple"
    assert window.current_max() == "pear"


def test_key_function_over_point_store():
    store = OrderedPointStore()
    window = SlidingWindowMinMax(store, capacity=16, key=attrgetter("close"))
    candles = candle_walk(50)

    for candle in candles:
        window.add(candle)

    recent = candles[-16:]
    assert window.current_min().close == min(c.close for c in recent)
    assert window.current_max().close == max(c.close for c in recent)
    assert len(store) == 50


def test_rejected_append_leaves_window_unchanged():
    store = OrderedPointStore()
    window = SlidingWindowMinMax(store, capacity=4, key=attrgetter("close"))
    window.add(CandlePoint(timestamp=1.0, close=5.0))
    window.add(CandlePoint(timestamp=2.0, close=7.0))

    with pytest.raises(OrderingError):
        window.add(CandlePoint(timestamp=2.0, close=100.0))

    assert len(store) == 2
    assert window.current_max().close == 7.0
    assert window.max_index == 1

    window.add(CandlePoint(timestamp=3.0, close=6.0))
    assert window.current_max().close == 7.0
    assert window.current_min().close == 5.0
