#!/usr/bin/env python3
"""
Performance benchmark for SlidingWindowMinMax and OrderedPointStore lookups.

This benchmark simulates a chart redraw pattern:
- one-minute candles appended to a series
- window capacities 64 .. 4096
- visible range compared against rescanning the window on every update
- cursor lookups by timestamp over the whole store
"""

import logging
import random
import time
from operator import attrgetter

from pointseries.config import configure_logging
from pointseries.models import CandlePoint
from pointseries.point_store import OrderedPointStore
from pointseries.sliding_windows import SlidingWindowMinMax

logger = logging.getLogger("pointseries.benchmark")

MINUTE = 1 / 1440
START_XDATE = 45292.0


def make_candles(count: int, seed: int = 42) -> list[CandlePoint]:
    rng = random.Random(seed)
    close = 100.0
    candles = []
    for i in range(count):
        close += rng.gauss(0, 0.2)
        candles.append(CandlePoint(timestamp=START_XDATE + i * MINUTE, close=close))
    return candles


def benchmark_window_updates(candles: list[CandlePoint]) -> None:
    print(f"\n{'='*70}")
    print("Benchmark: visible range per update (monotonic deques vs. rescan)")
    print(f"{'='*70}")
    print(f"\n{'Capacity':<10} {'Deque (us/add)':<16} {'Rescan (us/add)':<16} {'Speedup':<10}")
    print(f"{'-'*55}")

    for capacity in (64, 256, 1024, 4096):
        store = OrderedPointStore()
        window = SlidingWindowMinMax(store, capacity, key=attrgetter("close"))
        start = time.perf_counter()
        for candle in candles:
            window.add(candle)
            window.current_min()
            window.current_max()
        deque_time = (time.perf_counter() - start) / len(candles) * 1e6

        closes: list[float] = []
        start = time.perf_counter()
        for candle in candles:
            closes.append(candle.close)
            recent = closes[-capacity:]
            min(recent)
            max(recent)
        rescan_time = (time.perf_counter() - start) / len(candles) * 1e6

        print(
            f"{capacity:<10,} {deque_time:<16.3f} {rescan_time:<16.3f} "
            f"{rescan_time / deque_time:<10.1f}x"
        )
        logger.info("capacity=%d deque=%.3fus rescan=%.3fus", capacity, deque_time, rescan_time)


def benchmark_lookups(candles: list[CandlePoint], queries: int = 100_000) -> None:
    print(f"\n{'='*70}")
    print("Benchmark: lookup_by_timestamp")
    print(f"{'='*70}")

    store = OrderedPointStore(candles)
    rng = random.Random(7)
    span = len(candles) * MINUTE
    cursors = [START_XDATE + rng.random() * span for _ in range(queries)]

    start = time.perf_counter()
    for cursor in cursors:
        store.lookup_by_timestamp(cursor)
    elapsed = (time.perf_counter() - start) / queries * 1e6

    print(f"{len(store):,} points, {queries:,} lookups: {elapsed:.3f}us per lookup")
    logger.info("lookup size=%d per_lookup=%.3fus", len(store), elapsed)


def main() -> None:
    configure_logging()
    candles = make_candles(50_000)
    benchmark_window_updates(candles)
    benchmark_lookups(candles)


if __name__ == "__main__":
    main()
