"""
vemcap/benchmark.py

Measures where parallel dispatch starts paying off.

THRESHOLD is a static tuning constant. These helpers time the sequential
and parallel strategies side by side over a range of collection sizes so a
new value can be chosen from measurements rather than guessed.

Usage:
    from vemcap.benchmark import benchmark_threshold, suggest_threshold

    frame = benchmark_threshold(lambda x: sum(i * i for i in range(x % 200)))
    print(frame)
    print(suggest_threshold(frame))
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from .engine import ParallelEngine
from .strategies import ParallelStrategy, SequentialStrategy

logger = logging.getLogger(__name__)

DEFAULT_SIZES = (8, 16, 32, 64, 128, 256, 512, 1024, 4096)

COLUMNS = ["size", "sequential_seconds", "parallel_seconds", "speedup", "parallel_wins"]


@dataclass
class BenchmarkResult:
    """Timing of both strategies for one collection size."""

    size: int
    sequential_seconds: float
    parallel_seconds: float

    @property
    def speedup(self) -> float:
        if self.parallel_seconds <= 0:
            return float("inf")
        return self.sequential_seconds / self.parallel_seconds

    def to_dict(self) -> dict:
        row = asdict(self)
        row["speedup"] = self.speedup
        row["parallel_wins"] = self.speedup > 1.0
        return row


def _best_time(run: Callable[[], list], repeats: int) -> tuple[float, list]:
    best = float("inf")
    result: list = []
    for _ in range(repeats):
        start = time.perf_counter()
        result = run()
        best = min(best, time.perf_counter() - start)
    return best, result


def time_dispatch(
    fn: Callable[[int], object],
    size: int,
    repeats: int = 3,
    engine: Optional[ParallelEngine] = None,
) -> BenchmarkResult:
    """
    Time both strategies on range(size), best of `repeats` runs each.

    Raises:
        ValueError: If size or repeats are out of range, or if the two
            strategies disagree on the output.
    """
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    if repeats < 1:
        raise ValueError(f"repeats must be >= 1, got {repeats}")

    items = list(range(size))
    sequential = SequentialStrategy()
    parallel = ParallelStrategy(engine)

    seq_seconds, seq_result = _best_time(lambda: list(sequential.map(items, fn)), repeats)
    par_seconds, par_result = _best_time(lambda: list(parallel.map(items, fn)), repeats)

    if seq_result != par_result:
        raise ValueError(f"Strategies disagree at size {size}")

    result = BenchmarkResult(size=size, sequential_seconds=seq_seconds, parallel_seconds=par_seconds)
    logger.debug(f"size={size}: seq={seq_seconds:.6f}s par={par_seconds:.6f}s speedup={result.speedup:.2f}")
    return result


def benchmark_threshold(
    fn: Callable[[int], object],
    sizes: Sequence[int] = DEFAULT_SIZES,
    repeats: int = 3,
    engine: Optional[ParallelEngine] = None,
) -> pd.DataFrame:
    """
    Benchmark both strategies over several collection sizes.

    Args:
        fn: Transform applied to each integer in range(size).
        sizes: Collection sizes to measure.
        repeats: Runs per strategy and size; the fastest one counts.
        engine: Engine for the parallel side (default: shared engine).

    Returns:
        DataFrame sorted by size with COLUMNS.
    """
    rows = [time_dispatch(fn, size, repeats, engine).to_dict() for size in sorted(set(sizes))]
    frame = pd.DataFrame(rows, columns=COLUMNS)
    logger.info(f"Benchmarked {len(frame)} sizes, parallel wins at {int(frame['parallel_wins'].sum())}")
    return frame


def suggest_threshold(frame: pd.DataFrame) -> Optional[int]:
    """
    Smallest benchmarked size from which parallel wins at every larger size.

    Returns None when parallel never wins at the largest size measured.
    """
    if frame.empty:
        return None

    ordered = frame.sort_values("size")
    wins = ordered["parallel_wins"].to_numpy(dtype=bool)
    if not wins[-1]:
        return None

    # last position where parallel lost; the next row starts the winning tail
    losses = np.flatnonzero(~wins)
    first_winning = 0 if losses.size == 0 else int(losses[-1]) + 1
    return int(ordered["size"].iloc[first_winning])


__all__ = [
    "BenchmarkResult",
    "DEFAULT_SIZES",
    "time_dispatch",
    "benchmark_threshold",
    "suggest_threshold",
]
