"""
vemcap/engine.py

Adapter around the worker pool used by the parallel path.

The pool itself is concurrent.futures.ThreadPoolExecutor; this module only:
- Detects CPUs and sizes the pool
- Splits an index range into disjoint contiguous partitions
- Runs one partition per task and joins synchronously
- Re-raises one failure after the join
- Keeps a single process-wide engine

Usage:
    from vemcap.engine import get_engine

    squares = get_engine().parallel_map(range(1024), lambda x: x * x)

Failure reporting:
    Every partition runs to completion or to its first failure. After the
    join, partitions are checked in index order and the first failed one is
    re-raised unchanged. Failures in other partitions are dropped; callers
    must not rely on which of several concurrent failures surfaces.
"""

from __future__ import annotations

import contextlib
import logging
import os
import threading
import concurrent.futures
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from .config import EngineConfig, load_engine_config
from .slot import Slot, ensure_mutable_view, visit_slots

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

# Marks threads that belong to an engine's pool
_worker_state = threading.local()


class EngineShutdownError(RuntimeError):
    """Raised when work is submitted to an engine that has been shut down."""
    pass


def get_cpu_count() -> int:
    """
    Logical CPUs visible to this process, never less than 1.

    psutil.cpu_count() answers None on platforms where it cannot count CPUs, so
    os.cpu_count() still decides there, as it does when psutil is missing
    from a minimal install.
    """
    try:
        import psutil
    except ImportError:
        psutil = None

    count = psutil.cpu_count(logical=True) if psutil is not None else None
    return count or os.cpu_count() or 1


def get_optimal_workers(max_workers: Optional[int] = None) -> int:
    """
    Calculate the pool size: one thread per logical CPU.

    Args:
        max_workers: Optional maximum to cap the result.

    Returns:
        Number of workers (>= 1).
    """
    optimal = get_cpu_count()

    if max_workers is not None:
        optimal = min(optimal, max_workers)

    return max(1, optimal)


def partition_ranges(length: int, n_parts: int) -> List[Tuple[int, int]]:
    """
    Split range(length) into contiguous half-open (start, stop) ranges.

    Ranges are disjoint, non-empty, ascending and cover every index exactly
    once. At most n_parts ranges are returned and their sizes differ by at
    most one.

    Args:
        length: Number of indices to cover.
        n_parts: Maximum number of ranges.

    Returns:
        List of (start, stop) tuples; empty when length is 0.
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    if n_parts < 1:
        raise ValueError(f"n_parts must be >= 1, got {n_parts}")

    n_parts = min(n_parts, length)
    if n_parts == 0:
        return []

    base, extra = divmod(length, n_parts)
    ranges = []
    start = 0
    for part in range(n_parts):
        stop = start + base + (1 if part < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def _mark_worker(engine: "ParallelEngine") -> None:
    _worker_state.engine = engine


class ParallelEngine:
    """
    Runs per-element work over a bounded thread pool.

    Both operations block the calling thread until every partition has
    finished. Result order always matches input order.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the engine and its pool.

        Args:
            config: Pool settings (default: EngineConfig()).
        """
        self.config = config or EngineConfig()
        self.workers = get_optimal_workers(self.config.max_workers)
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.workers,
            thread_name_prefix=self.config.thread_name_prefix,
            initializer=_mark_worker,
            initargs=(self,),
        )
        self._lock = threading.Lock()
        self._closed = False
        self._retiring = False
        self._inflight = 0
        logger.info(f"Parallel engine started with {self.workers} workers")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def max_partitions(self) -> int:
        return self.workers * self.config.partitions_per_worker

    def in_worker_thread(self) -> bool:
        """True when called from one of this engine's own pool threads."""
        return getattr(_worker_state, "engine", None) is self

    # -------------------------------------------------------------------------
    # OPERATIONS
    # -------------------------------------------------------------------------

    def parallel_map(self, items: Iterable[T], fn: Callable[[T], U]) -> List[U]:
        """
        Apply fn to every item across the pool.

        Args:
            items: Finite iterable; materialized if it is not a sequence.
            fn: Thread-safe transform.

        Returns:
            List with fn(items[i]) at position i.
        """
        if not isinstance(items, Sequence):
            items = list(items)

        results: List[Any] = [None] * len(items)

        def run_partition(start: int, stop: int) -> None:
            for index in range(start, stop):
                results[index] = fn(items[index])

        self._run_partitions(len(items), run_partition)
        return results

    def parallel_for_each_mut(self, view: Any, fn: Callable[[Slot], Any]) -> None:
        """
        Call fn on a Slot for every element of view across the pool.

        Each partition owns a disjoint index range, and each Slot is bound
        to a single index inside it, so no two threads ever touch the same
        element.

        Args:
            view: Mutable sequence or writeable ndarray, mutated in place.
            fn: Thread-safe mutation taking a Slot.
        """
        ensure_mutable_view(view)

        def run_partition(start: int, stop: int) -> None:
            visit_slots(view, start, stop, fn)

        self._run_partitions(len(view), run_partition)

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    def _acquire(self) -> None:
        with self._lock:
            if self._closed:
                raise EngineShutdownError("Parallel engine has been shut down")
            self._inflight += 1

    def _release(self) -> None:
        with self._lock:
            self._inflight -= 1
            if self._inflight > 0 or not self._retiring or self._closed:
                return
            self._closed = True
        self._close_executor(wait=False)

    def _run_partitions(self, length: int, task: Callable[[int, int], None]) -> None:
        self._acquire()
        try:
            self._dispatch_partitions(length, task)
        finally:
            self._release()

    def _dispatch_partitions(self, length: int, task: Callable[[int, int], None]) -> None:
        ranges = partition_ranges(length, self.max_partitions)
        if not ranges:
            return

        # A transform that dispatches again from a pool thread would wait on
        # tasks queued behind itself; run those partitions inline instead.
        if self.in_worker_thread():
            for start, stop in ranges:
                task(start, stop)
            return

        futures: List[concurrent.futures.Future] = []
        try:
            for start, stop in ranges:
                futures.append(self._executor.submit(task, start, stop))
        except RuntimeError as e:
            concurrent.futures.wait(futures)
            raise EngineShutdownError("Parallel engine has been shut down") from e

        concurrent.futures.wait(futures)

        for future in futures:
            error = future.exception()
            if error is not None:
                raise error

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the pool threads."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._close_executor(wait)

    def retire(self) -> None:
        """
        Shut down once every dispatch already running on this engine returns.

        An idle engine shuts down immediately. Dispatches in flight when
        retire() is called finish normally; the last one to return closes
        the pool.
        """
        with self._lock:
            self._retiring = True
            if self._inflight > 0 or self._closed:
                return
            self._closed = True
        self._close_executor(wait=True)

    def _close_executor(self, wait: bool) -> None:
        self._executor.shutdown(wait=wait)
        logger.info("Parallel engine shut down")

    def __enter__(self) -> "ParallelEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "running"
        return f"ParallelEngine(workers={self.workers}, {state})"


# =============================================================================
# PROCESS-WIDE ENGINE
# =============================================================================

_engine: Optional[ParallelEngine] = None
_engine_lock = threading.Lock()


def _current_engine() -> ParallelEngine:
    # caller holds _engine_lock
    global _engine
    if _engine is None or _engine.closed:
        _engine = ParallelEngine(load_engine_config())
    return _engine


def get_engine() -> ParallelEngine:
    """Return the shared engine, creating it from the config file on first use."""
    with _engine_lock:
        return _current_engine()


@contextlib.contextmanager
def shared_engine() -> Iterator[ParallelEngine]:
    """
    Hold the shared engine for the duration of one dispatch.

    The engine is looked up and marked in use under the same lock that
    configure_engine() and shutdown_engine() take, so a concurrent swap only
    retires it and its pool stays open until this block exits.
    """
    with _engine_lock:
        engine = _current_engine()
        engine._acquire()
    try:
        yield engine
    finally:
        engine._release()


def configure_engine(config: Optional[EngineConfig] = None) -> ParallelEngine:
    """
    Replace the shared engine with one built from config.

    The previous engine, if any, is retired: dispatches already running on
    it complete, then its pool shuts down.
    """
    global _engine
    engine = ParallelEngine(config)
    with _engine_lock:
        previous = _engine
        _engine = engine
    if previous is not None:
        previous.retire()
    return engine


def shutdown_engine() -> None:
    """Retire the shared engine; the next get_engine() starts a new one."""
    global _engine
    with _engine_lock:
        previous = _engine
        _engine = None
    if previous is not None:
        previous.retire()


__all__ = [
    "ParallelEngine",
    "EngineShutdownError",
    "get_cpu_count",
    "get_optimal_workers",
    "partition_ranges",
    "get_engine",
    "shared_engine",
    "configure_engine",
    "shutdown_engine",
]
