"""
vemcap/dispatch.py

Size-adaptive element-wise transforms.

This module provides:
- threaded_map(): transform every element into a new collection
- threaded_mutate(): update every element of an existing collection in place

Collections shorter than THRESHOLD are processed on the calling thread;
longer ones are split across the shared worker pool. The observable result
is the same either way.

Usage:
    from vemcap import threaded_map, threaded_mutate

    numbers = threaded_map(["123", "456", "789"], int)          # [123, 456, 789]
    squares = threaded_map(range(1024), lambda x: x * x, tuple)

    def square(slot):
        slot.value = slot.value * slot.value

    data = [1, 2, 3, 4]
    threaded_mutate(data, square)                               # [1, 4, 9, 16]

Thread safety:
    fn may run on several threads at once and in any order. It must not
    mutate shared state without its own synchronization and must not rely
    on other calls having happened first.

Failures:
    Exceptions raised by fn propagate unchanged and no result is returned.
    On the sequential path the first failure stops processing. On the
    parallel path exactly one failure is re-raised even when several
    elements fail; which one is unspecified.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Iterator, TypeVar

from .slot import Slot, ensure_mutable_view
from .strategies import select_strategy

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


def threaded_map(
    src: Iterable[T],
    fn: Callable[[T], U],
    collect: Callable[[Iterator[U]], R] = list,
) -> R:
    """
    Run fn on each element of src, parallelizing when src is big enough.

    For in-place transformation of an existing collection, see
    threaded_mutate().

    Args:
        src: Finite iterable, consumed exactly once.
        fn: Thread-safe transform applied to each element.
        collect: Builds the result container from an iterator of outputs,
            e.g. list, tuple, or functools.partial(np.fromiter, dtype=int).

    Returns:
        collect() of the outputs, output i corresponding to input i.
    """
    items = list(src)
    strategy = select_strategy(len(items))
    logger.debug(f"threaded_map: {len(items)} items, {strategy.name} path")
    return collect(strategy.map(items, fn))


def threaded_mutate(view: Any, fn: Callable[[Slot], Any]) -> None:
    """
    Update every element of view in place, parallelizing when it is big enough.

    fn receives a Slot bound to one element and writes the new value through
    slot.value. The slot stops working once fn returns.

    Args:
        view: list, bytearray, writeable numpy array or any other object
            supporting len() and item assignment.
        fn: Thread-safe mutation taking a Slot; its return value is ignored.

    Raises:
        TypeError: If view cannot be mutated in place.
    """
    ensure_mutable_view(view)
    strategy = select_strategy(len(view))
    logger.debug(f"threaded_mutate: {len(view)} items, {strategy.name} path")
    strategy.for_each_mut(view, fn)


__all__ = [
    "threaded_map",
    "threaded_mutate",
]
