"""
vemcap/strategies.py

The two execution strategies and the size-based selector.

Both strategies satisfy the same contract:
- map(items, fn) yields fn(item) for each item, in input order
- for_each_mut(view, fn) calls fn once per element Slot of view
so the dispatch functions never need to know which one they got.
"""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from typing import Any, Callable, ContextManager, Iterator, Optional, Sequence, TypeVar

from .engine import ParallelEngine, get_engine, shared_engine
from .slot import Slot, visit_slots
from .threshold import should_use_parallel

T = TypeVar("T")
U = TypeVar("U")


class ExecutionStrategy(ABC):
    """Apply a function to each element, preserving input correspondence."""

    name: str = "abstract"

    @abstractmethod
    def map(self, items: Sequence[T], fn: Callable[[T], U]) -> Iterator[U]:
        """Yield fn(item) for every item in input order."""

    @abstractmethod
    def for_each_mut(self, view: Any, fn: Callable[[Slot], Any]) -> None:
        """Call fn with a Slot for every element of view."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SequentialStrategy(ExecutionStrategy):
    """Runs on the calling thread; stops at the first failure."""

    name = "sequential"

    def map(self, items: Sequence[T], fn: Callable[[T], U]) -> Iterator[U]:
        return map(fn, items)

    def for_each_mut(self, view: Any, fn: Callable[[Slot], Any]) -> None:
        visit_slots(view, 0, len(view), fn)


class ParallelStrategy(ExecutionStrategy):
    """
    Hands the work to a ParallelEngine.

    With no engine given, the process-wide engine is held for each call via
    shared_engine(), so configure_engine() takes effect on the next dispatch
    and never closes the pool under one that is already running.
    """

    name = "parallel"

    def __init__(self, engine: Optional[ParallelEngine] = None):
        self._engine = engine

    @property
    def engine(self) -> ParallelEngine:
        return self._engine if self._engine is not None else get_engine()

    def _engine_scope(self) -> ContextManager[ParallelEngine]:
        if self._engine is not None:
            return contextlib.nullcontext(self._engine)
        return shared_engine()

    def map(self, items: Sequence[T], fn: Callable[[T], U]) -> Iterator[U]:
        with self._engine_scope() as engine:
            return iter(engine.parallel_map(items, fn))

    def for_each_mut(self, view: Any, fn: Callable[[Slot], Any]) -> None:
        with self._engine_scope() as engine:
            engine.parallel_for_each_mut(view, fn)


SEQUENTIAL = SequentialStrategy()
PARALLEL = ParallelStrategy()


def select_strategy(n_items: int) -> ExecutionStrategy:
    """Pick the strategy for a collection of n_items."""
    return PARALLEL if should_use_parallel(n_items) else SEQUENTIAL


__all__ = [
    "ExecutionStrategy",
    "SequentialStrategy",
    "ParallelStrategy",
    "SEQUENTIAL",
    "PARALLEL",
    "select_strategy",
]
