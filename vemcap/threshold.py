"""
vemcap/threshold.py

Size threshold deciding between sequential and parallel execution.
"""

from __future__ import annotations

# After reaching this many items, work is split across the worker pool
THRESHOLD = 64


def should_use_parallel(n_items: int) -> bool:
    """
    Determine if a collection of n_items should be processed in parallel.

    Collections strictly shorter than THRESHOLD run sequentially on the
    calling thread; anything at or above it is handed to the engine.

    Args:
        n_items: Length of the input collection.

    Returns:
        True if the parallel path should be used.
    """
    if n_items < 0:
        raise ValueError(f"n_items must be non-negative, got {n_items}")
    return n_items >= THRESHOLD


__all__ = [
    "THRESHOLD",
    "should_use_parallel",
]
