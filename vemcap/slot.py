"""
vemcap/slot.py

Exclusive per-element handles used by in-place mutation.

A Slot is bound to one index of one view. The mutation function reads and
writes the element through ``slot.value``; once the call for that element
returns the slot is released and stops working, so the element handle can
not leak out of the mutation.

Releasing a slot only guards the slot itself. When the element is a mutable
object (a dict, a list, a row view of an N-D array), ``slot.value`` hands
out that object, and a reference kept past the call can still modify it.
Immutable elements such as numbers and strings cannot be changed that way.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

import numpy as np


class SlotReleasedError(RuntimeError):
    """Raised when a Slot is used after its mutation call has finished."""
    pass


class Slot:
    """Read/write access to a single element of a mutable view."""

    __slots__ = ("_view", "_index", "_released")

    def __init__(self, view: Any, index: int):
        self._view = view
        self._index = index
        self._released = False

    @property
    def index(self) -> int:
        return self._index

    @property
    def released(self) -> bool:
        return self._released

    @property
    def value(self) -> Any:
        self._check()
        return self._view[self._index]

    @value.setter
    def value(self, new_value: Any) -> None:
        self._check()
        self._view[self._index] = new_value

    def release(self) -> None:
        self._released = True
        self._view = None

    def _check(self) -> None:
        if self._released:
            raise SlotReleasedError(f"Slot {self._index} used after its mutation call returned")

    def __repr__(self) -> str:
        if self._released:
            return f"Slot(index={self._index}, released)"
        return f"Slot(index={self._index}, value={self._view[self._index]!r})"


def ensure_mutable_view(view: Any) -> None:
    """
    Check that view supports len() and item assignment.

    Raises:
        TypeError: For immutable sequences, mappings, read-only or 0-d
            arrays, and objects without __len__/__getitem__/__setitem__.
    """
    if isinstance(view, np.ndarray):
        if view.ndim == 0:
            raise TypeError("Cannot mutate elements of a 0-d array")
        if not view.flags.writeable:
            raise TypeError("Array is read-only")
        return

    # slots address elements by position, mappings by key
    if isinstance(view, Mapping):
        raise TypeError(f"{type(view).__name__} is a mapping, not a mutable sequence")

    for attr in ("__len__", "__getitem__", "__setitem__"):
        if not hasattr(view, attr):
            raise TypeError(
                f"{type(view).__name__} is not a mutable sequence (missing {attr})"
            )


def visit_slots(view: Any, start: int, stop: int, fn: Callable[[Slot], Any]) -> None:
    """Call fn with a fresh Slot for each index in [start, stop), in order."""
    for index in range(start, stop):
        slot = Slot(view, index)
        try:
            fn(slot)
        finally:
            slot.release()


__all__ = [
    "Slot",
    "SlotReleasedError",
    "ensure_mutable_view",
    "visit_slots",
]
