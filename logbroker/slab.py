"""Pre-allocated slots keyed by connection id."""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")

_RESERVED_SLOTS = 10


class Slab(Generic[T]):
    """Fixed slots; the first ten are reserved for replicators and only filled with ``insert_at``."""

    def __init__(self, capacity: int) -> None:
        size = capacity + _RESERVED_SLOTS
        self._entries: list[T | None] = [None] * size
        self._free: deque[int] = deque(range(_RESERVED_SLOTS, size))

    def get(self, key: int) -> T | None:
        """The value at ``key``, or None when the slot is vacant or out of range."""
        if 0 <= key < len(self._entries):
            return self._entries[key]
        return None

    def insert(self, value: T) -> int | None:
        """Store ``value`` in the next free slot and return its key, or None when full."""
        if not self._free:
            return None
        key = self._free.popleft()
        if self._entries[key] is not None:
            raise RuntimeError("inserting in a non vacant space")
        self._entries[key] = value
        return key

    def insert_at(self, value: T, at: int) -> None:
        if self.get(at) is not None:
            raise RuntimeError("inserting in a non vacant space")
        self._entries[at] = value

    def remove(self, key: int) -> T | None:
        """Empty the slot at ``key``, make it available again and return what it held."""
        value = self._entries[key]
        self._entries[key] = None
        self._free.append(key)
        return value