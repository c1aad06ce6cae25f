"""Queue of connections that have requests ready to make progress."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator


class ReadyQueue:
    def __init__(self) -> None:
        self._queue: deque[int] = deque()

    def is_empty(self) -> bool:
        return not self._queue

    def pop_front(self) -> int | None:
        return self._queue.popleft() if self._queue else None

    def push_back(self, connection_id: int) -> None:
        self._queue.append(connection_id)

    def remove(self, connection_id: int) -> None:
        """Remove the first occurrence, moving the last entry into its place."""
        try:
            index = self._queue.index(connection_id)
        except ValueError:
            return
        last = self._queue.pop()
        if index < len(self._queue):
            self._queue[index] = last

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[int]:
        return iter(self._queue)