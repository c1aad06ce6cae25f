"""Connections waiting to be woken up on new data or new topics."""

from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

from .messages import DataRequest, TopicsRequest

T = TypeVar("T")


class Waiters(Generic[T]):
    """Two queues of waiting requests: the current round and the next one.

    Requests put back during a notification round go to the next queue, so a
    round never loops over the same waiter forever.
    """

    def __init__(self) -> None:
        self._current: deque[tuple[int, T]] = deque()
        self._next: deque[tuple[int, T]] = deque()

    def register(self, connection_id: int, request: T) -> None:
        self._current.append((connection_id, request))

    def pop_front(self) -> tuple[int, T] | None:
        return self._current.popleft() if self._current else None

    def push_back(self, connection_id: int, request: T) -> None:
        self._next.append((connection_id, request))

    def prepare_next(self) -> None:
        """Swap the next queue in as the current one."""
        self._current, self._next = self._next, self._current

    def remove(self, connection_id: int) -> T | None:
        """Remove this connection's first waiting request and return it."""
        index = next(
            (i for i, (waiter, _) in enumerate(self._current) if waiter == connection_id),
            None,
        )
        if index is None:
            return None
        _, request = self._current[index]
        last = self._current.pop()
        if index < len(self._current):
            self._current[index] = last
        return request

    def __len__(self) -> int:
        return len(self._current)


TopicsWaiters = Waiters[TopicsRequest]


class DataWaiters:
    """Data request waiters grouped by topic."""

    def __init__(self) -> None:
        self._waiters: dict[str, Waiters[DataRequest]] = {}

    def get(self, topic: str) -> Waiters[DataRequest] | None:
        return self._waiters.get(topic)

    def register(self, connection_id: int, request: DataRequest) -> None:
        self._waiters.setdefault(request.topic, Waiters()).register(connection_id, request)

    def remove(self, connection_id: int) -> deque[DataRequest]:
        """Remove this connection from every topic and return its waiting requests."""
        removed = (waiters.remove(connection_id) for waiters in self._waiters.values())
        return deque(request for request in removed if request is not None)