"""Bounded channels and the connection handle the router talks through."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any

from .messages import LastWill, Pause


class ChannelClosed(Exception):
    """The channel was closed; ``item`` is what could not be delivered, if any."""

    def __init__(self, item: Any = None) -> None:
        super().__init__("channel closed")
        self.item = item


class ChannelFull(Exception):
    """The channel has no room for ``item``."""

    def __init__(self, item: Any = None) -> None:
        super().__init__("channel full")
        self.item = item


class ChannelEmpty(Exception):
    """Nothing is waiting in the channel."""


class ChannelTimeout(TimeoutError):
    """Waiting on the channel timed out."""


class _Channel:
    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.items: deque[Any] = deque()
        self.closed = False
        self.lock = threading.Lock()
        self.not_empty = threading.Condition(self.lock)
        self.not_full = threading.Condition(self.lock)


class Sender:
    """Sending half of a bounded channel. Copies may be shared between threads."""

    def __init__(self, channel: _Channel) -> None:
        self._channel = channel

    def send(self, item: Any, timeout: float | None = None) -> None:
        """Send, blocking while the channel is full."""
        ch = self._channel
        with ch.lock:
            ready = ch.not_full.wait_for(
                lambda: ch.closed or len(ch.items) < ch.capacity, timeout
            )
            if not ready:
                raise ChannelTimeout("send timed out")
            if ch.closed:
                raise ChannelClosed(item)
            ch.items.append(item)
            ch.not_empty.notify()

    def try_send(self, item: Any) -> None:
        """Send without blocking."""
        ch = self._channel
        with ch.lock:
            if ch.closed:
                raise ChannelClosed(item)
            if len(ch.items) >= ch.capacity:
                raise ChannelFull(item)
            ch.items.append(item)
            ch.not_empty.notify()

    def __len__(self) -> int:
        with self._channel.lock:
            return len(self._channel.items)


class Receiver:
    """Receiving half of a bounded channel."""

    def __init__(self, channel: _Channel) -> None:
        self._channel = channel

    def recv(self, timeout: float | None = None) -> Any:
        """Receive, blocking until an item arrives or the channel closes."""
        ch = self._channel
        with ch.lock:
            ready = ch.not_empty.wait_for(lambda: bool(ch.items) or ch.closed, timeout)
            if not ready:
                raise ChannelTimeout("receive timed out")
            if ch.items:
                item = ch.items.popleft()
                ch.not_full.notify()
                return item
            raise ChannelClosed()

    def try_recv(self) -> Any:
        ch = self._channel
        with ch.lock:
            if ch.items:
                item = ch.items.popleft()
                ch.not_full.notify()
                return item
            if ch.closed:
                raise ChannelClosed()
            raise ChannelEmpty()

    def recv_deadline(self, deadline: float) -> Any:
        """Receive, waiting until ``deadline`` on the ``time.monotonic`` clock."""
        return self.recv(max(0.0, deadline - time.monotonic()))

    def close(self) -> None:
        """Close the channel; queued items can still be received."""
        ch = self._channel
        with ch.lock:
            ch.closed = True
            ch.not_empty.notify_all()
            ch.not_full.notify_all()


def bounded(capacity: int) -> tuple[Sender, Receiver]:
    """Create a channel holding at most ``capacity`` items."""
    if capacity < 1:
        raise ValueError("channel capacity must be at least 1")
    channel = _Channel(capacity)
    return Sender(channel), Receiver(channel)


@dataclass(frozen=True)
class ConnectionType:
    """A device identified by its client id, or a replicator by its number."""

    client_id: str | None = None
    replica_id: int | None = None

    def __post_init__(self) -> None:
        if (self.client_id is None) == (self.replica_id is None):
            raise ValueError("a connection is either a device or a replicator")

    @property
    def is_replicator(self) -> bool:
        return self.replica_id is not None


class Connection:
    """Handle given to the router to notify one connection."""

    def __init__(self, conn: ConnectionType, clean: bool, handle: Sender, capacity: int) -> None:
        self.conn = conn
        self.clean = clean
        self.handle = handle
        self.capacity = capacity
        self.remaining_space = capacity
        self.last_failed: Any = None
        self._will: LastWill | None = None

    @classmethod
    def new_remote(cls, client_id: str, clean: bool, capacity: int) -> tuple[Connection, Receiver]:
        tx, rx = bounded(capacity)
        return cls(ConnectionType(client_id=client_id), clean, tx, capacity), rx

    @classmethod
    def new_replica(cls, replica_id: int, clean: bool, capacity: int) -> tuple[Connection, Receiver]:
        tx, rx = bounded(capacity)
        return cls(ConnectionType(replica_id=replica_id), clean, tx, capacity), rx

    def take_will(self) -> LastWill | None:
        will, self._will = self._will, None
        return will

    def set_will(self, will: LastWill) -> None:
        self._will = will

    def notify(self, notification: Any) -> bool:
        """Send a notification; True means the router should unschedule this connection."""
        try:
            self.handle.try_send(notification)
        except ChannelClosed:
            self.last_failed = notification
            return True

        self.remaining_space -= 1
        if self.remaining_space <= 1:
            self.remaining_space = self.capacity - len(self.handle)
            if self.remaining_space <= 1:
                pause = Pause()
                try:
                    self.handle.try_send(pause)
                except ChannelClosed:
                    self.last_failed = pause
                return True

        return False

    def __repr__(self) -> str:
        return repr(self.conn)