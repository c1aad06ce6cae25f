"""Saved state of persistent sessions, keyed by client id."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .tracker import Tracker


@dataclass
class _SavedState:
    connection_id: int
    tracker: Tracker | None = None
    pending: list[Any] | None = None


class ConnectionsLog:
    """Client ids seen by the router with the session state left behind on disconnection."""

    def __init__(self) -> None:
        self._connections: dict[str, _SavedState] = {}

    def id(self, client_id: str) -> int | None:
        """Router id of the client's latest connection, or None if never seen."""
        saved = self._connections.get(client_id)
        return saved.connection_id if saved is not None else None

    def add(self, client_id: str, connection_id: int) -> tuple[Tracker | None, list[Any] | None]:
        """Record a connection; returns the tracker and pending notifications of a previous session."""
        saved = self._connections.get(client_id)
        if saved is None:
            self._connections[client_id] = _SavedState(connection_id)
            return None, None
        saved.connection_id = connection_id
        tracker, saved.tracker = saved.tracker, None
        pending, saved.pending = saved.pending, None
        return tracker, pending

    def save(self, client_id: str, tracker: Tracker, pending: list[Any]) -> None:
        """Keep a disconnected client's tracker and pending notifications for its next session."""
        tracker.busy_unschedule = False
        tracker.empty_unschedule = False
        saved = self._connections.get(client_id)
        if saved is not None:
            saved.tracker = tracker
            saved.pending = pending