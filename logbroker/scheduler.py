"""Scheduling of connection requests for data, topics and acks."""

from __future__ import annotations

import logging
from typing import Any

from .connection import Connection
from .logs import AcksLog, DataLog, TopicsLog
from .messages import (
    Acks,
    AcksRequest,
    Data,
    DataRequest,
    Packet,
    RouterConfig,
    Topics,
    TopicsRequest,
)
from .readyqueue import ReadyQueue
from .slab import Slab
from .tracker import Tracker
from .waiters import DataWaiters, TopicsWaiters, Waiters

log = logging.getLogger(__name__)


def handle_data_request(
    connection_id: int, request: DataRequest, datalog: DataLog, waiters: DataWaiters
) -> Data | None:
    """Data for the request, or None after registering it to wait for new data."""
    log.debug("data request id=%s topic=%s cursor=%s", connection_id, request.topic, request.cursor)
    data = datalog.extract_data(request)
    if data is None:
        log.debug("data register id=%s topic=%s", connection_id, request.topic)
        waiters.register(connection_id, request)
        return None
    log.debug(
        "data response id=%s topic=%s cursor=%s count=%s",
        connection_id, data.topic, data.cursor, len(data.payload),
    )
    return data


def handle_topics_request(
    connection_id: int, request: TopicsRequest, topicslog: TopicsLog, waiters: TopicsWaiters
) -> Topics | None:
    """New topics for the request, or None after registering it to wait for new topics."""
    log.debug("topics request id=%s offset=%s", connection_id, request.offset)
    result = topicslog.readv(request.offset, request.count)
    if result is None:
        log.debug("topics register id=%s", connection_id)
        waiters.register(connection_id, request)
        return None
    offset, topics = result
    log.debug("topics response id=%s offset=%s count=%s", connection_id, offset, len(topics))
    return Topics(offset, topics)


def handle_acks_request(connection_id: int, acks: AcksLog) -> list[Packet] | None:
    """Committed acks, or None after marking the acks request as pending."""
    log.debug("acks request id=%s", connection_id)
    packets = acks.handle_acks_request()
    if packets is None:
        log.debug("acks register id=%s", connection_id)
        acks.register_pending_acks_request()
        return None
    log.debug("acks response id=%s count=%s", connection_id, len(packets))
    return packets


def notify(connections: Slab[Connection], connection_id: int, reply: Any) -> bool:
    """Notify a connection; True means it should not be scheduled for now."""
    connection = connections.get(connection_id)
    if connection is None:
        log.error("invalid id while notifying = %s", connection_id)
        return True
    return connection.notify(reply)


class Scheduler:
    """Per-connection state of the router and the logic that serves pending requests."""

    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config if config is not None else RouterConfig()
        capacity = self.config.max_connections
        self.datalog = DataLog(self.config)
        self.topicslog = TopicsLog()
        self.connections: Slab[Connection] = Slab(capacity)
        self.trackers: Slab[Tracker] = Slab(capacity)
        self.watermarks: Slab[AcksLog] = Slab(capacity)
        self.readyqueue = ReadyQueue()
        self.data_waiters = DataWaiters()
        self.topics_waiters: TopicsWaiters = Waiters()

    def _tracker(self, connection_id: int) -> Tracker:
        tracker = self.trackers.get(connection_id)
        if tracker is None:
            raise LookupError(f"no tracker for connection {connection_id}")
        return tracker

    def _watermarks(self, connection_id: int) -> AcksLog:
        acks = self.watermarks.get(connection_id)
        if acks is None:
            raise LookupError(f"no acks log for connection {connection_id}")
        return acks

    def _reschedule(self, connection_id: int, tracker: Tracker) -> None:
        """Put a connection that ran out of requests back on the ready queue."""
        if tracker.empty_unschedule:
            self.readyqueue.push_back(connection_id)
            tracker.empty_unschedule = False

    def connection_ready(self, connection_id: int, max_iterations: int) -> None:
        """Serve up to ``max_iterations`` requests of a connection."""
        log.debug("requests start id=%s", connection_id)
        tracker = self._tracker(connection_id)
        tracker.busy_unschedule = False

        for _ in range(max_iterations):
            request = tracker.pop_request()
            if request is None:
                # New requests come back through notifications, which reschedule.
                log.debug("requests done id=%s", connection_id)
                tracker.empty_unschedule = True
                return

            if isinstance(request, DataRequest):
                data = handle_data_request(connection_id, request, self.datalog, self.data_waiters)
                if data is None:
                    continue
                tracker.register_data_request(
                    DataRequest.offsets(data.topic, data.qos, data.cursor, data.last_retain)
                )
                if notify(self.connections, connection_id, data):
                    log.info("connection busy, unschedule id=%s", connection_id)
                    tracker.busy_unschedule = True
                    return
            elif isinstance(request, TopicsRequest):
                topics = handle_topics_request(
                    connection_id, request, self.topicslog, self.topics_waiters
                )
                if topics is not None:
                    tracker.track_matched_topics(topics.topics)
                    tracker.register_topics_request(TopicsRequest.from_offset(topics.offset))
            elif isinstance(request, AcksRequest):
                packets = handle_acks_request(connection_id, self._watermarks(connection_id))
                if packets is None:
                    continue
                tracker.register_acks_request()
                if notify(self.connections, connection_id, Acks(packets)):
                    log.info("connection busy/closed, unschedule id=%s", connection_id)
                    tracker.busy_unschedule = True
                    return

        log.debug("requests pause id=%s", connection_id)
        self.readyqueue.push_back(connection_id)

    def fresh_topics_notification(self) -> None:
        """Give every waiting topics request back to its connection."""
        waiters = self.topics_waiters
        while (waiter := waiters.pop_front()) is not None:
            link_id, request = waiter
            tracker = self._tracker(link_id)
            if tracker.subscription_count() == 0:
                continue
            log.debug("topics notification id=%s", link_id)
            tracker.register_topics_request(TopicsRequest.from_offset(request.offset))
            self._reschedule(link_id, tracker)
        waiters.prepare_next()

    def fresh_data_notification(self, topic: str) -> None:
        """Give every data request waiting on ``topic`` back to its connection."""
        waiters = self.data_waiters.get(topic)
        if waiters is None:
            return
        while (waiter := waiters.pop_front()) is not None:
            link_id, request = waiter
            tracker = self._tracker(link_id)
            tracker.register_data_request(
                DataRequest.offsets(request.topic, request.qos, request.cursor, request.last_retain)
            )
            self._reschedule(link_id, tracker)
        waiters.prepare_next()

    def fresh_acks_notification(self, connection_id: int) -> None:
        """Requeue the connection's acks request if one was waiting for new acks."""
        if not self._watermarks(connection_id).take_pending_acks_request():
            return
        log.debug("acks notification id=%s", connection_id)
        tracker = self._tracker(connection_id)
        tracker.register_acks_request()
        self._reschedule(connection_id, tracker)