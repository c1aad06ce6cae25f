"""Subscriptions, matched topics and pending requests of one connection."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any

from .messages import AcksRequest, DataRequest, Request, SubscribeFilter, TopicsRequest


def has_wildcards(filter: str) -> bool:
    return "+" in filter or "#" in filter


def matches(topic: str, filter: str) -> bool:
    """Whether ``topic`` matches the MQTT subscription ``filter``."""
    if topic.startswith("$"):
        return False
    topics = iter(topic.split("/"))
    for part in filter.split("/"):
        if part == "#":
            return True
        level = next(topics, None)
        if level is None or level == "#":
            return False
        if part != "+" and part != level:
            return False
    return next(topics, None) is None


def _swap_remove_back(items: Any, index: int) -> None:
    """Remove ``items[index]``, moving the last element into its place."""
    last = items.pop()
    if index < len(items):
        items[index] = last


def _initial_requests() -> deque[Request]:
    return deque([AcksRequest()])


@dataclass
class Tracker:
    """Requests to pull data, topics and acks for a connection, and what it subscribed to.

    ``empty_unschedule`` marks a connection taken off the ready queue because it
    ran out of requests, ``busy_unschedule`` one taken off because its channel is full.
    """

    empty_unschedule: bool = False
    busy_unschedule: bool = False
    requests: deque[Request] = field(default_factory=_initial_requests)
    topics_index: set[str] = field(default_factory=set)
    concrete_subscriptions: dict[str, int] = field(default_factory=dict)
    wild_subscriptions: list[tuple[str, int]] = field(default_factory=list)
    matched: deque[tuple[str, int, tuple[int, int]]] = field(default_factory=deque)

    def subscription_count(self) -> int:
        return len(self.concrete_subscriptions) + len(self.wild_subscriptions)

    def pop_request(self) -> Request | None:
        return self.requests.popleft() if self.requests else None

    def register_data_request(self, request: DataRequest) -> None:
        self.requests.append(request)

    def register_topics_request(self, request: TopicsRequest) -> None:
        self.requests.append(request)

    def register_acks_request(self) -> None:
        self.requests.append(AcksRequest())

    def track_matched_topics(self, topics: list[str]) -> int:
        """Register data requests for new topics matching a subscription; returns how many matched."""
        matched_count = 0
        for topic in topics:
            request = self._match_with_subscriptions(topic)
            if request is not None:
                self.register_data_request(request)
                matched_count += 1
        return matched_count

    def next_matched(self) -> tuple[str, int, tuple[int, int]] | None:
        """Next topic matched by a new subscription, waiting for its offsets to be set."""
        return self.matched.popleft() if self.matched else None

    def add_subscription_and_match(
        self, filters: list[SubscribeFilter], topics: list[str]
    ) -> bool:
        """Add subscriptions and match them against existing topics.

        Returns True when these are the connection's first subscriptions.
        """
        first = self.subscription_count() == 0
        for subscribe_filter in filters:
            path = subscribe_filter.path
            qos = int(subscribe_filter.qos)
            if has_wildcards(path):
                self.wild_subscriptions.append((path, qos))
            else:
                self.concrete_subscriptions[path] = qos

            for topic in topics:
                if topic in self.topics_index:
                    continue
                if matches(topic, path):
                    self.topics_index.add(topic)
                    self.matched.append((topic, qos, (0, 0)))
        return first

    def _match_with_subscriptions(self, topic: str) -> DataRequest | None:
        if topic in self.topics_index:
            return None

        qos = self.concrete_subscriptions.get(topic)
        if qos is None:
            qos = next(
                (wild_qos for wild, wild_qos in self.wild_subscriptions if matches(topic, wild)),
                None,
            )
        if qos is None:
            return None
        self.topics_index.add(topic)
        return DataRequest.offsets(topic, qos, (0, 0), 0)

    def remove_subscription_and_unmatch(self, filters: list[str]) -> deque[str]:
        """Remove subscriptions and their tracked topics.

        Returns the removed topics whose data request was not in the queue,
        meaning it is in flight elsewhere in the router.
        """
        matching: deque[str] = deque()
        for subscription in filters:
            matching.extend(topic for topic in self.topics_index if matches(topic, subscription))
            if has_wildcards(subscription):
                index = next(
                    (i for i, (wild, _) in enumerate(self.wild_subscriptions) if wild == subscription),
                    None,
                )
                if index is not None:
                    _swap_remove_back(self.wild_subscriptions, index)
            else:
                self.concrete_subscriptions.pop(subscription, None)

        pending: deque[str] = deque()
        for topic in matching:
            self.topics_index.discard(topic)
            position = next(
                (
                    i
                    for i, request in enumerate(self.requests)
                    if isinstance(request, DataRequest) and request.topic == topic
                ),
                None,
            )
            if position is None:
                pending.append(topic)
            else:
                _swap_remove_back(self.requests, position)
        return pending