import pytest

from logbroker.messages import (
    AcksRequest,
    DataRequest,
    QoS,
    SubscribeFilter,
    TopicsRequest,
)
from logbroker.tracker import Tracker, has_wildcards, matches


def test_unsubscribe_removes_requests_from_queue():
    tracker = Tracker()
    topics = ["a/b", "c/d", "e"]
    filters = [
        SubscribeFilter("+/+", QoS.AT_LEAST_ONCE),
        SubscribeFilter("+", QoS.AT_LEAST_ONCE),
    ]
    tracker.add_subscription_and_match(filters, topics)

    while (matched := tracker.next_matched()) is not None:
        topic, qos, cursor = matched
        tracker.register_data_request(DataRequest.offsets(topic, qos, cursor, 0))

    assert list(tracker.requests) == [
        AcksRequest(),
        DataRequest("a/b", 1),
        DataRequest("c/d", 1),
        DataRequest("e", 1),
    ]
    assert {"a/b", "c/d", "e"} <= tracker.topics_index

    # Take an inflight request out of the queue
    del tracker.requests[1]

    pending = tracker.remove_subscription_and_unmatch(["+/+"])
    assert list(pending) == ["a/b"]
    assert list(tracker.requests) == [AcksRequest(), DataRequest("e", 1)]
    assert "e" in tracker.topics_index
    assert "a/b" not in tracker.topics_index
    assert "c/d" not in tracker.topics_index


@pytest.mark.parametrize(
    "topic, filter, expected",
    [
        ("a/b/c", "a/b/c", True),
        ("a/b/c", "a/+/c", True),
        ("a/b/c", "a/#", True),
        ("a/b/c", "a/b/c/#", True),
        ("a/b/c", "#", True),
        ("a/b", "a/b/c", False),
        ("a/b/c", "a/b", False),
        ("a/b/c", "a/+", False),
        ("$SYS/x", "#", False),
        ("hello/1/world", "hello/+/world", True),
    ],
)
def test_matches(topic, filter, expected):
    assert matches(topic, filter) is expected


@pytest.mark.parametrize(
    "filter, expected",
    [("a/+/c", True), ("a/#", True), ("a/b/c", False)],
)
def test_has_wildcards(filter, expected):
    assert has_wildcards(filter) is expected


def test_new_tracker_starts_with_acks_request():
    tracker = Tracker()
    assert tracker.pop_request() == AcksRequest()
    assert tracker.pop_request() is None


def test_first_subscription_is_reported_once():
    tracker = Tracker()
    assert tracker.add_subscription_and_match([SubscribeFilter("a/b", QoS.AT_LEAST_ONCE)], []) is True
    assert tracker.add_subscription_and_match([SubscribeFilter("c/+", QoS.AT_LEAST_ONCE)], []) is False
    assert tracker.subscription_count() == 2


def test_track_matched_topics_registers_data_requests_once():
    tracker = Tracker()
    tracker.add_subscription_and_match(
        [SubscribeFilter("hello/+/world", QoS.AT_LEAST_ONCE), SubscribeFilter("x", QoS.EXACTLY_ONCE)],
        [],
    )
    tracker.pop_request()
    count = tracker.track_matched_topics(["hello/1/world", "other", "x", "hello/1/world"])
    assert count == 2
    assert list(tracker.requests) == [DataRequest("hello/1/world", 1), DataRequest("x", 2)]


def test_track_matched_topics_skips_already_matched():
    tracker = Tracker()
    tracker.add_subscription_and_match([SubscribeFilter("#", QoS.AT_MOST_ONCE)], ["a"])
    assert tracker.next_matched() == ("a", 0, (0, 0))
    assert tracker.next_matched() is None
    assert tracker.track_matched_topics(["a", "b"]) == 1


def test_register_requests_keeps_order():
    tracker = Tracker()
    tracker.register_topics_request(TopicsRequest.from_offset(3))
    tracker.register_acks_request()
    assert list(tracker.requests) == [AcksRequest(), TopicsRequest(3, 10), AcksRequest()]


def test_unsubscribe_concrete_subscription():
    tracker = Tracker()
    tracker.add_subscription_and_match([SubscribeFilter("a/b", QoS.AT_LEAST_ONCE)], [])
    tracker.track_matched_topics(["a/b"])
    pending = tracker.remove_subscription_and_unmatch(["a/b"])
    assert list(pending) == []
    assert tracker.subscription_count() == 0
    assert list(tracker.requests) == [AcksRequest()]
    assert tracker.track_matched_topics(["a/b"]) == 0