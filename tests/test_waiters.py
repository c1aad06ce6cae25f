from logbroker.messages import DataRequest, TopicsRequest
from logbroker.waiters import DataWaiters, Waiters


def test_register_and_pop_in_order():
    waiters = Waiters()
    for i in range(10, 20):
        waiters.register(i, TopicsRequest())
    popped = [waiters.pop_front()[0] for _ in range(10)]
    assert popped == list(range(10, 20))
    assert waiters.pop_front() is None


def test_push_back_waits_for_next_round():
    waiters = Waiters()
    waiters.register(1, TopicsRequest())
    connection_id, request = waiters.pop_front()
    waiters.push_back(connection_id, request)
    assert waiters.pop_front() is None
    waiters.prepare_next()
    assert waiters.pop_front() == (1, request)


def test_remove_returns_request():
    waiters = Waiters()
    requests = {i: TopicsRequest.from_offset(i) for i in (1, 2, 3)}
    for i, request in requests.items():
        waiters.register(i, request)
    assert waiters.remove(1) == requests[1]
    assert waiters.remove(1) is None
    assert len(waiters) == 2
    remaining = {waiters.pop_front()[0], waiters.pop_front()[0]}
    assert remaining == {2, 3}


def test_remove_swaps_last_into_place():
    waiters = Waiters()
    for i in (1, 2, 3):
        waiters.register(i, TopicsRequest())
    waiters.remove(1)
    assert waiters.pop_front()[0] == 3
    assert waiters.pop_front()[0] == 2


def test_data_waiters_group_by_topic():
    data_waiters = DataWaiters()
    assert data_waiters.get("hello/world") is None
    for i in range(10, 20):
        data_waiters.register(i, DataRequest("hello/world", 1))
    waiters = data_waiters.get("hello/world")
    popped = [waiters.pop_front()[0] for _ in range(10)]
    assert popped == list(range(10, 20))


def test_data_waiters_remove_across_topics():
    data_waiters = DataWaiters()
    a = DataRequest("a", 0)
    b = DataRequest("b", 1)
    data_waiters.register(5, a)
    data_waiters.register(5, b)
    data_waiters.register(6, DataRequest("a", 0))
    removed = data_waiters.remove(5)
    assert list(removed) == [a, b]
    assert data_waiters.get("b").pop_front() is None
    assert data_waiters.get("a").pop_front()[0] == 6