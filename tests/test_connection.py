import threading
import time

import pytest

from logbroker.connection import (
    ChannelClosed,
    ChannelEmpty,
    ChannelFull,
    ChannelTimeout,
    Connection,
    ConnectionType,
    bounded,
)
from logbroker.messages import LastWill, Message, Pause


def test_channel_is_fifo_and_bounded():
    tx, rx = bounded(2)
    tx.send("a")
    tx.try_send("b")
    with pytest.raises(ChannelFull) as info:
        tx.try_send("c")
    assert info.value.item == "c"
    assert len(tx) == 2
    assert rx.recv() == "a"
    assert rx.try_recv() == "b"


def test_try_recv_on_empty_channel():
    _, rx = bounded(1)
    with pytest.raises(ChannelEmpty):
        rx.try_recv()


def test_recv_timeout():
    _, rx = bounded(1)
    with pytest.raises(ChannelTimeout):
        rx.recv(timeout=0.01)


def test_send_timeout_when_full():
    tx, _ = bounded(1)
    tx.send(1)
    with pytest.raises(ChannelTimeout):
        tx.send(2, timeout=0.01)


def test_recv_deadline():
    tx, rx = bounded(1)
    with pytest.raises(ChannelTimeout):
        rx.recv_deadline(time.monotonic())
    tx.send("x")
    assert rx.recv_deadline(time.monotonic() + 1) == "x"


def test_close_drains_then_raises():
    tx, rx = bounded(2)
    tx.send("left")
    rx.close()
    with pytest.raises(ChannelClosed) as info:
        tx.try_send("late")
    assert info.value.item == "late"
    assert rx.recv() == "left"
    with pytest.raises(ChannelClosed):
        rx.recv()
    with pytest.raises(ChannelClosed):
        rx.try_recv()


def test_blocking_send_resumes_after_recv():
    tx, rx = bounded(1)
    tx.send("a")
    worker = threading.Thread(target=tx.send, args=("b",))
    worker.start()
    assert rx.recv(timeout=2) == "a"
    assert rx.recv(timeout=2) == "b"
    worker.join(timeout=2)
    assert not worker.is_alive()


def test_zero_capacity_rejected():
    with pytest.raises(ValueError):
        bounded(0)


def test_connection_type_requires_one_kind():
    with pytest.raises(ValueError):
        ConnectionType()
    with pytest.raises(ValueError):
        ConnectionType(client_id="a", replica_id=1)


def test_new_remote_and_replica():
    remote, _ = Connection.new_remote("client", True, 4)
    assert remote.conn.client_id == "client"
    assert remote.conn.is_replicator is False
    assert remote.clean is True
    assert remote.remaining_space == 4
    replica, _ = Connection.new_replica(3, False, 4)
    assert replica.conn.replica_id == 3
    assert replica.conn.is_replicator is True
    assert replica.clean is False


def test_will_is_taken_once():
    connection, _ = Connection.new_remote("c", True, 2)
    will = LastWill("bye", b"gone")
    connection.set_will(will)
    assert connection.take_will() == will
    assert connection.take_will() is None


def test_notify_pauses_when_nearly_full():
    connection, rx = Connection.new_remote("c", True, 3)
    first = Message("t", 0, b"1")
    second = Message("t", 0, b"2")
    assert connection.notify(first) is False
    assert connection.notify(second) is True
    assert rx.try_recv() == first
    assert rx.try_recv() == second
    assert rx.try_recv() == Pause()


def test_notify_refreshes_space_after_reads():
    connection, rx = Connection.new_remote("c", True, 3)
    first = Message("t", 0, b"1")
    assert connection.notify(first) is False
    assert rx.recv() == first
    assert connection.notify(Message("t", 0, b"2")) is False
    assert len(connection.handle) == 1


def test_ninth_notification_of_ten_pauses():
    connection, rx = Connection.new_remote("10", True, 10)
    results = [connection.notify(Message("t", 0, b"x")) for _ in range(9)]
    assert results[:-1] == [False] * 8
    assert results[-1] is True
    assert len(connection.handle) == 10
    drained = [rx.try_recv() for _ in range(10)]
    assert drained[-1] == Pause()


def test_notify_on_closed_receiver_records_failure():
    connection, rx = Connection.new_remote("c", True, 3)
    rx.close()
    message = Message("t", 0, b"x")
    assert connection.notify(message) is True
    assert connection.last_failed == message