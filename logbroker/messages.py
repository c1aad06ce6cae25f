"""Packets, requests, notifications and events exchanged with the router."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .connection import Connection


class QoS(IntEnum):
    """MQTT quality of service levels."""

    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class SubscribeReasonCode(IntEnum):
    """Per-filter result of a subscription; ``SubscribeReasonCode(qos)`` is a success."""

    SUCCESS_QOS0 = 0
    SUCCESS_QOS1 = 1
    SUCCESS_QOS2 = 2
    FAILURE = 0x80


@dataclass
class LastWill:
    """Message published on behalf of a client that goes away uncleanly."""

    topic: str
    message: bytes
    qos: QoS = QoS.AT_MOST_ONCE
    retain: bool = False

    def __post_init__(self) -> None:
        self.message = bytes(self.message)
        self.qos = QoS(self.qos)


@dataclass
class Publish:
    """An MQTT publish packet."""

    topic: str
    payload: bytes
    qos: QoS = QoS.AT_MOST_ONCE
    retain: bool = False
    pkid: int = 0
    dup: bool = False

    def __post_init__(self) -> None:
        self.payload = bytes(self.payload)
        self.qos = QoS(self.qos)


@dataclass
class SubscribeFilter:
    path: str
    qos: QoS = QoS.AT_MOST_ONCE

    def __post_init__(self) -> None:
        self.qos = QoS(self.qos)


@dataclass
class Subscribe:
    pkid: int
    filters: list[SubscribeFilter] = field(default_factory=list)


@dataclass
class Unsubscribe:
    pkid: int
    topics: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PubAck:
    pkid: int


@dataclass(frozen=True)
class PubRec:
    pkid: int


@dataclass(frozen=True)
class PubRel:
    pkid: int


@dataclass(frozen=True)
class PubComp:
    pkid: int


@dataclass
class SubAck:
    pkid: int
    return_codes: list[SubscribeReasonCode] = field(default_factory=list)


@dataclass(frozen=True)
class UnsubAck:
    pkid: int


@dataclass(frozen=True)
class PingReq:
    pass


@dataclass(frozen=True)
class Disconnect:
    pass


Packet = Union[
    Publish,
    Subscribe,
    Unsubscribe,
    PubAck,
    PubRec,
    PubRel,
    PubComp,
    SubAck,
    UnsubAck,
    PingReq,
    Disconnect,
]


@dataclass
class RouterConfig:
    """Settings of the router and its commit logs."""

    id: int = 255
    dir: Path = Path("/tmp/timestone")
    max_segment_size: int = 5 * 1024 * 1024
    max_segment_count: int = 1024
    max_connections: int = 1010

    def __post_init__(self) -> None:
        self.dir = Path(self.dir)


@dataclass(repr=False)
class DataRequest:
    """Request to pull data of one topic from the commit log."""

    topic: str
    qos: int
    cursor: tuple[int, int] = (0, 0)
    last_retain: int = 0
    max_count: int = 100

    @classmethod
    def offsets(cls, topic: str, qos: int, cursor: tuple[int, int], last_retain: int) -> DataRequest:
        """A request that starts at the given cursor and retain id."""
        return cls(topic, qos, tuple(cursor), last_retain)

    def __repr__(self) -> str:
        return f"Topic = {self.topic}, cursors = {self.cursor}, max_count = {self.max_count}"


@dataclass
class TopicsRequest:
    """Request to read new topics from the topics log."""

    offset: int = 0
    count: int = 10

    @classmethod
    def from_offset(cls, offset: int) -> TopicsRequest:
        return cls(offset=offset)


@dataclass(frozen=True)
class AcksRequest:
    pass


Request = Union[DataRequest, TopicsRequest, AcksRequest]


@dataclass
class Topics:
    """Topics read from the topics log along with the offset to continue from."""

    offset: int
    topics: list[str]


@dataclass(repr=False)
class Message:
    """A single publish handed back to a connection."""

    topic: str
    qos: int
    payload: bytes

    def __repr__(self) -> str:
        return f"Topic = {self.topic!r}, Payload size = {len(self.payload)}"


@dataclass(repr=False)
class Data:
    """A batch of payloads of one topic read from the commit log."""

    topic: str
    qos: int
    cursor: tuple[int, int]
    last_retain: int = 0
    size: int = 0
    payload: list[bytes] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"Topic = {self.topic!r}, Cursors = {self.cursor}, "
            f"Payload size = {self.size}, Payload count = {len(self.payload)}"
        )


@dataclass
class ConnectionAck:
    """Successful registration: router id, previous session flag and pending notifications."""

    connection_id: int
    previous_session: bool = False
    pending: list[Any] = field(default_factory=list)


@dataclass
class ConnectionRefused:
    """Failed registration with its reason."""

    reason: str


@dataclass
class Disconnection:
    client_id: str
    execute_will: bool
    pending: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class Pause:
    """Router paused the connection because its channel is nearly full."""


@dataclass
class Acks:
    packets: list[Packet] = field(default_factory=list)


_METRICS_TARGETS = ("config", "router", "connection")


@dataclass(frozen=True)
class MetricsRequest:
    """Ask the router for its config, its metrics or one connection's metrics."""

    target: str
    client_id: str | None = None

    def __post_init__(self) -> None:
        if self.target not in _METRICS_TARGETS:
            raise ValueError(f"unknown metrics target {self.target!r}")
        if self.target == "connection" and self.client_id is None:
            raise ValueError("connection metrics need a client id")


@dataclass
class MetricsReply:
    target: str
    value: Any

    def __post_init__(self) -> None:
        if self.target not in _METRICS_TARGETS:
            raise ValueError(f"unknown metrics target {self.target!r}")


@dataclass
class RouterMetrics:
    router_id: int
    total_connections: int = 0
    total_topics: int = 0
    total_subscriptions: int = 0


@dataclass
class ConnectionMetrics:
    client_id: str
    tracker: Any = None


Notification = Union[ConnectionAck, ConnectionRefused, Message, Data, Acks, Pause, MetricsReply]


@dataclass
class ConnectEvent:
    connection: Connection


@dataclass(frozen=True)
class ReadyEvent:
    pass


@dataclass
class DataEvent:
    packets: list[Packet] = field(default_factory=list)


@dataclass
class DisconnectEvent:
    disconnection: Disconnection


@dataclass
class MetricsEvent:
    request: MetricsRequest


Event = Union[ConnectEvent, ReadyEvent, DataEvent, DisconnectEvent, MetricsEvent]