"""MQTT session state of one remote connection: inflight publishes and acks."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from .messages import (
    Acks,
    Disconnect,
    LastWill,
    Message,
    Packet,
    PingReq,
    PubAck,
    PubComp,
    PubRec,
    PubRel,
    Publish,
    QoS,
    SubAck,
    Subscribe,
    UnsubAck,
    Unsubscribe,
)

log = logging.getLogger(__name__)


class StateError(Exception):
    """Protocol violation by the client."""


class Unsolicited(StateError):
    """An ack arrived for a packet id with nothing outstanding."""

    def __init__(self, pkid: int) -> None:
        super().__init__(f"received unsolicited ack from the device. {pkid}")
        self.pkid = pkid


class DuplicateConnect(StateError):
    def __init__(self) -> None:
        super().__init__("duplicate connect")


class ClientConnAck(StateError):
    def __init__(self) -> None:
        super().__init__("client connack")


@dataclass
class Connect:
    """Connect packet from a client."""

    client_id: str
    keep_alive: int = 0
    clean_session: bool = True
    last_will: LastWill | None = None


@dataclass(frozen=True)
class ConnAck:
    session_present: bool = False


@dataclass(frozen=True)
class PingResp:
    pass


@dataclass
class _Pending:
    topic: str = ""
    qos: QoS = QoS.AT_MOST_ONCE
    payloads: deque[bytes] = field(default_factory=deque)
    collision: Publish | None = None

    def __len__(self) -> int:
        return (1 if self.collision is not None else 0) + len(self.payloads)


class State:
    """State of an MQTT connection; methods only change state and queue outgoing packets."""

    def __init__(self, max_inflight: int) -> None:
        self.last_pkid = 0
        self.inflight = 0
        self.max_inflight = max_inflight
        self.outgoing_pub: dict[int, Publish] = {}
        self.outgoing_rel: dict[int, int] = {}
        self.incoming_pub: set[int] = set()
        self.pending = _Pending()
        self.incoming: list[Packet] = []
        self._outgoing: list[Any] = []

    def pause_outgoing(self) -> bool:
        return self.inflight > self.max_inflight or len(self.pending) > 0

    def take_incoming(self) -> list[Packet]:
        incoming, self.incoming = self.incoming, []
        return incoming

    def take_outgoing(self) -> list[Any]:
        """Packets to write to the client, in order; empties the queue."""
        outgoing, self._outgoing = self._outgoing, []
        return outgoing

    def clean(self) -> list[Any]:
        """Return inflight outgoing packets as notifications and clear the queues."""
        acks = [PubRel(pkid) for _, pkid in sorted(self.outgoing_rel.items())]
        self.outgoing_rel.clear()
        pending: list[Any] = [Acks(acks)]
        for _, publish in sorted(self.outgoing_pub.items()):
            pending.append(Message(publish.topic, int(publish.qos), publish.payload))
        self.outgoing_pub.clear()
        return pending

    def add_pending(self, topic: str, qos: QoS, payloads: list[bytes]) -> None:
        self.pending = _Pending(topic, QoS(qos), deque(payloads))

    def write_pending(self) -> None:
        """Write pending publishes until one collides with an unacked packet id.

        A QoS 0 pending payload is written one per call.
        """
        pending = self.pending
        while pending.payloads:
            publish = Publish(pending.topic, pending.payloads.popleft(), pending.qos)
            if publish.qos == QoS.AT_MOST_ONCE:
                log.debug("publish qos 0 size=%s", len(publish.payload))
                self._outgoing.append(publish)
                return

            if publish.pkid == 0:
                publish.pkid = self._next_pkid()
            pkid = publish.pkid
            log.debug("publish pkid=%s size=%s", pkid, len(publish.payload))

            if pkid in self.outgoing_pub:
                log.info("collision on packet id = %s, inflight = %s", pkid, self.inflight)
                pending.collision = publish
                return
            self._outgoing.append(publish)
            self.outgoing_pub[pkid] = publish
            self.inflight += 1

    def outgoing_ack(self, ack: Packet) -> None:
        """Write an ack given by the router; a release replays the pubrec flow."""
        if isinstance(ack, PubRel):
            self.handle_incoming_pubrec(PubRec(ack.pkid))
        elif isinstance(ack, (PubAck, PubRec, PubComp, SubAck, UnsubAck)):
            self._outgoing.append(ack)
        else:
            raise TypeError(f"not an ack: {ack!r}")

    def handle_network_data(self, packet: Any) -> bool:
        """Handle a packet from the client; returns True when the client disconnects."""
        if isinstance(packet, Connect):
            raise DuplicateConnect()
        if isinstance(packet, ConnAck):
            raise ClientConnAck()
        if isinstance(packet, Publish):
            if self.handle_incoming_publish(packet):
                self.incoming.append(packet)
        elif isinstance(packet, (Subscribe, Unsubscribe)):
            self.incoming.append(packet)
        elif isinstance(packet, PubAck):
            self.handle_incoming_puback(packet)
        elif isinstance(packet, PubRel):
            self.handle_incoming_pubrel(packet)
        elif isinstance(packet, PubRec):
            self.handle_incoming_pubrec(packet)
        elif isinstance(packet, PubComp):
            self.handle_incoming_pubcomp(packet)
        elif isinstance(packet, PingReq):
            self.handle_incoming_pingreq()
        elif isinstance(packet, Disconnect):
            return True
        else:
            log.error("packet = %r not supported yet", packet)
        return False

    def handle_incoming_publish(self, publish: Publish) -> bool:
        """Filter duplicate QoS 2 publishes; True means forward to the router."""
        if publish.qos == QoS.EXACTLY_ONCE:
            pkid = publish.pkid
            if pkid in self.incoming_pub:
                self._outgoing.append(PubRec(pkid))
                return False
            self.incoming_pub.add(pkid)
        return True

    def handle_incoming_puback(self, puback: PubAck) -> None:
        if self.outgoing_pub.pop(puback.pkid, None) is None:
            log.error("unsolicited puback packet: %s", puback.pkid)
            raise Unsolicited(puback.pkid)
        self.inflight -= 1
        self._check_and_resolve_collision(puback.pkid)
        self.write_pending()

    def handle_incoming_pubrec(self, pubrec: PubRec) -> None:
        if self.outgoing_pub.pop(pubrec.pkid, None) is None:
            log.error("unsolicited pubrec packet: %s", pubrec.pkid)
            raise Unsolicited(pubrec.pkid)
        self.outgoing_rel[pubrec.pkid] = pubrec.pkid
        self._outgoing.append(PubRel(pubrec.pkid))

    def handle_incoming_pubrel(self, pubrel: PubRel) -> None:
        if pubrel.pkid not in self.incoming_pub:
            log.error("unsolicited pubrel packet: %s", pubrel.pkid)
            raise Unsolicited(pubrel.pkid)
        self.incoming_pub.discard(pubrel.pkid)
        self._outgoing.append(PubComp(pubrel.pkid))

    def handle_incoming_pubcomp(self, pubcomp: PubComp) -> None:
        if self.outgoing_rel.pop(pubcomp.pkid, None) is None:
            log.error("unsolicited pubcomp packet: %s", pubcomp.pkid)
            raise Unsolicited(pubcomp.pkid)
        self.inflight -= 1
        self._check_and_resolve_collision(pubcomp.pkid)
        self.write_pending()

    def handle_incoming_pingreq(self) -> None:
        self._outgoing.append(PingResp())

    def _check_and_resolve_collision(self, pkid: int) -> None:
        publish = self.pending.collision
        if publish is None or publish.pkid != pkid:
            return
        self.pending.collision = None
        self._outgoing.append(publish)
        self.outgoing_pub[pkid] = publish
        self.inflight += 1
        log.info("resolving collision on packet id = %s, inflight = %s", pkid, self.inflight)

    def _next_pkid(self) -> int:
        next_pkid = self.last_pkid + 1
        if next_pkid == self.max_inflight:
            self.last_pkid = 0
            return next_pkid
        self.last_pkid = next_pkid
        return next_pkid