"""Commit logs of the router: acks, topic data and the list of new topics."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from .messages import (
    Data,
    DataRequest,
    Packet,
    PubAck,
    PubRec,
    RouterConfig,
    SubAck,
    SubscribeReasonCode,
    UnsubAck,
)


class AcksLog:
    """Acks committed for one connection, waiting to be handed back to it."""

    def __init__(self) -> None:
        self._pending_request = False
        self._acks: list[Packet] = []

    def handle_acks_request(self) -> list[Packet] | None:
        """All committed acks, or None when there are none."""
        acks = self.take()
        return acks or None

    def register_pending_acks_request(self) -> None:
        self._pending_request = True

    def take_pending_acks_request(self) -> bool:
        """True once if an acks request was waiting; clears it."""
        pending, self._pending_request = self._pending_request, False
        return pending

    def push_publish_ack(self, pkid: int, qos: int) -> None:
        if qos == 1:
            self._acks.append(PubAck(pkid))
        elif qos == 2:
            self._acks.append(PubRec(pkid))

    def push_subscribe_ack(self, pkid: int, return_codes: list[SubscribeReasonCode]) -> None:
        self._acks.append(SubAck(pkid, list(return_codes)))

    def push_unsubscribe_ack(self, pkid: int) -> None:
        self._acks.append(UnsubAck(pkid))

    def take(self) -> list[Packet]:
        """Return the committed acks and empty the log."""
        acks, self._acks = self._acks, []
        return acks


@dataclass
class _Segment:
    base: int
    records: list[bytes] = field(default_factory=list)
    size: int = 0

    @property
    def end(self) -> int:
        return self.base + len(self.records)


class MemoryLog:
    """In-memory log split into segments; offsets are absolute record numbers.

    A segment is identified by the offset of its first record. Once a segment
    reaches ``max_segment_size`` bytes a new one is started, and the oldest
    segment is dropped when there are more than ``max_segment_count``.
    """

    def __init__(self, max_segment_size: int, max_segment_count: int) -> None:
        self.max_segment_size = max_segment_size
        self.max_segment_count = max_segment_count
        self._segments: deque[_Segment] = deque([_Segment(0)])

    def append(self, size: int, record: bytes) -> tuple[int, int]:
        """Append a record and return its (segment, offset)."""
        active = self._segments[-1]
        if active.records and active.size >= self.max_segment_size:
            active = _Segment(active.end)
            self._segments.append(active)
            if len(self._segments) > self.max_segment_count:
                self._segments.popleft()
        active.records.append(bytes(record))
        active.size += size
        return active.base, active.end - 1

    def next_offset(self) -> tuple[int, int]:
        """Cursor of the next record to be appended."""
        active = self._segments[-1]
        return active.base, active.end

    def readv(self, segment: int, offset: int) -> tuple[int | None, int, int, list[bytes]]:
        """Read from a cursor.

        Returns (jump, segment, offset, records). ``jump`` is the segment to
        continue from when reading moved past a finished segment; otherwise
        (segment, offset) is the cursor to read from next.
        """
        first = self._segments[0]
        if segment < first.base:
            index = 0
            offset = first.base
        else:
            index = next(
                (i for i, seg in enumerate(self._segments) if seg.base == segment), None
            )
            if index is None:
                return None, segment, offset, []

        last = len(self._segments) - 1
        while True:
            current = self._segments[index]
            offset = max(offset, current.base)
            records = current.records[offset - current.base:]
            if index == last:
                return None, current.base, current.end, records
            following = self._segments[index + 1]
            if records:
                return following.base, following.base, following.base, records
            index += 1
            offset = following.base


@dataclass
class _TopicData:
    log: MemoryLog
    retained: tuple[int, bytes] | None = None


class DataLog:
    """Per-topic commit logs along with each topic's retained publish."""

    def __init__(self, config: RouterConfig | None = None) -> None:
        self.config = config if config is not None else RouterConfig()
        self._logs: dict[str, _TopicData] = {}

    def _new_topic(self) -> _TopicData:
        return _TopicData(MemoryLog(self.config.max_segment_size, self.config.max_segment_count))

    def append(self, topic: str, record: bytes) -> tuple[bool, tuple[int, int]]:
        """Append to the topic's log; returns whether the topic is new and the offsets."""
        is_new = topic not in self._logs
        data = self._logs.setdefault(topic, self._new_topic()) if is_new else self._logs[topic]
        record = bytes(record)
        return is_new, data.log.append(len(record), record)

    def retain(self, topic: str, record: bytes) -> bool:
        """Replace the retained publish (an empty record clears it); returns whether the topic is new."""
        is_new = topic not in self._logs
        data = self._logs.setdefault(topic, self._new_topic())
        record = bytes(record)
        if not record:
            data.retained = None
        else:
            retain_id = data.retained[0] if data.retained is not None else 0
            data.retained = (retain_id + 1, record)
        return is_new

    def next_offset(self, topic: str) -> tuple[int, int] | None:
        data = self._logs.get(topic)
        return data.log.next_offset() if data is not None else None

    def seek_offsets_to_end(
        self, matched: tuple[str, int, tuple[int, int]]
    ) -> tuple[str, int, tuple[int, int]]:
        """Return the matched topic with its cursor moved to the end of the topic's log."""
        topic, qos, cursor = matched
        end = self.next_offset(topic)
        return topic, qos, end if end is not None else cursor

    def readv(
        self, topic: str, segment: int, offset: int, last_retain: int
    ) -> tuple[int | None, int, int, int, list[bytes]] | None:
        """Read a topic from a cursor, adding the retained publish if it is newer than ``last_retain``.

        Returns (jump, segment, offset, last_retain, records), or None for an unknown topic.
        """
        data = self._logs.get(topic)
        if data is None:
            return None
        jump, segment, offset, out = data.log.readv(segment, offset)
        if data.retained is not None:
            retain_id, record = data.retained
            if retain_id != last_retain:
                out.append(record)
                last_retain = retain_id
        return jump, segment, offset, last_retain, out

    def extract_data(self, request: DataRequest) -> Data | None:
        """Data for the request, or None when the topic is caught up or unknown."""
        segment, offset = request.cursor
        result = self.readv(request.topic, segment, offset, request.last_retain)
        if result is None:
            return None
        jump, base_offset, record_offset, last_retain, records = result
        cursor = (jump, jump) if jump is not None else (base_offset, record_offset)
        if not records:
            return None
        return Data(request.topic, request.qos, cursor, last_retain, 0, records)


class TopicsLog:
    """Ordered list of new topics."""

    def __init__(self) -> None:
        self._topics: list[str] = []

    def readv(self, offset: int, count: int) -> tuple[int, list[str]] | None:
        """Read up to ``count`` topics (all of them when 0) from ``offset``.

        Returns the offset to continue from and the topics, or None when caught up.
        """
        length = len(self._topics)
        if offset >= length:
            return None
        next_offset = length if count == 0 else min(offset + count, length)
        out = self._topics[offset:next_offset]
        if not out:
            return None
        return next_offset, out

    def append(self, topic: str) -> None:
        self._topics.append(topic)

    def __len__(self) -> int:
        return len(self._topics)