"""Bounded, time-windowed in-memory event buffer used for pull delivery and replay."""
from __future__ import annotations

import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .events import GLOBAL, EventRecord, EventScope, EventType, coerce_event_type, parse_payload

logger = logging.getLogger(__name__)


def parse_cursor(value: Any) -> int:
    """Turn a client cursor into a sequence number; anything unusable means "from the start"."""

    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    text = str(value).strip()
    # Tolerate "<sequence>-<suffix>" ids handed out by older clients.
    head = text.split("-", 1)[0] if text and text[0] != "-" else text
    try:
        return max(int(head), 0)
    except ValueError:
        return 0


@dataclass(slots=True)
class StoreStats:
    count: int
    oldest: Optional[float]
    newest: Optional[float]
    by_type: dict[str, int] = field(default_factory=dict)
    capacity: int = 0
    ttl_seconds: float = 0.0
    last_id: str = "0"


class EventStore:
    """Ordered ring of :class:`EventRecord` bounded by count and by age.

    Records are kept in append order. Ids are strictly increasing integers
    (in string form) and timestamps never decrease, so the id is a valid
    resumption cursor.
    """

    def __init__(
        self,
        *,
        capacity: int = 1000,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: deque[EventRecord] = deque()
        self._lock = threading.Lock()
        self._sequence = 0
        self._last_timestamp = 0.0

    def append(
        self,
        event_type: EventType | str,
        payload: Any,
        scope: EventScope = GLOBAL,
    ) -> EventRecord:
        kind = coerce_event_type(event_type)
        body = parse_payload(kind, payload)
        with self._lock:
            now = self._clock()
            self._sequence += 1
            timestamp = max(now, self._last_timestamp)
            self._last_timestamp = timestamp
            record = EventRecord(
                id=str(self._sequence),
                sequence=self._sequence,
                type=kind,
                payload=body,
                timestamp=timestamp,
                scope=scope,
            )
            if self._records and self._records[-1].sequence >= record.sequence:
                self._reset_locked("tail sequence is ahead of the new record")
            self._records.append(record)
            try:
                self._evict_locked(now)
            except Exception:
                logger.exception("Event store eviction failed")
                self._reset_locked("eviction failure")
        logger.info("Event stored: %s (%s)", kind.value, record.id)
        return record

    def query(self, cursor: Any = "0", recipient: Optional[str] = None) -> list[EventRecord]:
        """Records newer than ``cursor`` that ``recipient`` may see, oldest first."""

        after = parse_cursor(cursor)
        with self._lock:
            self._evict_expired_locked(self._clock())
            snapshot = list(self._records)
        return [
            record
            for record in snapshot
            if record.sequence > after and record.scope.visible_to(recipient)
        ]

    def stats(self) -> StoreStats:
        with self._lock:
            snapshot = list(self._records)
            last_id = str(self._sequence)
        counts = Counter(record.type.value for record in snapshot)
        return StoreStats(
            count=len(snapshot),
            oldest=snapshot[0].timestamp if snapshot else None,
            newest=snapshot[-1].timestamp if snapshot else None,
            by_type=dict(counts),
            capacity=self.capacity,
            ttl_seconds=self.ttl_seconds,
            last_id=last_id,
        )

    @property
    def last_id(self) -> str:
        with self._lock:
            return str(self._sequence)

    def clear(self) -> int:
        """Drop every record; the id sequence keeps counting so cursors stay valid."""

        with self._lock:
            dropped = len(self._records)
            self._records.clear()
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _evict_locked(self, now: float) -> None:
        self._evict_expired_locked(now)
        surplus = len(self._records) - self.capacity
        for _ in range(max(surplus, 0)):
            self._records.popleft()

    def _evict_expired_locked(self, now: float) -> None:
        horizon = now - self.ttl_seconds
        while self._records and self._records[0].timestamp <= horizon:
            self._records.popleft()

    def _reset_locked(self, reason: str) -> None:
        logger.error("Resetting event store (%s); %d records dropped", reason, len(self._records))
        self._records.clear()
