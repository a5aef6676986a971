"""Room membership registry."""
from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


def center_room(center_id: str) -> str:
    return f"center-{center_id}"


def thread_room(thread_id: str) -> str:
    return f"thread-{thread_id}"


class RoomRegistry:
    """Maps room keys to the ids of sessions subscribed to them.

    Only session ids are stored; resolving them to live sessions is up to
    the caller. Empty rooms are removed as soon as their last member leaves.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def join(self, room: str, session_id: str) -> bool:
        """Add ``session_id`` to ``room``; returns False if it was already a member."""

        with self._lock:
            members = self._rooms.setdefault(room, set())
            if session_id in members:
                return False
            members.add(session_id)
        logger.info("Session %s joined room %s", session_id, room)
        return True

    def leave(self, room: str, session_id: str) -> bool:
        with self._lock:
            members = self._rooms.get(room)
            if not members or session_id not in members:
                return False
            members.discard(session_id)
            if not members:
                del self._rooms[room]
        logger.info("Session %s left room %s", session_id, room)
        return True

    def members_of(self, room: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._rooms.get(room, ()))

    def rooms_of(self, session_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(room for room, members in self._rooms.items() if session_id in members)

    def purge_session(self, session_id: str) -> list[str]:
        """Remove ``session_id`` from every room it belongs to."""

        removed: list[str] = []
        with self._lock:
            for room in list(self._rooms):
                members = self._rooms[room]
                if session_id in members:
                    members.discard(session_id)
                    removed.append(room)
                    if not members:
                        del self._rooms[room]
        return removed

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)
