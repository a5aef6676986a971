"""Fan-out of event records to live push sessions."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .events import GLOBAL, EventRecord, EventScope, EventType
from .rooms import RoomRegistry
from .sessions import ConnectionSession, SessionManager
from .store import EventStore
from .transports import TransportError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchResult:
    record: Optional[EventRecord]
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class Dispatcher:
    """Stores every event, then pushes it to the sessions that should see it now.

    One broken connection never holds up the rest: each send runs
    concurrently under its own timeout and retry budget, and a session whose
    send ultimately fails is closed.
    """

    def __init__(
        self,
        store: EventStore,
        rooms: RoomRegistry,
        sessions: SessionManager,
        *,
        send_timeout: float = 5.0,
        send_attempts: int = 2,
    ) -> None:
        self._store = store
        self._rooms = rooms
        self._sessions = sessions
        self._send_timeout = send_timeout
        self._send_attempts = max(1, send_attempts)

    async def publish(
        self,
        event_type: EventType | str,
        payload: Any,
        *,
        room: Optional[str] = None,
        scope: EventScope = GLOBAL,
    ) -> DispatchResult:
        record = self._store.append(event_type, payload, scope)
        targets = self._targets(room, scope)
        delivered, failed = await self._deliver(targets, record.to_wire(), cursor=record.id)
        return DispatchResult(record=record, delivered=delivered, failed=failed)

    async def send_ephemeral(
        self,
        message: dict[str, Any],
        session_ids: Iterable[str],
        *,
        exclude: Iterable[str] = (),
    ) -> DispatchResult:
        """Push ``message`` to the given sessions without recording it."""

        skipped = set(exclude)
        targets = [
            session
            for session in self._resolve(session_ids)
            if session.accepts_push and session.id not in skipped
        ]
        delivered, failed = await self._deliver(targets, message)
        return DispatchResult(record=None, delivered=delivered, failed=failed)

    def _targets(self, room: Optional[str], scope: EventScope) -> list[ConnectionSession]:
        if room is None:
            candidates = self._sessions.all()
        else:
            candidates = self._resolve(self._rooms.members_of(room))
        return [
            session
            for session in candidates
            if session.accepts_push and scope.visible_to(session.user_id)
        ]

    def _resolve(self, session_ids: Iterable[str]) -> list[ConnectionSession]:
        resolved = []
        for session_id in session_ids:
            session = self._sessions.get(session_id)
            if session is not None:
                resolved.append(session)
        return resolved

    async def _deliver(
        self,
        targets: list[ConnectionSession],
        message: dict[str, Any],
        *,
        cursor: Optional[str] = None,
    ) -> tuple[list[str], list[str]]:
        if not targets:
            return [], []
        outcomes = await asyncio.gather(
            *(self._deliver_one(session, message, cursor) for session in targets)
        )
        delivered = [session.id for session, ok in zip(targets, outcomes) if ok]
        failed = [session.id for session, ok in zip(targets, outcomes) if not ok]
        return delivered, failed

    async def _deliver_one(
        self,
        session: ConnectionSession,
        message: dict[str, Any],
        cursor: Optional[str],
    ) -> bool:
        try:
            await self._send(session, message)
        except Exception as exc:
            logger.warning(
                "Delivery of %s to session %s failed: %s",
                message.get("type"),
                session.id,
                str(exc) or type(exc).__name__,
            )
            await self._sessions.close(session.id, "send failed")
            return False
        # A write that succeeds proves nothing about the peer; only inbound
        # traffic refreshes last_activity.
        if cursor is not None:
            session.cursor = cursor
        return True

    async def _send(self, session: ConnectionSession, message: dict[str, Any]) -> None:
        transport = session.transport
        if transport is None:
            raise TransportError(f"Session {session.id} has no transport")
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._send_attempts),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
            retry=retry_if_exception_type((TransportError, asyncio.TimeoutError)),
            reraise=True,
        ):
            with attempt:
                await asyncio.wait_for(transport.send(message), timeout=self._send_timeout)
