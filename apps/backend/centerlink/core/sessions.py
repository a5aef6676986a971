"""Connection sessions and the table that tracks them."""
from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .auth import AuthenticationError, Identity, TokenAuthenticator
from .rooms import RoomRegistry
from .transports import Transport

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    LIVE = "live"
    CLOSED = "closed"


class DeliveryMode(str, Enum):
    PUSH = "push"
    PULL = "pull"

    @classmethod
    def negotiate(cls, requested: Optional[str], accept: Optional[str] = None) -> "DeliveryMode":
        """Pick the delivery mode from the declared capability.

        ``push``/``sse``/``ws`` and ``pull``/``poll`` are explicit; ``auto``
        (or anything else) goes by whether the client accepts an event stream.
        """

        value = (requested or "auto").strip().lower()
        if value in {"push", "sse", "ws", "websocket"}:
            return cls.PUSH
        if value in {"pull", "poll", "polling"}:
            return cls.PULL
        if accept and "text/event-stream" in accept:
            return cls.PUSH
        return cls.PULL


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.CONNECTING: frozenset({SessionState.AUTHENTICATED, SessionState.CLOSED}),
    SessionState.AUTHENTICATED: frozenset({SessionState.LIVE, SessionState.CLOSED}),
    SessionState.LIVE: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
}


class SessionStateError(RuntimeError):
    """Raised on a transition the session lifecycle does not allow."""


@dataclass(slots=True)
class ConnectionSession:
    """One client's channel: who it is, how it receives events and whether it is alive."""

    id: str
    mode: DeliveryMode
    created_at: float
    last_activity: float
    state: SessionState = SessionState.CONNECTING
    identity: Optional[Identity] = None
    transport: Optional[Transport] = None
    cursor: str = "0"
    close_reason: Optional[str] = None
    state_changed_at: float = field(default=0.0)

    @property
    def is_live(self) -> bool:
        return self.state is SessionState.LIVE

    @property
    def accepts_push(self) -> bool:
        return self.is_live and self.mode is DeliveryMode.PUSH and self.transport is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.identity.user_id if self.identity else None

    def transition(self, target: SessionState, *, now: float) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Session {self.id} cannot move from {self.state.value} to {target.value}"
            )
        self.state = target
        self.state_changed_at = now


class SessionManager:
    """Owns every open :class:`ConnectionSession` and its lifecycle."""

    def __init__(
        self,
        authenticator: TokenAuthenticator,
        rooms: RoomRegistry,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._authenticator = authenticator
        self._rooms = rooms
        self._clock = clock
        self._sessions: dict[str, ConnectionSession] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def handshake(self, token: Optional[str], mode: DeliveryMode) -> ConnectionSession:
        """Create a session and authenticate it, or close it and raise."""

        now = self._clock()
        session = ConnectionSession(
            id=uuid.uuid4().hex,
            mode=mode,
            created_at=now,
            last_activity=now,
            state_changed_at=now,
        )
        with self._lock:
            self._sessions[session.id] = session
        try:
            identity = self._authenticator.authenticate(token)
        except AuthenticationError as exc:
            session.close_reason = str(exc)
            session.transition(SessionState.CLOSED, now=self._clock())
            with self._lock:
                self._sessions.pop(session.id, None)
            logger.info("Handshake rejected: %s", exc)
            raise
        session.identity = identity
        session.transition(SessionState.AUTHENTICATED, now=self._clock())
        return session

    def go_live(self, session: ConnectionSession, transport: Optional[Transport] = None) -> None:
        if session.mode is DeliveryMode.PUSH and transport is None:
            raise SessionStateError("Push sessions need a transport before going live")
        session.transport = transport
        session.transition(SessionState.LIVE, now=self._clock())
        session.last_activity = self._clock()
        logger.info(
            "Session %s live for user %s (%s)",
            session.id,
            session.user_id,
            session.mode.value,
        )

    def get(self, session_id: Optional[str]) -> Optional[ConnectionSession]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def all(self) -> list[ConnectionSession]:
        with self._lock:
            return list(self._sessions.values())

    def live_sessions(self) -> list[ConnectionSession]:
        return [session for session in self.all() if session.is_live]

    def sessions_for_user(self, user_id: str) -> list[ConnectionSession]:
        return [session for session in self.live_sessions() if session.user_id == user_id]

    def touch(self, session_id: str) -> None:
        session = self.get(session_id)
        if session is not None:
            session.last_activity = self._clock()

    async def close(self, session_id: str, reason: str = "closed") -> bool:
        """Close a session, drop its room memberships and release its transport."""

        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        rooms = self._rooms.purge_session(session_id)
        if session.state is not SessionState.CLOSED:
            session.close_reason = reason
            session.transition(SessionState.CLOSED, now=self._clock())
        if session.transport is not None:
            try:
                await session.transport.close()
            except Exception:
                logger.warning("Closing transport for session %s failed", session_id, exc_info=True)
        logger.info(
            "Session %s closed (%s); left %d room(s)", session_id, reason, len(rooms)
        )
        return True

    async def close_all(self, reason: str = "shutdown") -> int:
        closed = 0
        for session in self.all():
            if await self.close(session.id, reason):
                closed += 1
        return closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
