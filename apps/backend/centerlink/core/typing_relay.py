"""Ephemeral typing indicators scoped to a room."""
from __future__ import annotations

from collections.abc import Iterable

from .auth import Identity
from .dispatcher import Dispatcher, DispatchResult
from .events import EventType, TypingChanged, ephemeral_message
from .rooms import RoomRegistry
from .sessions import SessionManager


class TypingRelay:
    """Relays start/stop typing signals to the other members of a room.

    Nothing is written to the event store; a dropped signal is corrected by
    the next keystroke.
    """

    def __init__(self, rooms: RoomRegistry, sessions: SessionManager, dispatcher: Dispatcher) -> None:
        self._rooms = rooms
        self._sessions = sessions
        self._dispatcher = dispatcher

    async def start_typing(
        self, room: str, who: Identity, *, exclude: Iterable[str] = (), user_name: str | None = None
    ) -> DispatchResult:
        return await self._relay(room, who, True, exclude, user_name)

    async def stop_typing(
        self, room: str, who: Identity, *, exclude: Iterable[str] = (), user_name: str | None = None
    ) -> DispatchResult:
        return await self._relay(room, who, False, exclude, user_name)

    async def start_from_session(self, room: str, session_id: str) -> DispatchResult:
        return await self._from_session(room, session_id, True)

    async def stop_from_session(self, room: str, session_id: str) -> DispatchResult:
        return await self._from_session(room, session_id, False)

    async def _from_session(self, room: str, session_id: str, typing: bool) -> DispatchResult:
        session = self._sessions.get(session_id)
        if session is None or session.identity is None:
            return DispatchResult(record=None)
        return await self._relay(room, session.identity, typing, (session_id,), None)

    async def _relay(
        self,
        room: str,
        who: Identity,
        typing: bool,
        exclude: Iterable[str],
        user_name: str | None,
    ) -> DispatchResult:
        message = ephemeral_message(
            EventType.TYPING_CHANGED,
            TypingChanged(
                room=room,
                user_id=who.user_id,
                user_name=user_name or who.name,
                typing=typing,
            ),
        )
        return await self._dispatcher.send_ephemeral(
            message, self._rooms.members_of(room), exclude=exclude
        )
