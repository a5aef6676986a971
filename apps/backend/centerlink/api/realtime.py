"""REST endpoints for room membership and typing indicators."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..core.auth import Identity
from ..core.rooms import center_room, thread_room
from ..core.service import RealtimeService
from ..core.sessions import ConnectionSession
from ..models.events import CenterRoomRequest, ThreadRoomRequest, TypingRequest
from .deps import current_identity, get_realtime

router = APIRouter(prefix="/realtime", tags=["realtime"])


def _target_sessions(
    realtime: RealtimeService, identity: Identity, session_id: Optional[str]
) -> list[ConnectionSession]:
    """The named session when given (it must belong to the caller), else all of the caller's."""

    if session_id is None:
        return realtime.sessions.sessions_for_user(identity.user_id)
    session = realtime.sessions.get(session_id)
    if session is None or not session.is_live or session.user_id != identity.user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return [session]


def _join(realtime: RealtimeService, identity: Identity, room: str, session_id: Optional[str]) -> None:
    for session in _target_sessions(realtime, identity, session_id):
        realtime.rooms.join(room, session.id)


def _leave(realtime: RealtimeService, identity: Identity, room: str, session_id: Optional[str]) -> None:
    for session in _target_sessions(realtime, identity, session_id):
        realtime.rooms.leave(room, session.id)


@router.post("/join-center", status_code=status.HTTP_204_NO_CONTENT)
async def join_center(
    payload: CenterRoomRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> Response:
    _join(realtime, identity, center_room(payload.center_id), payload.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/leave-center", status_code=status.HTTP_204_NO_CONTENT)
async def leave_center(
    payload: CenterRoomRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> Response:
    _leave(realtime, identity, center_room(payload.center_id), payload.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/join-thread", status_code=status.HTTP_204_NO_CONTENT)
async def join_thread(
    payload: ThreadRoomRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> Response:
    _join(realtime, identity, thread_room(payload.thread_id), payload.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/leave-thread", status_code=status.HTTP_204_NO_CONTENT)
async def leave_thread(
    payload: ThreadRoomRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> Response:
    _leave(realtime, identity, thread_room(payload.thread_id), payload.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/typing-start", status_code=status.HTTP_204_NO_CONTENT)
async def typing_start(
    payload: TypingRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> Response:
    own = [session.id for session in realtime.sessions.sessions_for_user(identity.user_id)]
    await realtime.typing.start_typing(
        thread_room(payload.thread_id), identity, exclude=own, user_name=payload.user_name
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/typing-stop", status_code=status.HTTP_204_NO_CONTENT)
async def typing_stop(
    payload: TypingRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> Response:
    own = [session.id for session in realtime.sessions.sessions_for_user(identity.user_id)]
    await realtime.typing.stop_typing(
        thread_room(payload.thread_id), identity, exclude=own, user_name=payload.user_name
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
