"""WebSocket push channel with room membership and typing frames."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ..core.auth import AuthenticationError, bearer_token
from ..core.rooms import center_room, thread_room
from ..core.service import RealtimeService
from ..core.sessions import ConnectionSession, DeliveryMode
from ..core.store import parse_cursor
from ..core.transports import TransportError, WebSocketTransport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

AUTH_FAILED_CLOSE_CODE = 4401

_ROOM_FRAMES = {
    "join-center": ("centerId", center_room, True),
    "leave-center": ("centerId", center_room, False),
    "join-thread": ("threadId", thread_room, True),
    "leave-thread": ("threadId", thread_room, False),
}


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    since: str = Query("0"),
) -> None:
    realtime: RealtimeService = websocket.app.state.realtime
    credential = bearer_token(websocket.headers.get("authorization")) or token
    await websocket.accept()
    try:
        session = realtime.sessions.handshake(credential, DeliveryMode.PUSH)
    except AuthenticationError as exc:
        await websocket.send_json({"type": "error", "error": str(exc)})
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE)
        return

    transport = WebSocketTransport(websocket, replaying=True)
    realtime.sessions.go_live(session, transport)
    try:
        await transport.send(
            {"type": "connected", "sessionId": session.id, "cursor": str(parse_cursor(since))}
        )
        # Pushes landing while the backlog is written are held by the transport.
        backlog = realtime.store.query(since, session.user_id)
        await transport.replay(record.to_wire() for record in backlog)
        if backlog:
            session.cursor = backlog[-1].id
        while True:
            raw = await websocket.receive_text()
            realtime.sessions.touch(session.id)
            reply = await _handle_frame(realtime, session, raw)
            if reply is not None:
                await transport.send(reply)
    except WebSocketDisconnect:
        pass
    except TransportError as exc:
        logger.warning("Socket for session %s failed: %s", session.id, exc)
    finally:
        await realtime.sessions.close(session.id, "socket closed")


async def _handle_frame(
    realtime: RealtimeService, session: ConnectionSession, raw: str
) -> Optional[dict[str, Any]]:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return {"type": "error", "error": "frames must be JSON objects"}
    if not isinstance(frame, dict):
        return {"type": "error", "error": "frames must be JSON objects"}

    kind = frame.get("type")
    if kind == "ping":
        return {"type": "pong"}
    if kind in {"pong", "keepalive-ack"}:
        # Liveness only; the caller already refreshed the session.
        return None

    if kind in _ROOM_FRAMES:
        field, room_for, joining = _ROOM_FRAMES[kind]
        target = frame.get(field)
        if not target:
            return {"type": "error", "error": f"{field} is required"}
        room = room_for(str(target))
        if joining:
            realtime.rooms.join(room, session.id)
            return {"type": "joined", "room": room}
        realtime.rooms.leave(room, session.id)
        return {"type": "left", "room": room}

    if kind in {"typing-start", "typing-stop"}:
        thread_id = frame.get("threadId")
        if not thread_id:
            return {"type": "error", "error": "threadId is required"}
        room = thread_room(str(thread_id))
        if kind == "typing-start":
            await realtime.typing.start_from_session(room, session.id)
        else:
            await realtime.typing.stop_from_session(room, session.id)
        return None

    return {"type": "error", "error": f"unknown frame type {kind!r}"}
