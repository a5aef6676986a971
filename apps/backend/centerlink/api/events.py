"""Event handshake: server-sent events stream or polling batch."""
from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sse_starlette.sse import EventSourceResponse

from ..core.auth import AuthenticationError, Identity
from ..core.events import GLOBAL, EventError, EventRecord, EventScope
from ..core.service import RealtimeService
from ..core.sessions import ConnectionSession, DeliveryMode
from ..core.store import parse_cursor
from ..core.transports import QueueTransport
from ..models.events import (
    EmitRequest,
    EmitResponse,
    EventBatch,
    EventOut,
    StoreStatsOut,
)
from .deps import auth_http_error, current_identity, get_realtime, request_token

router = APIRouter(tags=["events"])


def _now_ms() -> int:
    return int(time.time() * 1000)


def _handshake(realtime: RealtimeService, token: Optional[str], mode: DeliveryMode) -> ConnectionSession:
    try:
        return realtime.sessions.handshake(token, mode)
    except AuthenticationError as exc:
        raise auth_http_error(exc) from exc


def _event_out(record: EventRecord) -> EventOut:
    return EventOut.model_validate(record.to_wire())


def _sse(message: dict[str, Any]) -> dict[str, Any]:
    event: dict[str, Any] = {"event": message["type"], "data": json.dumps(message)}
    if message.get("id") is not None:
        event["id"] = message["id"]
    return event


@router.get("/events", response_model=None)
async def open_events(
    request: Request,
    mode: str = Query("auto"),
    since: Optional[str] = Query(None),
    session: Optional[str] = Query(None),
    token: Optional[str] = Depends(request_token),
    realtime: RealtimeService = Depends(get_realtime),
) -> EventSourceResponse | EventBatch:
    """Open a push stream or return the events since ``since``, per the declared capability."""

    cursor = since if since is not None else request.headers.get("last-event-id", "0")
    delivery = DeliveryMode.negotiate(mode, request.headers.get("accept"))
    if delivery is DeliveryMode.PULL:
        return _poll(realtime, token, cursor, session)

    live = _handshake(realtime, token, DeliveryMode.PUSH)
    transport = QueueTransport(realtime.settings.stream_queue_size)
    realtime.sessions.go_live(live, transport)
    # Replay is read after the session is live so nothing falls between the two.
    backlog = realtime.store.query(cursor, live.user_id)
    return EventSourceResponse(event_stream(realtime, live, transport, backlog, cursor))


def _poll(
    realtime: RealtimeService,
    token: Optional[str],
    cursor: str,
    session_id: Optional[str],
) -> EventBatch:
    session = _reusable_pull_session(realtime, token, session_id)
    if session is None:
        session = _handshake(realtime, token, DeliveryMode.PULL)
        realtime.sessions.go_live(session)
    else:
        realtime.sessions.touch(session.id)

    records = realtime.store.query(cursor, session.user_id)
    next_cursor = records[-1].id if records else str(parse_cursor(cursor))
    session.cursor = next_cursor
    return EventBatch(
        events=[_event_out(record) for record in records],
        cursor=next_cursor,
        count=len(records),
        timestamp=_now_ms(),
        session_id=session.id,
    )


def _reusable_pull_session(
    realtime: RealtimeService, token: Optional[str], session_id: Optional[str]
) -> Optional[ConnectionSession]:
    existing = realtime.sessions.get(session_id)
    if existing is None or not existing.is_live or existing.mode is not DeliveryMode.PULL:
        return None
    try:
        identity = realtime.authenticator.authenticate(token)
    except AuthenticationError as exc:
        raise auth_http_error(exc) from exc
    if identity.user_id != existing.user_id:
        return None
    return existing


async def event_stream(
    realtime: RealtimeService,
    session: ConnectionSession,
    transport: QueueTransport,
    backlog: list[EventRecord],
    cursor: str,
) -> AsyncIterator[dict[str, Any]]:
    """SSE body: greeting, backlog replay, then live pushes until the session closes."""

    last_seen = parse_cursor(cursor)
    try:
        yield {
            "event": "connected",
            "data": json.dumps({"sessionId": session.id, "cursor": str(last_seen)}),
        }
        for record in backlog:
            last_seen = record.sequence
            session.cursor = record.id
            yield _sse(record.to_wire())
            realtime.sessions.touch(session.id)
        async for message in transport.messages():
            if message.get("type") == "keepalive":
                yield {"comment": "ping"}
                # Resumed only once the response body has taken the previous chunk.
                realtime.sessions.touch(session.id)
                continue
            if message.get("id") is not None:
                sequence = parse_cursor(message["id"])
                if sequence <= last_seen:
                    continue
                last_seen = sequence
            yield _sse(message)
            realtime.sessions.touch(session.id)
    finally:
        await realtime.sessions.close(session.id, "stream closed")


@router.get("/events/stats", response_model=StoreStatsOut)
async def event_stats(
    _identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> StoreStatsOut:
    """Diagnostic view of the event store and session table."""

    stats = realtime.store.stats()
    return StoreStatsOut(
        total_events=stats.count,
        oldest_event=int(stats.oldest * 1000) if stats.oldest is not None else None,
        newest_event=int(stats.newest * 1000) if stats.newest is not None else None,
        event_types=stats.by_type,
        capacity=stats.capacity,
        ttl_seconds=stats.ttl_seconds,
        last_id=stats.last_id,
        live_sessions=len(realtime.sessions.live_sessions()),
        rooms=realtime.rooms.room_count(),
    )


@router.post("/events/test", response_model=EmitResponse)
async def emit_test_event(
    payload: EmitRequest,
    _identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> EmitResponse:
    """Emit an arbitrary typed event. Only available with dev endpoints enabled."""

    if not realtime.settings.dev_endpoints:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    scope = EventScope.for_user(payload.user_id) if payload.user_id else GLOBAL
    try:
        result = await realtime.dispatcher.publish(
            payload.type, payload.data, room=payload.room, scope=scope
        )
    except EventError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return EmitResponse(
        event=_event_out(result.record),
        delivered=len(result.delivered),
        failed=len(result.failed),
    )
