"""Center directory endpoints."""
from __future__ import annotations

from asyncio import to_thread
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..core.auth import Identity
from ..core.events import CenterUpdated, EventType
from ..core.rooms import center_room
from ..core.service import RealtimeService
from ..models.centers import CenterOut, ConnectRequest, ConnectResponse, ContactInfo, Coordinates
from ..store.database import SessionFactory
from ..store.models import CenterConnection, CommunityCenter, utcnow
from .deps import get_realtime, require_admin

router = APIRouter(tags=["centers"])


def _connections_of(session: Session, center_id: str) -> list[str]:
    rows = session.execute(
        select(CenterConnection).where(
            or_(CenterConnection.center_a_id == center_id, CenterConnection.center_b_id == center_id)
        )
    ).scalars().all()
    return sorted(
        row.center_b_id if row.center_a_id == center_id else row.center_a_id for row in rows
    )


def _center_out(session: Session, center: CommunityCenter) -> CenterOut:
    return CenterOut(
        id=center.id,
        name=center.name,
        location=center.location,
        coordinates=Coordinates(lat=center.latitude, lng=center.longitude),
        services=list(center.services or []),
        description=center.description or "",
        verified=center.verified,
        connections=_connections_of(session, center.id),
        added_by=center.added_by,
        contact_info=ContactInfo(phone=center.phone, email=center.email, website=center.website),
    )


def _get_center(session: Session, center_id: str) -> CommunityCenter:
    center = session.get(CommunityCenter, center_id)
    if center is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Center not found")
    return center


@router.get("/centers", response_model=list[CenterOut])
async def list_centers(
    search: Optional[str] = Query(None),
    verified: Optional[bool] = Query(None),
    service: Optional[str] = Query(None),
) -> list[CenterOut]:
    """Return directory entries, optionally filtered."""

    def _list() -> list[CenterOut]:
        with SessionFactory() as session:
            stmt = select(CommunityCenter).order_by(CommunityCenter.name)
            if search:
                pattern = f"%{search}%"
                stmt = stmt.where(
                    or_(
                        CommunityCenter.name.ilike(pattern),
                        CommunityCenter.location.ilike(pattern),
                        CommunityCenter.description.ilike(pattern),
                    )
                )
            if verified is not None:
                stmt = stmt.where(CommunityCenter.verified == verified)
            centers = session.execute(stmt).scalars().all()
            if service:
                centers = [c for c in centers if service in (c.services or [])]
            return [_center_out(session, center) for center in centers]

    return await to_thread(_list)


@router.get("/centers/{center_id}", response_model=CenterOut)
async def get_center(center_id: str) -> CenterOut:
    def _load() -> CenterOut:
        with SessionFactory() as session:
            return _center_out(session, _get_center(session, center_id))

    return await to_thread(_load)


@router.patch("/centers/{center_id}/verify", response_model=CenterOut)
async def verify_center(
    center_id: str,
    _admin: Identity = Depends(require_admin),
    realtime: RealtimeService = Depends(get_realtime),
) -> CenterOut:
    """Mark a center verified and notify its room."""

    def _verify() -> CenterOut:
        with SessionFactory() as session:
            center = _get_center(session, center_id)
            center.verified = True
            center.updated_at = utcnow()
            session.add(center)
            session.commit()
            return _center_out(session, center)

    response = await to_thread(_verify)
    await realtime.dispatcher.publish(
        EventType.CENTER_UPDATED,
        CenterUpdated(id=response.id, name=response.name, verified=True, action="verified"),
        room=center_room(response.id),
    )
    return response


@router.post("/centers/connect", response_model=ConnectResponse, status_code=status.HTTP_201_CREATED)
async def connect_centers(
    payload: ConnectRequest,
    _admin: Identity = Depends(require_admin),
    realtime: RealtimeService = Depends(get_realtime),
) -> ConnectResponse:
    """Link two centers and notify both of their rooms."""

    if payload.center1_id == payload.center2_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot connect center to itself",
        )

    def _connect() -> tuple[ConnectResponse, CommunityCenter, CommunityCenter]:
        with SessionFactory() as session:
            first = _get_center(session, payload.center1_id)
            second = _get_center(session, payload.center2_id)
            existing = session.execute(
                select(CenterConnection).where(
                    or_(
                        (CenterConnection.center_a_id == first.id)
                        & (CenterConnection.center_b_id == second.id),
                        (CenterConnection.center_a_id == second.id)
                        & (CenterConnection.center_b_id == first.id),
                    )
                )
            ).scalars().first()
            if existing is not None:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Centers are already connected",
                )
            connection = CenterConnection(center_a_id=first.id, center_b_id=second.id)
            session.add(connection)
            session.commit()
            return (
                ConnectResponse(
                    center1_id=first.id,
                    center2_id=second.id,
                    created_at=connection.created_at,
                ),
                first,
                second,
            )

    response, first, second = await to_thread(_connect)
    for center, other in ((first, second), (second, first)):
        await realtime.dispatcher.publish(
            EventType.CENTER_UPDATED,
            CenterUpdated(
                id=center.id,
                name=center.name,
                verified=center.verified,
                action="connected",
                connected_to=other.id,
            ),
            room=center_room(center.id),
        )
    return response
