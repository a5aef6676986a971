"""Contact inquiries and center-to-center message threads."""
from __future__ import annotations

from asyncio import to_thread

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.auth import Identity
from ..core.events import ContactMessageCreated, EventType, MessageCreated
from ..core.rooms import thread_room
from ..core.service import RealtimeService
from ..models.centers import (
    CenterMessageOut,
    ContactMessageOut,
    ContactRequest,
    MessageCreateRequest,
    ThreadCreateRequest,
    ThreadOut,
)
from ..store.database import SessionFactory
from ..store.models import CenterMessage, CommunityCenter, ContactMessage, MessageThread, utcnow
from .deps import current_identity, get_realtime, require_admin

router = APIRouter(prefix="/messages", tags=["messages"])


def _contact_out(message: ContactMessage, center_name: str) -> ContactMessageOut:
    return ContactMessageOut(
        id=message.id,
        center_id=message.center_id,
        center_name=center_name,
        sender_name=message.sender_name,
        sender_email=message.sender_email,
        subject=message.subject,
        message=message.message,
        inquiry_type=message.inquiry_type,
        timestamp=message.created_at,
        status=message.status,
    )


def _thread_out(thread: MessageThread) -> ThreadOut:
    return ThreadOut(
        id=thread.id,
        participants=[center.id for center in thread.participants],
        participant_names=[center.name for center in thread.participants],
        subject=thread.subject,
        last_activity=thread.last_activity,
        message_count=thread.message_count,
    )


def _message_out(message: CenterMessage, sender_name: str) -> CenterMessageOut:
    return CenterMessageOut(
        id=message.id,
        thread_id=message.thread_id,
        sender_id=message.sender_id,
        sender_name=sender_name,
        content=message.content,
        timestamp=message.created_at,
        read=message.read,
    )


def _get_thread(session: Session, thread_id: str) -> MessageThread:
    thread = session.get(MessageThread, thread_id)
    if thread is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")
    return thread


def _sending_center(thread: MessageThread, identity: Identity) -> CommunityCenter:
    """The participant center the caller speaks for."""

    for center in thread.participants:
        if center.manager_id == identity.user_id:
            return center
    if identity.is_admin:
        for center in thread.participants:
            if center.verified:
                return center
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="No center found to send message from",
    )


@router.post("/contact", response_model=ContactMessageOut, status_code=status.HTTP_201_CREATED)
async def send_contact_message(
    payload: ContactRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> ContactMessageOut:
    """Record an inquiry for a center and notify administrators."""

    def _create() -> ContactMessageOut:
        with SessionFactory() as session:
            center = session.get(CommunityCenter, payload.center_id)
            if center is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Center not found")
            message = ContactMessage(
                center_id=center.id,
                sender_user_id=identity.user_id,
                sender_name=identity.name,
                sender_email=identity.email or "",
                subject=payload.subject.strip(),
                message=payload.message.strip(),
                inquiry_type=payload.inquiry_type,
                status="pending",
            )
            session.add(message)
            session.commit()
            return _contact_out(message, center.name)

    response = await to_thread(_create)
    await realtime.dispatcher.publish(
        EventType.CONTACT_MESSAGE_CREATED,
        ContactMessageCreated(
            id=response.id,
            center_id=response.center_id,
            center_name=response.center_name,
            sender_name=response.sender_name,
            sender_email=response.sender_email,
            subject=response.subject,
            inquiry_type=response.inquiry_type,
            timestamp=response.timestamp,
        ),
    )
    return response


@router.get("/contact", response_model=list[ContactMessageOut])
async def list_contact_messages(_admin: Identity = Depends(require_admin)) -> list[ContactMessageOut]:
    def _list() -> list[ContactMessageOut]:
        with SessionFactory() as session:
            rows = session.execute(
                select(ContactMessage, CommunityCenter.name)
                .join(CommunityCenter, ContactMessage.center_id == CommunityCenter.id)
                .order_by(ContactMessage.created_at.desc())
            ).all()
            return [_contact_out(message, name) for message, name in rows]

    return await to_thread(_list)


@router.post("/threads", response_model=ThreadOut, status_code=status.HTTP_201_CREATED)
async def create_thread(
    payload: ThreadCreateRequest,
    identity: Identity = Depends(current_identity),
) -> ThreadOut:
    """Open a thread between verified centers."""

    def _create() -> ThreadOut:
        with SessionFactory() as session:
            ids = list(dict.fromkeys(payload.participant_ids))
            if len(ids) < 2:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="A thread needs at least two distinct centers",
                )
            centers = session.execute(
                select(CommunityCenter).where(CommunityCenter.id.in_(ids))
            ).scalars().all()
            if len(centers) != len(ids):
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Center not found")
            if not all(center.verified for center in centers):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only verified centers can exchange messages",
                )
            if not identity.is_admin and not any(c.manager_id == identity.user_id for c in centers):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You do not manage any participant center",
                )
            by_id = {center.id: center for center in centers}
            thread = MessageThread(subject=payload.subject, participants=[by_id[i] for i in ids])
            session.add(thread)
            session.commit()
            return _thread_out(thread)

    return await to_thread(_create)


@router.get("/threads/{thread_id}/messages", response_model=list[CenterMessageOut])
async def list_thread_messages(
    thread_id: str,
    _identity: Identity = Depends(current_identity),
) -> list[CenterMessageOut]:
    def _list() -> list[CenterMessageOut]:
        with SessionFactory() as session:
            thread = _get_thread(session, thread_id)
            return [_message_out(message, message.sender.name) for message in thread.messages]

    return await to_thread(_list)


@router.post(
    "/threads/{thread_id}/messages",
    response_model=CenterMessageOut,
    status_code=status.HTTP_201_CREATED,
)
async def send_thread_message(
    thread_id: str,
    payload: MessageCreateRequest,
    identity: Identity = Depends(current_identity),
    realtime: RealtimeService = Depends(get_realtime),
) -> CenterMessageOut:
    """Post to a thread and push the message to the thread's room."""

    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is empty")

    def _create() -> CenterMessageOut:
        with SessionFactory() as session:
            thread = _get_thread(session, thread_id)
            sender = _sending_center(thread, identity)
            message = CenterMessage(thread_id=thread.id, sender_id=sender.id, content=content)
            thread.message_count += 1
            thread.last_activity = utcnow()
            session.add(message)
            session.add(thread)
            session.commit()
            return _message_out(message, sender.name)

    response = await to_thread(_create)
    await realtime.dispatcher.publish(
        EventType.MESSAGE_CREATED,
        MessageCreated(
            id=response.id,
            thread_id=response.thread_id,
            sender_id=response.sender_id,
            sender_name=response.sender_name,
            content=response.content,
            timestamp=response.timestamp,
            read=response.read,
        ),
        room=thread_room(response.thread_id),
    )
    return response
