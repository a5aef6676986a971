"""SQLAlchemy models for centers, inquiries and message threads."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base declarative class."""


thread_participants = Table(
    "thread_participants",
    Base.metadata,
    Column("thread_id", ForeignKey("message_threads.id"), primary_key=True),
    Column("center_id", ForeignKey("community_centers.id"), primary_key=True),
)


class CommunityCenter(Base):
    """A center listed in the directory."""

    __tablename__ = "community_centers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    services: Mapped[list] = mapped_column(JSON, default=list)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    added_by: Mapped[str] = mapped_column(String(16), default="admin", nullable=False)
    manager_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64))
    email: Mapped[Optional[str]] = mapped_column(String(200))
    website: Mapped[Optional[str]] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    threads: Mapped[list["MessageThread"]] = relationship(
        secondary=thread_participants, back_populates="participants"
    )


class CenterConnection(Base):
    """Undirected link between two centers, created by an administrator."""

    __tablename__ = "center_connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    center_a_id: Mapped[str] = mapped_column(ForeignKey("community_centers.id"), nullable=False)
    center_b_id: Mapped[str] = mapped_column(ForeignKey("community_centers.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (UniqueConstraint("center_a_id", "center_b_id", name="uq_center_connection"),)


class ContactMessage(Base):
    """Visitor inquiry addressed to a center, triaged by administrators."""

    __tablename__ = "contact_messages"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    center_id: Mapped[str] = mapped_column(ForeignKey("community_centers.id"), nullable=False)
    sender_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sender_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sender_email: Mapped[str] = mapped_column(String(200), default="")
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    inquiry_type: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    center: Mapped[CommunityCenter] = relationship()


class MessageThread(Base):
    """Conversation between verified centers."""

    __tablename__ = "message_threads"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    participants: Mapped[list[CommunityCenter]] = relationship(
        secondary=thread_participants, back_populates="threads"
    )
    messages: Mapped[list["CenterMessage"]] = relationship(
        back_populates="thread", cascade="all, delete-orphan", order_by="CenterMessage.created_at"
    )


class CenterMessage(Base):
    __tablename__ = "center_messages"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    thread_id: Mapped[str] = mapped_column(ForeignKey("message_threads.id"), nullable=False)
    sender_id: Mapped[str] = mapped_column(ForeignKey("community_centers.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    thread: Mapped[MessageThread] = relationship(back_populates="messages")
    sender: Mapped[CommunityCenter] = relationship()
