"""Pydantic models for the realtime APIs."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    class Config:
        populate_by_name = True
        alias_generator = to_camel


class EventOut(_ApiModel):
    id: str
    type: str
    data: dict[str, Any]
    timestamp: int
    scope: Optional[dict[str, str]] = None


class EventBatch(_ApiModel):
    events: list[EventOut] = Field(default_factory=list)
    cursor: str
    count: int
    timestamp: int
    session_id: str


class StoreStatsOut(_ApiModel):
    total_events: int
    oldest_event: Optional[int] = None
    newest_event: Optional[int] = None
    event_types: dict[str, int] = Field(default_factory=dict)
    capacity: int
    ttl_seconds: float
    last_id: str
    live_sessions: int
    rooms: int


class EmitRequest(_ApiModel):
    type: str
    data: dict[str, Any]
    room: Optional[str] = None
    user_id: Optional[str] = None


class EmitResponse(_ApiModel):
    event: EventOut
    delivered: int
    failed: int


class CenterRoomRequest(_ApiModel):
    center_id: str = Field(min_length=1)
    session_id: Optional[str] = None


class ThreadRoomRequest(_ApiModel):
    thread_id: str = Field(min_length=1)
    session_id: Optional[str] = None


class TypingRequest(_ApiModel):
    thread_id: str = Field(min_length=1)
    user_name: Optional[str] = None
