"""Pydantic models for center and messaging APIs."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    class Config:
        populate_by_name = True
        alias_generator = to_camel
        from_attributes = True


class Coordinates(_ApiModel):
    lat: float
    lng: float


class ContactInfo(_ApiModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class CenterOut(_ApiModel):
    id: str
    name: str
    location: str
    coordinates: Coordinates
    services: list[str] = Field(default_factory=list)
    description: str = ""
    verified: bool
    connections: list[str] = Field(default_factory=list)
    added_by: str
    contact_info: ContactInfo


class ConnectRequest(_ApiModel):
    center1_id: str
    center2_id: str


class ConnectResponse(_ApiModel):
    center1_id: str
    center2_id: str
    created_at: datetime


class ContactRequest(_ApiModel):
    center_id: str
    subject: str = Field(min_length=5)
    message: str = Field(min_length=10)
    inquiry_type: str


class ContactMessageOut(_ApiModel):
    id: str
    center_id: str
    center_name: str
    sender_name: str
    sender_email: str
    subject: str
    message: str
    inquiry_type: str
    timestamp: datetime
    status: str


class ThreadCreateRequest(_ApiModel):
    participant_ids: list[str] = Field(min_length=2)
    subject: str = Field(min_length=1)


class ThreadOut(_ApiModel):
    id: str
    participants: list[str]
    participant_names: list[str]
    subject: str
    last_activity: datetime
    message_count: int


class MessageCreateRequest(_ApiModel):
    content: str = Field(min_length=1)


class CenterMessageOut(_ApiModel):
    id: str
    thread_id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: datetime
    read: bool
