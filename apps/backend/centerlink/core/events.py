"""Event records and their typed payloads."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    """Closed set of realtime event kinds."""

    MESSAGE_CREATED = "message-created"
    CENTER_UPDATED = "center-updated"
    CONTACT_MESSAGE_CREATED = "contact-message-created"
    TYPING_CHANGED = "typing-changed"


class EventError(ValueError):
    """Base class for event construction errors."""


class UnknownEventTypeError(EventError):
    """Raised for a type tag outside :class:`EventType`."""


class InvalidPayloadError(EventError):
    """Raised when a payload does not match its event type's shape."""


class _Payload(BaseModel):
    class Config:
        populate_by_name = True
        alias_generator = to_camel
        frozen = True


class MessageCreated(_Payload):
    id: str
    thread_id: str
    sender_id: str
    sender_name: str
    content: str
    timestamp: datetime
    read: bool = False


class CenterUpdated(_Payload):
    id: str
    name: str
    verified: bool
    action: str
    connected_to: Optional[str] = None


class ContactMessageCreated(_Payload):
    id: str
    center_id: str
    center_name: str
    sender_name: str
    sender_email: str
    subject: str
    inquiry_type: str
    timestamp: datetime


class TypingChanged(_Payload):
    room: str
    user_id: str
    user_name: str
    typing: bool


PAYLOAD_TYPES: dict[EventType, type[_Payload]] = {
    EventType.MESSAGE_CREATED: MessageCreated,
    EventType.CENTER_UPDATED: CenterUpdated,
    EventType.CONTACT_MESSAGE_CREATED: ContactMessageCreated,
    EventType.TYPING_CHANGED: TypingChanged,
}


def coerce_event_type(value: EventType | str) -> EventType:
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError as exc:
        raise UnknownEventTypeError(f"Unknown event type: {value!r}") from exc


def parse_payload(event_type: EventType | str, data: Any) -> _Payload:
    """Validate ``data`` against the payload model registered for ``event_type``."""

    kind = coerce_event_type(event_type)
    model = PAYLOAD_TYPES[kind]
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        raise InvalidPayloadError(
            f"{type(data).__name__} is not a valid payload for {kind.value}"
        )
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidPayloadError(f"Invalid {kind.value} payload: {exc}") from exc


@dataclass(frozen=True, slots=True)
class EventScope:
    """Audience of a record: everyone, or a single recipient."""

    user_id: Optional[str] = None

    @classmethod
    def for_user(cls, user_id: str) -> "EventScope":
        return cls(user_id=user_id)

    @property
    def is_global(self) -> bool:
        return self.user_id is None

    def visible_to(self, user_id: Optional[str]) -> bool:
        return self.user_id is None or self.user_id == user_id


GLOBAL = EventScope()


@dataclass(frozen=True, slots=True)
class EventRecord:
    """Immutable realtime event as held by the event store."""

    id: str
    sequence: int
    type: EventType
    payload: _Payload
    timestamp: float
    scope: EventScope = field(default=GLOBAL)

    def to_wire(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "data": self.payload.model_dump(mode="json", by_alias=True),
            "timestamp": int(self.timestamp * 1000),
        }
        if not self.scope.is_global:
            message["scope"] = {"userId": self.scope.user_id}
        return message


def ephemeral_message(event_type: EventType | str, payload: Any) -> dict[str, Any]:
    """Wire message for a signal that is relayed but never stored."""

    kind = coerce_event_type(event_type)
    body = parse_payload(kind, payload)
    return {
        "id": None,
        "type": kind.value,
        "data": body.model_dump(mode="json", by_alias=True),
        "timestamp": int(time.time() * 1000),
    }


def keepalive_message() -> dict[str, Any]:
    return {"type": "keepalive", "timestamp": int(time.time() * 1000)}
