"""Typing indicator relay."""
from __future__ import annotations

import pytest

from ..core.auth import Identity
from ..core.rooms import thread_room
from ..core.service import RealtimeService
from .conftest import RecordingTransport

pytestmark = pytest.mark.anyio


async def test_typing_reaches_other_members_only(service: RealtimeService, open_session) -> None:
    room = thread_room("t1")
    sender_transport = RecordingTransport()
    peer_transport = RecordingTransport()
    outsider_transport = RecordingTransport()
    sender = open_session("alice", transport=sender_transport)
    peer = open_session("bob", transport=peer_transport)
    open_session("carol", transport=outsider_transport)
    service.rooms.join(room, sender.id)
    service.rooms.join(room, peer.id)

    result = await service.typing.start_from_session(room, sender.id)

    assert result.delivered == [peer.id]
    [signal] = peer_transport.of_type("typing-changed")
    assert signal["id"] is None
    assert signal["data"] == {"room": room, "userId": "alice", "userName": "Alice", "typing": True}
    assert sender_transport.sent == []
    assert outsider_transport.sent == []
    assert len(service.store) == 0


async def test_stop_typing_sends_false(service: RealtimeService, open_session) -> None:
    room = thread_room("t1")
    peer_transport = RecordingTransport()
    sender = open_session("alice")
    peer = open_session("bob", transport=peer_transport)
    service.rooms.join(room, sender.id)
    service.rooms.join(room, peer.id)

    await service.typing.stop_from_session(room, sender.id)

    assert peer_transport.of_type("typing-changed")[0]["data"]["typing"] is False


async def test_identity_typing_excludes_given_sessions(service: RealtimeService, open_session) -> None:
    room = thread_room("t1")
    own_transport = RecordingTransport()
    peer_transport = RecordingTransport()
    own = open_session("alice", transport=own_transport)
    peer = open_session("bob", transport=peer_transport)
    service.rooms.join(room, own.id)
    service.rooms.join(room, peer.id)

    who = Identity(user_id="alice", role="CENTER_MANAGER", name="Alice")
    await service.typing.start_typing(room, who, exclude=[own.id], user_name="Alice N.")

    assert own_transport.sent == []
    assert peer_transport.of_type("typing-changed")[0]["data"]["userName"] == "Alice N."


async def test_unknown_session_is_a_no_op(service: RealtimeService) -> None:
    result = await service.typing.start_from_session(thread_room("t1"), "missing")

    assert result.delivered == []
    assert result.failed == []
