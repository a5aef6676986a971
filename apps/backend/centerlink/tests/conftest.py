"""Shared fixtures for CenterLink tests."""
from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from fastapi.testclient import TestClient

from ..core.auth import Identity, TokenAuthenticator
from ..core.service import RealtimeService
from ..core.sessions import ConnectionSession, DeliveryMode
from ..core.transports import TransportError
from ..main import create_app
from ..store import database
from ..util.settings import RealtimeSettings

SECRET = "test-secret"


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport:
    """Transport double that records messages and can be told to fail."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail
        self.closed = False

    async def send(self, message: dict[str, Any]) -> None:
        if self.fail:
            raise TransportError("connection reset")
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True

    def of_type(self, kind: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message.get("type") == kind]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> RealtimeSettings:
    return RealtimeSettings(
        jwt_secret=SECRET,
        send_timeout=0.2,
        send_attempts=1,
        keepalive_interval=30.0,
        idle_timeout_multiplier=3.0,
        pull_session_max_lifetime=300.0,
        dev_endpoints=True,
    )


@pytest.fixture
def wall_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic_clock() -> FakeClock:
    return FakeClock(start=100.0)


@pytest.fixture
def service(settings: RealtimeSettings, wall_clock: FakeClock, monotonic_clock: FakeClock) -> RealtimeService:
    return RealtimeService(settings, wall_clock=wall_clock, monotonic_clock=monotonic_clock)


@pytest.fixture
def token_for(settings: RealtimeSettings) -> Callable[..., str]:
    authenticator = TokenAuthenticator(settings.jwt_secret)

    def _issue(user_id: str, *, role: str = "CENTER_MANAGER", name: Optional[str] = None, email: Optional[str] = None) -> str:
        identity = Identity(user_id=user_id, role=role, name=name or user_id.title(), email=email)
        return authenticator.issue_token(identity)

    return _issue


@pytest.fixture
def open_session(service: RealtimeService, token_for: Callable[..., str]) -> Callable[..., ConnectionSession]:
    """Handshake and go live with a recording transport (push) or none (pull)."""

    def _open(
        user_id: str,
        *,
        mode: DeliveryMode = DeliveryMode.PUSH,
        transport: Optional[Any] = None,
        role: str = "CENTER_MANAGER",
    ) -> ConnectionSession:
        session = service.sessions.handshake(token_for(user_id, role=role), mode)
        if mode is DeliveryMode.PUSH and transport is None:
            transport = RecordingTransport()
        service.sessions.go_live(session, transport if mode is DeliveryMode.PUSH else None)
        return session

    return _open


@pytest.fixture
def reset_db(tmp_path: Path) -> Iterator[None]:
    """Bind a throwaway SQLite file; the app startup creates and seeds the tables."""

    database.bind(f"sqlite:///{tmp_path / 'centerlink.db'}")
    yield
    database.dispose()


@pytest.fixture
def client(reset_db: None, settings: RealtimeSettings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(token_for: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _headers(user_id: str, **kwargs: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user_id, **kwargs)}"}

    return _headers
