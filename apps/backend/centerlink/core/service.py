"""Realtime service wiring; one instance per application process."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Callable, Optional

from ..util.settings import RealtimeSettings
from .auth import TokenAuthenticator
from .dispatcher import Dispatcher
from .keepalive import KeepaliveMonitor
from .rooms import RoomRegistry
from .sessions import SessionManager
from .store import EventStore
from .typing_relay import TypingRelay

logger = logging.getLogger(__name__)


class RealtimeService:
    """Owns the event store, rooms, sessions, dispatcher and keepalive task.

    Created at application startup, handed to request handlers through
    ``app.state.realtime`` and torn down at shutdown.
    """

    def __init__(
        self,
        settings: Optional[RealtimeSettings] = None,
        *,
        wall_clock: Callable[[], float] = time.time,
        monotonic_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or RealtimeSettings.from_env()
        self.authenticator = TokenAuthenticator(
            self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm
        )
        self.store = EventStore(
            capacity=self.settings.event_capacity,
            ttl_seconds=self.settings.event_ttl_seconds,
            clock=wall_clock,
        )
        self.rooms = RoomRegistry()
        self.sessions = SessionManager(self.authenticator, self.rooms, clock=monotonic_clock)
        self.dispatcher = Dispatcher(
            self.store,
            self.rooms,
            self.sessions,
            send_timeout=self.settings.send_timeout,
            send_attempts=self.settings.send_attempts,
        )
        self.typing = TypingRelay(self.rooms, self.sessions, self.dispatcher)
        self.monitor = KeepaliveMonitor(
            self.sessions,
            self.dispatcher,
            interval=self.settings.keepalive_interval,
            idle_timeout=self.settings.idle_timeout,
            pull_max_lifetime=self.settings.pull_session_max_lifetime,
        )
        self._monitor_task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._monitor_task is not None and not self._monitor_task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._monitor_task = asyncio.create_task(self.monitor.run(), name="centerlink-keepalive")
        logger.info(
            "Realtime service started (capacity=%d, ttl=%.0fs, keepalive=%.0fs)",
            self.settings.event_capacity,
            self.settings.event_ttl_seconds,
            self.settings.keepalive_interval,
        )

    async def stop(self) -> None:
        task, self._monitor_task = self._monitor_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        closed = await self.sessions.close_all("shutdown")
        logger.info("Realtime service stopped; %d session(s) closed", closed)
