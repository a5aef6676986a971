"""Periodic keepalive, idle timeout and pull-session lifetime enforcement."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .dispatcher import Dispatcher
from .events import keepalive_message
from .sessions import DeliveryMode, SessionManager, SessionState

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    pinged: list[str] = field(default_factory=list)
    expired: list[str] = field(default_factory=list)
    idle: list[str] = field(default_factory=list)
    abandoned: list[str] = field(default_factory=list)


class KeepaliveMonitor:
    def __init__(
        self,
        sessions: SessionManager,
        dispatcher: Dispatcher,
        *,
        interval: float = 30.0,
        idle_timeout: float = 90.0,
        pull_max_lifetime: float = 300.0,
    ) -> None:
        self._sessions = sessions
        self._dispatcher = dispatcher
        self.interval = interval
        self.idle_timeout = idle_timeout
        self.pull_max_lifetime = pull_max_lifetime

    async def sweep(self) -> SweepReport:
        """One pass over every session."""

        report = SweepReport()
        now = self._sessions.now()
        to_ping: list[str] = []
        for session in self._sessions.all():
            if session.state in (SessionState.CONNECTING, SessionState.AUTHENTICATED):
                if now - session.state_changed_at > self.idle_timeout:
                    report.abandoned.append(session.id)
                    await self._sessions.close(session.id, "handshake abandoned")
                continue
            if not session.is_live:
                continue
            if session.mode is DeliveryMode.PULL and now - session.created_at >= self.pull_max_lifetime:
                report.expired.append(session.id)
                await self._sessions.close(session.id, "max lifetime reached")
                continue
            if now - session.last_activity > self.idle_timeout:
                logger.warning("Session %s idle for %.0fs, closing", session.id, now - session.last_activity)
                report.idle.append(session.id)
                await self._sessions.close(session.id, "idle timeout")
                continue
            if session.accepts_push:
                to_ping.append(session.id)
        if to_ping:
            result = await self._dispatcher.send_ephemeral(keepalive_message(), to_ping)
            report.pinged.extend(result.delivered)
        return report

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Keepalive sweep failed")
