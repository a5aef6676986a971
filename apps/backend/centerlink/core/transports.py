"""Push channel handles owned by live sessions."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from typing import Any, Optional, Protocol

from starlette.websockets import WebSocket, WebSocketState


class TransportError(Exception):
    """Raised when a message cannot be handed to the client."""


class Transport(Protocol):
    async def send(self, message: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


class QueueTransport:
    """Bounded queue drained by a server-sent events response.

    A full queue means the client is not keeping up; the send fails rather
    than applying back-pressure to the dispatcher.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(max_queue_size)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed.is_set():
            raise TransportError("Stream is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as exc:
            raise TransportError("Stream queue is full") from exc

    async def close(self) -> None:
        self._closed.set()

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        """Yield queued messages until the transport is closed."""

        while True:
            if not self._queue.empty():
                yield self._queue.get_nowait()
                continue
            if self._closed.is_set():
                return
            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in (getter, closer):
                    if not task.done():
                        task.cancel()
            if getter.done() and not getter.cancelled():
                yield getter.result()


class WebSocketTransport:
    """Serialises JSON frames onto a Starlette websocket.

    Created with ``replaying=True``, stored records pushed before
    :meth:`replay` finishes are held back and written after the backlog, so a
    live push can never overtake the records still being replayed.
    """

    def __init__(self, websocket: WebSocket, *, replaying: bool = False) -> None:
        self._websocket = websocket
        self._lock = asyncio.Lock()
        self._closed = False
        self._last_sequence = 0
        self._held: Optional[list[dict[str, Any]]] = [] if replaying else None

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed or self._websocket.client_state != WebSocketState.CONNECTED:
            raise TransportError("Websocket is closed")
        if self._held is not None and _sequence_of(message) is not None:
            self._held.append(message)
            return
        async with self._lock:
            await self._write(message)

    async def replay(self, backlog: Iterable[dict[str, Any]]) -> int:
        """Write ``backlog`` in order, then everything held back meanwhile."""

        written = 0
        async with self._lock:
            for message in backlog:
                written += await self._write(message)
            while self._held:
                held, self._held = self._held, []
                for message in sorted(held, key=lambda item: _sequence_of(item) or 0):
                    written += await self._write(message)
            self._held = None
        return written

    async def _write(self, message: dict[str, Any]) -> int:
        sequence = _sequence_of(message)
        if sequence is not None:
            # Replay and live pushes can overlap; each record goes out once.
            if sequence <= self._last_sequence:
                return 0
            self._last_sequence = sequence
        try:
            await self._websocket.send_json(message)
        except Exception as exc:
            raise TransportError(f"Websocket send failed: {exc}") from exc
        return 1

    async def close(self, code: int = 1000) -> None:
        if self._closed:
            return
        self._closed = True
        if self._websocket.client_state == WebSocketState.CONNECTED:
            try:
                await self._websocket.close(code=code)
            except RuntimeError:  # pragma: no cover - already closed by the peer
                pass


def _sequence_of(message: dict[str, Any]) -> int | None:
    value = message.get("id")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
