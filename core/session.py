from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from fastapi import WebSocket

from .protocol import Response, encode

logger = logging.getLogger(__name__)

# Terminal marker placed on the queue exactly once by OutboundChannel.close().
_CLOSED = object()


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class SessionState(str, Enum):
    CONNECTED = "connected"
    STREAMING = "streaming"
    CLOSING = "closing"
    CLOSED = "closed"


class OutboundChannel:
    """Unbounded single-consumer queue feeding one session's writer.

    ``send`` and ``close`` may be called from any thread; items are handed to
    the owning event loop in call order.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: Any) -> bool:
        with self._lock:
            if self._closed:
                return False
            return self._submit(self._queue.put_nowait, message)

    def close(self) -> bool:
        """Close the channel. Pending items are discarded. Returns False if already closed."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            return self._submit(self._shutdown)

    async def receive(self) -> Optional[Any]:
        """Next queued message, or None once the channel is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def _shutdown(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def _submit(self, fn: Callable[..., None], *args: Any) -> bool:
        if _running_loop() is self._loop:
            fn(*args)
            return True
        try:
            self._loop.call_soon_threadsafe(fn, *args)
        except RuntimeError as e:
            logger.warning("Outbound channel loop unavailable: %s", e)
            return False
        return True


class ConnectionSet:
    """Session id -> outbound channel for every live session."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: Dict[str, OutboundChannel] = {}

    def add(self, session_id: str, channel: OutboundChannel) -> None:
        with self._lock:
            self._channels[session_id] = channel

    def remove(self, session_id: str) -> Optional[OutboundChannel]:
        with self._lock:
            return self._channels.pop(session_id, None)

    def get(self, session_id: str) -> Optional[OutboundChannel]:
        with self._lock:
            return self._channels.get(session_id)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._channels)

    def broadcast(self, message: Any) -> int:
        """Queue ``message`` on every live session. Returns how many accepted it."""
        with self._lock:
            channels = list(self._channels.values())
        return sum(1 for channel in channels if channel.send(message))

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)


class ConnectionSession:
    """One connected client: a reader pumping inbound frames and a writer draining the outbound queue.

    ``handle_text`` turns an inbound text frame into a Response, or None when the
    frame should be dropped. It runs synchronously inside the reader, so responses
    leave in the order their requests arrived.
    """

    def __init__(
        self,
        websocket: WebSocket,
        connections: ConnectionSet,
        handle_text: Callable[[str], Optional[Response]],
        on_open: Optional[Callable[[], None]] = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.websocket = websocket
        self.connections = connections
        self.handle_text = handle_text
        self.on_open = on_open
        self.state = SessionState.CONNECTED
        self.channel: Optional[OutboundChannel] = None
        self._peer_closed = False

    async def run(self) -> None:
        try:
            await self.websocket.accept()
        except Exception:
            logger.exception("Handshake failed for session %s", self.id)
            self.state = SessionState.CLOSED
            return

        self.channel = OutboundChannel()
        self.connections.add(self.id, self.channel)
        client = getattr(self.websocket, "client", None)
        logger.info("Client %s connected from %s", self.id, client)
        if self.on_open is not None:
            self.on_open()

        writer = asyncio.create_task(self._write_loop(), name=f"mcp-writer-{self.id[:8]}")
        try:
            self.state = SessionState.STREAMING
            await self._read_loop()
        except Exception:
            logger.exception("Session %s failed", self.id)
        finally:
            await self._teardown(writer)

    async def _read_loop(self) -> None:
        while True:
            message = await self.websocket.receive()
            kind = message.get("type")
            if kind == "websocket.disconnect":
                self._peer_closed = True
                logger.info("Client %s disconnected (code=%s)", self.id, message.get("code"))
                return
            if kind != "websocket.receive":
                continue
            text = message.get("text")
            if text is None:
                logger.debug("Ignoring non-text frame from %s", self.id)
                continue
            response = self.handle_text(text)
            if response is not None:
                self.channel.send(response)

    async def _write_loop(self) -> None:
        while True:
            message = await self.channel.receive()
            if message is None:
                return
            try:
                await self.websocket.send_text(encode(message))
            except Exception as e:
                logger.warning("Write to client %s failed, stopping writer: %s", self.id, e)
                # Nothing drains the queue any more; later responses are refused.
                self.channel.close()
                return

    async def _teardown(self, writer: asyncio.Task) -> None:
        self.state = SessionState.CLOSING
        self.connections.remove(self.id)
        self.channel.close()
        try:
            await writer
        except asyncio.CancelledError:
            writer.cancel()
            raise
        if not self._peer_closed:
            try:
                await self.websocket.close(code=1011)
            except Exception as e:
                logger.debug("Close after failure for %s: %s", self.id, e)
        self.state = SessionState.CLOSED
        logger.debug("Session %s closed", self.id)
