from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import WebSocket

from observability import metrics

from .config import HostConfig
from .dispatcher import HANDLERS, dispatch
from .protocol import Notification, Request, Response, decode_request
from .registry import Registry
from .session import ConnectionSession, ConnectionSet

logger = logging.getLogger(__name__)


class McpHost:
    """Process-lifetime owner of the registries and the connection set.

    The same instance is handed to the transport (for sessions) and to the
    control surface (for registrations); it outlives every session.
    """

    def __init__(self, config: Optional[HostConfig] = None) -> None:
        self.config = config or HostConfig()
        self.tools = Registry("tool")
        self.resources = Registry("resource")
        self.connections = ConnectionSet()

    # --- Registration ---
    def register_tool(self, name: str, definition: Any) -> None:
        self.tools.put(name, definition)
        logger.info("Registered tool %s", name)
        self._notify_list_changed("notifications/tools/list_changed")

    def register_resource(self, name: str, definition: Any) -> None:
        self.resources.put(name, definition)
        logger.info("Registered resource %s", name)
        self._notify_list_changed("notifications/resources/list_changed")

    def load_seed(self, path: str) -> int:
        """Register every tool/resource in a JSON seed file. Returns the count."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Seed file {path} must contain a JSON object")
        count = 0
        for name, definition in (data.get("tools") or {}).items():
            self.register_tool(name, definition)
            count += 1
        for name, definition in (data.get("resources") or {}).items():
            self.register_resource(name, definition)
            count += 1
        logger.info("Loaded %d definitions from %s", count, path)
        return count

    # --- Requests ---
    def dispatch(self, request: Request) -> Response:
        response = dispatch(request, self.tools, self.resources)
        method = request.method if request.method in HANDLERS else "unknown"
        metrics.record_request(method, "error" if response.error is not None else "success")
        return response

    def handle_text(self, text: str) -> Optional[Response]:
        request = decode_request(text)
        if request is None:
            # Malformed frames are dropped without a reply and without closing the session.
            logger.warning("Dropping malformed frame (%d chars)", len(text))
            metrics.record_dropped_frame()
            return None
        return self.dispatch(request)

    # --- Sessions ---
    async def open_session(self, websocket: WebSocket) -> ConnectionSession:
        session = ConnectionSession(
            websocket, self.connections, self.handle_text, on_open=metrics.session_opened
        )
        try:
            await session.run()
        finally:
            if session.channel is not None:
                metrics.session_closed()
        return session

    def status(self) -> str:
        return f"MCP Server running on {self.config.bind}"

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status(),
            "sessions": len(self.connections),
            "tools": len(self.tools),
            "resources": len(self.resources),
        }

    def _notify_list_changed(self, method: str) -> None:
        if not self.config.notify_list_changed:
            return
        delivered = self.connections.broadcast(Notification(method))
        logger.debug("Broadcast %s to %d sessions", method, delivered)
