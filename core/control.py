from __future__ import annotations

from typing import Any

from .host import McpHost


class ControlSurface:
    """Management operations exposed to the host shell.

    Each call writes straight into the shared registries, so the next request
    on any session sees the change.
    """

    def __init__(self, host: McpHost) -> None:
        self.host = host

    def register_tool(self, name: str, definition: Any) -> str:
        self.host.register_tool(name, definition)
        return f"Tool '{name}' registered successfully"

    def register_resource(self, name: str, definition: Any) -> str:
        self.host.register_resource(name, definition)
        return f"Resource '{name}' registered successfully"

    def get_server_status(self) -> str:
        return self.host.status()
