from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from .protocol import INTERNAL_ERROR, METHOD_NOT_FOUND, ProtocolError, Request, Response
from .registry import Registry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "katulong-mcp-host"
SERVER_VERSION = "0.1.0"

TOOL_CALL_PLACEHOLDER_TEXT = "Tool execution not implemented yet"
RESOURCE_READ_PLACEHOLDER_TEXT = "Resource content not implemented yet"


def _initialize(request: Request, tools: Registry, resources: Registry) -> Dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        "capabilities": {
            "tools": {"listChanged": True},
            "resources": {"listChanged": True},
        },
    }


def _tools_list(request: Request, tools: Registry, resources: Registry) -> Dict[str, Any]:
    return {"tools": tools.list()}


def _tools_call(request: Request, tools: Registry, resources: Registry) -> Dict[str, Any]:
    if isinstance(request.params, dict):
        logger.debug("tools/call for %r answered with placeholder", request.params.get("name"))
    else:
        logger.debug("tools/call without params object (id=%r)", request.id)
    return {"content": [{"type": "text", "text": TOOL_CALL_PLACEHOLDER_TEXT}]}


def _resources_list(request: Request, tools: Registry, resources: Registry) -> Dict[str, Any]:
    return {"resources": resources.list()}


def _resources_read(request: Request, tools: Registry, resources: Registry) -> Dict[str, Any]:
    return {
        "contents": [
            {
                "uri": "example://resource",
                "mimeType": "text/plain",
                "text": RESOURCE_READ_PLACEHOLDER_TEXT,
            }
        ]
    }


HANDLERS: Dict[str, Callable[[Request, Registry, Registry], Dict[str, Any]]] = {
    "initialize": _initialize,
    "tools/list": _tools_list,
    "tools/call": _tools_call,
    "resources/list": _resources_list,
    "resources/read": _resources_read,
}


def dispatch(request: Request, tools: Registry, resources: Registry) -> Response:
    """Map a decoded request to a response.

    Pure apart from reading the registries; safe to call concurrently from
    any number of sessions. Every outcome is a well-formed Response.
    """
    handler = HANDLERS.get(request.method)
    if handler is None:
        return Response.failure(
            request.id,
            ProtocolError(METHOD_NOT_FOUND, f"Method not found: {request.method}"),
        )
    try:
        return Response.success(request.id, handler(request, tools, resources))
    except Exception as e:  # surface as standard error
        logger.exception("Dispatch of %s failed", request.method)
        return Response.failure(request.id, ProtocolError(INTERNAL_ERROR, "Internal error", {"detail": str(e)}))
