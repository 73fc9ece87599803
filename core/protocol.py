from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


@dataclass
class Request:
    """Decoded inbound request. ``id`` is opaque and only echoed back."""

    method: str
    id: Any = None
    params: Any = None


@dataclass
class ProtocolError:
    code: int
    message: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": self.data}


@dataclass
class Response:
    """Outbound response carrying exactly one of ``result`` or ``error``."""

    id: Any = None
    result: Any = None
    error: Optional[ProtocolError] = None

    @classmethod
    def success(cls, request_id: Any, result: Any) -> "Response":
        return cls(id=request_id, result=result, error=None)

    @classmethod
    def failure(cls, request_id: Any, error: ProtocolError) -> "Response":
        return cls(id=request_id, result=None, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "result": self.result,
            "error": self.error.to_dict() if self.error is not None else None,
        }


@dataclass
class Notification:
    """Server-initiated message without an id."""

    method: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.method, "params": self.params}


def decode_request(text: str) -> Optional[Request]:
    """Decode one inbound text frame.

    Returns None when the frame is not a JSON object with a string ``method``.
    Callers drop such frames without answering.
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        logger.debug("Frame is not valid JSON: %s", e)
        return None
    if not isinstance(payload, dict):
        return None
    method = payload.get("method")
    if not isinstance(method, str):
        return None
    return Request(method=method, id=payload.get("id"), params=payload.get("params"))


def encode(message: Any) -> str:
    """Serialize a Response/Notification (or a plain dict) to wire text."""
    if hasattr(message, "to_dict"):
        message = message.to_dict()
    return json.dumps(message)
