"""
Prometheus metrics for the MCP host.
All collectors live on a single process registry created by ``init_metrics``;
recording helpers are no-ops until metrics are initialized.
"""
from __future__ import annotations

import os
from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest

# Single registry for the process
_REGISTRY: Optional[CollectorRegistry] = None

# Metrics objects
SESSIONS_ACTIVE = None
SESSIONS_TOTAL = None
REQUESTS_TOTAL = None
FRAMES_DROPPED = None


def _get_registry() -> CollectorRegistry:
    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = CollectorRegistry()
    return _REGISTRY


def init_metrics() -> None:
    global SESSIONS_ACTIVE, SESSIONS_TOTAL, REQUESTS_TOTAL, FRAMES_DROPPED
    if REQUESTS_TOTAL is not None:
        return
    reg = _get_registry()
    SESSIONS_ACTIVE = Gauge("mcp_sessions_active", "Currently connected sessions", registry=reg)
    SESSIONS_TOTAL = Counter("mcp_sessions_total", "Sessions accepted since start", registry=reg)
    REQUESTS_TOTAL = Counter("mcp_requests_total", "Dispatched requests by method and outcome", ["method", "outcome"], registry=reg)
    FRAMES_DROPPED = Counter("mcp_frames_dropped_total", "Inbound text frames dropped as malformed", registry=reg)


def enabled() -> bool:
    return REQUESTS_TOTAL is not None


# Initialize eagerly if enabled
if os.getenv("METRICS_ENABLED", "1").lower() in {"1", "true", "yes", "on"}:
    init_metrics()


def session_opened() -> None:
    if SESSIONS_ACTIVE is None or SESSIONS_TOTAL is None:
        return
    SESSIONS_ACTIVE.inc()
    SESSIONS_TOTAL.inc()


def session_closed() -> None:
    if SESSIONS_ACTIVE is None:
        return
    SESSIONS_ACTIVE.dec()


def record_request(method: str, outcome: str) -> None:
    if REQUESTS_TOTAL is None:
        return
    REQUESTS_TOTAL.labels(method=method, outcome=outcome).inc()


def record_dropped_frame() -> None:
    if FRAMES_DROPPED is None:
        return
    FRAMES_DROPPED.inc()


def metrics_payload_bytes() -> bytes:
    if _REGISTRY is None:
        return b""
    return generate_latest(_REGISTRY)


def content_type() -> str:
    return CONTENT_TYPE_LATEST


def sample_value(name: str, labels: Optional[dict] = None) -> Optional[float]:
    if _REGISTRY is None:
        return None
    return _REGISTRY.get_sample_value(name, labels or {})
