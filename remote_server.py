import logging
from typing import Any, Dict, Tuple

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from core.control import ControlSurface
from core.dispatcher import SERVER_VERSION
from core.host import McpHost
from observability import metrics

logger = logging.getLogger(__name__)


def _registration(payload: Dict[str, Any]) -> Tuple[str, Any]:
    name = payload.get("name")
    if not isinstance(name, str):
        raise HTTPException(status_code=400, detail="Missing or non-string 'name'")
    if "definition" not in payload:
        raise HTTPException(status_code=400, detail="Missing 'definition'")
    return name, payload["definition"]


def create_app(host: McpHost) -> FastAPI:
    """Build the ASGI app serving the MCP WebSocket endpoint for ``host``.

    The same host instance backs the control routes, so a registration made
    over HTTP is visible to the next request on every session.
    """
    app = FastAPI(title="Katulong MCP Host", version=SERVER_VERSION)
    app.state.host = host
    control = ControlSurface(host)
    if not host.config.control_enabled:
        logger.info("Control routes disabled (MCP_CONTROL_ENABLED=false)")

    # Basic CORS so the desktop UI can reach the control routes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"]
    )

    def _check_control():
        if not host.config.control_enabled:
            raise HTTPException(status_code=403, detail="Control surface disabled")

    @app.websocket("/")
    @app.websocket("/ws")
    async def ws_endpoint(ws: WebSocket):
        await host.open_session(ws)

    @app.post("/control/tools")
    def register_tool(payload: dict):
        _check_control()
        name, definition = _registration(payload)
        return {"message": control.register_tool(name, definition)}

    @app.post("/control/resources")
    def register_resource(payload: dict):
        _check_control()
        name, definition = _registration(payload)
        return {"message": control.register_resource(name, definition)}

    @app.get("/control/status")
    def server_status():
        _check_control()
        return host.snapshot()

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics_endpoint():
        if not (host.config.metrics_enabled and metrics.enabled()):
            raise HTTPException(status_code=404, detail="Metrics disabled")
        return Response(content=metrics.metrics_payload_bytes(), media_type=metrics.content_type())

    return app
