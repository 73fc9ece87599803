import asyncio
import json

import pytest

from core.session import ConnectionSession, ConnectionSet, SessionState
from observability import metrics


class FakeWebSocket:
    """Minimal stand-in for the Starlette WebSocket used by ConnectionSession."""

    def __init__(self, frames=(), fail_accept=False, fail_send=False):
        self.frames = list(frames)
        self.fail_accept = fail_accept
        self.fail_send = fail_send
        self.sent = []
        self.session = None
        self.channel_closed_at_disconnect = None

    async def accept(self):
        if self.fail_accept:
            raise RuntimeError("handshake refused")

    async def receive(self):
        # Yield so the writer gets a chance to run between frames
        await asyncio.sleep(0.01)
        if self.frames:
            return {"type": "websocket.receive", "text": self.frames.pop(0)}
        if self.session is not None:
            self.channel_closed_at_disconnect = self.session.channel.closed
        return {"type": "websocket.disconnect", "code": 1000}

    async def send_text(self, text):
        if self.fail_send:
            raise ConnectionResetError("peer gone")
        self.sent.append(text)

    async def close(self, code=1000):
        pass


def _frame(request_id, method="initialize"):
    return json.dumps({"id": request_id, "method": method})


def test_failed_write_closes_outbound_channel(host):
    ws = FakeWebSocket([_frame(1), _frame(2), _frame(3)], fail_send=True)
    conns = ConnectionSet()
    session = ConnectionSession(ws, conns, host.handle_text)
    ws.session = session
    asyncio.run(session.run())
    assert ws.channel_closed_at_disconnect is True
    assert ws.sent == []
    assert session.state is SessionState.CLOSED
    assert session.id not in conns


def test_session_delivers_in_order_and_tears_down(host):
    ws = FakeWebSocket([_frame(1), "garbage", _frame(2, "tools/list")])
    session = ConnectionSession(ws, host.connections, host.handle_text)
    asyncio.run(session.run())
    assert [json.loads(t)["id"] for t in ws.sent] == [1, 2]
    assert session.state is SessionState.CLOSED
    assert len(host.connections) == 0


def test_failed_handshake_is_not_counted(host):
    if not metrics.enabled():
        pytest.skip("metrics disabled")
    before = metrics.sample_value("mcp_sessions_total")
    session = asyncio.run(host.open_session(FakeWebSocket(fail_accept=True)))
    assert session.state is SessionState.CLOSED
    assert session.channel is None
    assert metrics.sample_value("mcp_sessions_total") == before
    assert len(host.connections) == 0


def test_accepted_session_is_counted(host):
    if not metrics.enabled():
        pytest.skip("metrics disabled")
    total = metrics.sample_value("mcp_sessions_total")
    active = metrics.sample_value("mcp_sessions_active")
    asyncio.run(host.open_session(FakeWebSocket([_frame(1)])))
    assert metrics.sample_value("mcp_sessions_total") == total + 1
    assert metrics.sample_value("mcp_sessions_active") == active
