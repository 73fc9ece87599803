import asyncio
import json

import aiohttp
import pytest

from core.config import HostConfig
from core.host import McpHost
from server import bind_listener, build_server, serve


def test_bind_failure_surfaces_oserror():
    first = bind_listener("127.0.0.1", 0)
    try:
        port = first.getsockname()[1]
        with pytest.raises(OSError):
            bind_listener("127.0.0.1", port)
    finally:
        first.close()


def test_serve_propagates_bind_failure():
    blocker = bind_listener("127.0.0.1", 0)
    try:
        port = blocker.getsockname()[1]
        host = McpHost(HostConfig(host="127.0.0.1", port=port))
        with pytest.raises(OSError):
            asyncio.run(serve(host))
    finally:
        blocker.close()


def test_load_seed(tmp_path, host):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({
        "tools": {"echo": {"name": "echo"}},
        "resources": {"readme": {"uri": "file:///readme"}},
    }), encoding="utf-8")
    assert host.load_seed(str(seed)) == 2
    assert host.tools.list() == [{"name": "echo"}]
    assert host.resources.list() == [{"uri": "file:///readme"}]


def test_accept_loop_serves_concurrent_clients():
    async def scenario():
        sock = bind_listener("127.0.0.1", 0)
        port = sock.getsockname()[1]
        host = McpHost(HostConfig(host="127.0.0.1", port=port, log_level="WARNING"))
        server = build_server(host)
        task = asyncio.create_task(serve(host, sock, server))
        for _ in range(500):
            if server.started:
                break
            await asyncio.sleep(0.01)
        assert server.started

        host.register_tool("toolsA", {"name": "toolsA"})
        url = f"ws://127.0.0.1:{port}/"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.ws_connect(url) as a, session.ws_connect(url) as b:
                    await a.send_str("not json")
                    await a.send_str(json.dumps({"id": "a", "method": "tools/list"}))
                    await b.send_str(json.dumps({"id": "b", "method": "initialize"}))
                    reply_a = await a.receive_json(timeout=5)
                    reply_b = await b.receive_json(timeout=5)
                    assert len(host.connections) == 2
                # Both clients closed; the loop keeps accepting
                async with session.ws_connect(url) as c:
                    await c.send_str(json.dumps({"id": "c", "method": "bogus"}))
                    reply_c = await c.receive_json(timeout=5)
        finally:
            server.should_exit = True
            await asyncio.wait_for(task, 10)
        return reply_a, reply_b, reply_c

    reply_a, reply_b, reply_c = asyncio.run(scenario())
    assert reply_a == {"id": "a", "result": {"tools": [{"name": "toolsA"}]}, "error": None}
    assert reply_b["result"]["serverInfo"]["name"] == "katulong-mcp-host"
    assert reply_c["error"]["code"] == -32601
