"""Manual smoke probe for a running MCP host.

Usage: python scripts/probe_client.py [ws://127.0.0.1:8888] [--register]
"""
import asyncio
import json
import sys

import aiohttp
import requests

STEPS = [
    ("initialize", {"protocolVersion": "2024-11-05", "clientInfo": {"name": "probe-client", "version": "1.0.0"}}),
    ("tools/list", None),
    ("resources/list", None),
    ("invalid/method", None),
    ("tools/call", {"name": "probe-tool", "arguments": {"test": "value"}}),
    ("resources/read", {"uri": "example://resource"}),
]


def register_demo(http_base: str) -> None:
    tool = {"name": "probe-tool", "description": "Registered by the probe client", "inputSchema": {"type": "object"}}
    resource = {"uri": "example://resource", "name": "probe-resource", "mimeType": "text/plain"}
    for path, name, definition in (("tools", "probe-tool", tool), ("resources", "probe-resource", resource)):
        r = requests.post(f"{http_base}/control/{path}", json={"name": name, "definition": definition}, timeout=5)
        r.raise_for_status()
        print(r.json()["message"])
    print(requests.get(f"{http_base}/control/status", timeout=5).json())


async def run_probe(url: str) -> None:
    async with aiohttp.ClientSession() as session:
        async with session.ws_connect(url) as ws:
            print(f"Connected to {url}")
            # Malformed frame: the host drops it without replying
            await ws.send_str("not json")
            for request_id, (method, params) in enumerate(STEPS, start=1):
                request = {"id": request_id, "method": method, "params": params}
                print(f">>> {json.dumps(request)}")
                await ws.send_str(json.dumps(request))
                reply = await ws.receive_json(timeout=5)
                print(f"<<< {json.dumps(reply, indent=2)}")
    print("Connection closed")


def main():
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    url = args[0] if args else "ws://127.0.0.1:8888"
    if "--register" in sys.argv:
        http_base = url.replace("ws://", "http://", 1).replace("wss://", "https://", 1).rstrip("/")
        register_demo(http_base)
    asyncio.run(run_probe(url))


if __name__ == "__main__":
    main()
