import asyncio
import logging
import socket
import sys
from typing import Optional

import uvicorn

from core.config import HostConfig
from core.host import McpHost
from observability import metrics
from remote_server import create_app

logger = logging.getLogger(__name__)


def bind_listener(host: str, port: int, backlog: int = 128) -> socket.socket:
    """Bind and listen on ``host:port``.

    Binding happens here rather than inside uvicorn so a failure surfaces to
    the caller as OSError instead of a process exit.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as e:
        sock.close()
        logger.error("Cannot listen on %s:%s: %s", host, port, e)
        raise
    return sock


def build_server(host: McpHost) -> uvicorn.Server:
    app = create_app(host)
    config = uvicorn.Config(app, log_level=host.config.log_level.lower(), lifespan="off")
    return uvicorn.Server(config)


async def serve(
    host: McpHost,
    sock: Optional[socket.socket] = None,
    server: Optional[uvicorn.Server] = None,
) -> None:
    """Run the accept loop for ``host`` until the server is stopped.

    Each accepted connection becomes an independent session task; a failing
    session never reaches this loop. Set ``server.should_exit`` to stop.
    """
    cfg = host.config
    if sock is None:
        sock = bind_listener(cfg.host, cfg.port)
    if server is None:
        server = build_server(host)
    logger.info("MCP Server listening on: %s", cfg.bind)
    try:
        await server.serve(sockets=[sock])
    finally:
        sock.close()
        logger.info("MCP server stopped")


def main():
    """Main entry point for the MCP host"""
    try:
        config = HostConfig.from_env()
    except ValueError as e:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)
        logger.error("Invalid configuration: %s", e)
        sys.exit(2)

    # Configure logging
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO), stream=sys.stderr)

    if config.metrics_enabled:
        metrics.init_metrics()

    host = McpHost(config)
    if config.seed_file:
        try:
            host.load_seed(config.seed_file)
        except (OSError, ValueError) as e:
            logger.error("Failed to load seed file %s: %s", config.seed_file, e)
            sys.exit(2)

    logger.info("Starting MCP server...")
    try:
        asyncio.run(serve(host))
    except OSError as e:
        logger.error("Failed to start MCP server: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
