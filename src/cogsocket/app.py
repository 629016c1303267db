"""CogSocket ASGI application.

Serves a local object graph to WebSocket peers:

- /ws - one CogSocket engine per connection

Usage:
    app = create_app(lambda: {"cam0": Camera()})
    uvicorn.run(app, port=8080)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from starlette.applications import Starlette
from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket

from .config import CogSocketConfig
from .engine import CogSocket
from .transport.websocket import StarletteWebSocketTransport

logger = logging.getLogger(__name__)


def create_app(
    root: Any,
    *,
    path: str = "/ws",
    config: CogSocketConfig | None = None,
    log: Callable[[str], None] | None = None,
) -> Starlette:
    """Create an application serving `root` over CogSocket.

    Args:
        root: Object graph shared by every connection, or a zero-argument
              callable returning a fresh root per connection
        path: WebSocket endpoint path
        config: Engine configuration
        log: Optional per-engine trace sink

    Returns:
        Configured Starlette application
    """
    config = config or CogSocketConfig()

    async def cogsocket_endpoint(websocket: WebSocket) -> None:
        connection_root = root() if callable(root) else root
        transport = StarletteWebSocketTransport(websocket)
        engine = CogSocket(transport, connection_root, config=config, log=log)
        client = websocket.client
        logger.info(f"CogSocket connection from {client.host if client else 'unknown'}")
        try:
            await engine.serve()
        except Exception as e:
            logger.exception(f"CogSocket connection error: {e}")
        finally:
            logger.info("CogSocket connection closed")

    routes = [WebSocketRoute(path, cogsocket_endpoint)]
    return Starlette(routes=routes)
