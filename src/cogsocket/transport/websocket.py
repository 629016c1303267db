"""WebSocket transport implementations.

- WebSocketClientTransport: connects to a device (ws://<host>/ws)
  using the `websockets` client.
- StarletteWebSocketTransport: server side of one accepted Starlette
  WebSocket connection.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import websockets
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState
from websockets.exceptions import ConnectionClosed

from ..config import CogSocketConfig
from ..errors import ConnectionClosedError
from .base import Frame, QueuedTransport

logger = logging.getLogger(__name__)


class WebSocketClientTransport(QueuedTransport):
    """Client-side WebSocket transport."""

    def __init__(self, url: str, config: CogSocketConfig | None = None):
        super().__init__()
        self.url = url
        self.config = config or CogSocketConfig()
        self._websocket: Any = None  # websockets ClientConnection

    async def _open(self) -> None:
        try:
            self._websocket = await websockets.connect(
                self.url,
                open_timeout=self.config.open_timeout,
                ping_interval=self.config.ping_interval,
                ping_timeout=self.config.ping_timeout,
                close_timeout=self.config.close_timeout,
            )
        except (OSError, TimeoutError, websockets.InvalidHandshake) as e:
            raise ConnectionClosedError(f"Failed to connect to {self.url}: {e}") from e
        logger.info(f"Connected to {self.url}")

    async def _close(self) -> None:
        if self._websocket is not None:
            await self._websocket.close()
            self._websocket = None
            logger.info(f"Disconnected from {self.url}")

    async def _write(self, frame: Frame) -> None:
        await self._websocket.send(frame)

    async def receive(self) -> AsyncIterator[Frame]:
        if self._websocket is None:
            raise ConnectionClosedError("Transport not connected")
        try:
            async for frame in self._websocket:
                yield frame
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")
        finally:
            self._connected = False


class StarletteWebSocketTransport(QueuedTransport):
    """Server-side transport for one Starlette WebSocket connection."""

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self._websocket = websocket

    @property
    def is_connected(self) -> bool:
        return self._connected and self._websocket.client_state == WebSocketState.CONNECTED

    async def _open(self) -> None:
        await self._websocket.accept()

    async def _close(self) -> None:
        if self._websocket.client_state == WebSocketState.CONNECTED:
            await self._websocket.close()

    async def _write(self, frame: Frame) -> None:
        if isinstance(frame, bytes):
            await self._websocket.send_bytes(frame)
        else:
            await self._websocket.send_text(frame)

    async def receive(self) -> AsyncIterator[Frame]:
        try:
            while self._connected:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                if message.get("text") is not None:
                    yield message["text"]
                elif message.get("bytes") is not None:
                    yield message["bytes"]
        except WebSocketDisconnect:
            pass
        finally:
            self._connected = False
