"""Transport layer.

One duplex frame channel per engine:
- WebSocket client (to a device) via `websockets`
- WebSocket server side via Starlette
- In-memory (tests, in-process peers)
"""

from .base import Frame, QueuedTransport, Transport
from .memory import MemoryTransport
from .websocket import StarletteWebSocketTransport, WebSocketClientTransport

__all__ = [
    "Frame",
    "QueuedTransport",
    "Transport",
    "MemoryTransport",
    "StarletteWebSocketTransport",
    "WebSocketClientTransport",
]
