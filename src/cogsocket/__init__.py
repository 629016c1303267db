"""CogSocket - bidirectional JSON RPC over a duplex text channel.

Either endpoint addresses properties and methods on the other's object
graph with slash-delimited paths (get/put/post), and subscribes to its
events (listen/unlisten), all over one WebSocket with id-correlated
responses.
"""

from .config import CogSocketConfig
from .connection import ConnectionObject
from .engine import CogSocket
from .errors import (
    CogSocketError,
    ConnectionClosedError,
    InvocationError,
    ProtocolError,
    RemoteError,
    ResolutionError,
    UnmatchedResponseError,
)
from .graph import Addressable, EventEmitter, ObjectNode, as_addressable
from .protocol import MISSING, Message, MessageKind
from .resolver import PathResolver
from .transport import (
    MemoryTransport,
    StarletteWebSocketTransport,
    Transport,
    WebSocketClientTransport,
)

__version__ = "0.1.0"

__all__ = [
    "CogSocket",
    "CogSocketConfig",
    "ConnectionObject",
    "PathResolver",
    # Object graph
    "Addressable",
    "EventEmitter",
    "ObjectNode",
    "as_addressable",
    # Messages
    "MISSING",
    "Message",
    "MessageKind",
    # Errors
    "CogSocketError",
    "ConnectionClosedError",
    "InvocationError",
    "ProtocolError",
    "RemoteError",
    "ResolutionError",
    "UnmatchedResponseError",
    # Transports
    "MemoryTransport",
    "StarletteWebSocketTransport",
    "Transport",
    "WebSocketClientTransport",
]
