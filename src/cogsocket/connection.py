"""Connection-level object reachable at the reserved "@/" path prefix.

The only operation is the identity handshake:

    {"$type": "post", "id": 1, "path": "@/hello", "body": {"name": "...", "model": "..."}}

The peer's record is stored, and this endpoint's record is returned.
Nothing else on the connection object can be read, written or
subscribed to.
"""

from __future__ import annotations

import socket
import sys
from collections.abc import Sequence
from typing import Any

from .errors import InvocationError, ResolutionError
from .graph import Listener

HELLO = "hello"


def default_identity() -> dict[str, Any]:
    """Identity record describing this host."""
    try:
        name = socket.gethostname()
    except OSError:
        name = "unknown"
    return {"name": name, "model": sys.platform}


class ConnectionObject:
    """Addressable connection object, one per engine."""

    __slots__ = ("_identity", "local_info", "remote_info")

    def __init__(self, identity: dict[str, Any] | None = None):
        self._identity = identity
        self.local_info: dict[str, Any] | None = None
        self.remote_info: Any = None

    def identity(self) -> dict[str, Any]:
        """This endpoint's identity record, computed on first use."""
        if self.local_info is None:
            self.local_info = dict(self._identity) if self._identity else default_identity()
        return self.local_info

    def hello(self, info: Any = None) -> dict[str, Any]:
        """Store the peer's identity and return ours."""
        self.remote_info = info
        return self.identity()

    def get_member(self, name: str) -> Any:
        raise ResolutionError(f"No member '{name}' on the connection object")

    def set_member(self, name: str, value: Any) -> None:
        raise InvocationError("The connection object is read-only")

    def invoke_member(self, name: str, args: Sequence[Any]) -> Any:
        if name != HELLO:
            raise ResolutionError(f"No operation '{name}' on the connection object")
        if len(args) > 1:
            raise InvocationError(f"'{HELLO}' takes one argument, got {len(args)}")
        return self.hello(*args)

    def add_listener(self, name: str, listener: Listener) -> None:
        raise ResolutionError(f"'{name}' is not an event source")

    def remove_listener(self, name: str, listener: Listener) -> None:
        raise ResolutionError(f"'{name}' is not an event source")
