"""In-process transport.

Used for tests and for connecting two engines inside one process:

    left, right = MemoryTransport.pair()
    device = CogSocket(left, root=graph)
    client = CogSocket(right)

Every frame sent is also recorded in `sent`.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from ..errors import ConnectionClosedError
from .base import Frame, Transport


class MemoryTransport(Transport):
    """Transport backed by an asyncio queue."""

    def __init__(self) -> None:
        self._connected = False
        self._inbox: asyncio.Queue[Frame | None] = asyncio.Queue()
        self._peer: MemoryTransport | None = None
        self.sent: list[Frame] = []

    @classmethod
    def pair(cls) -> tuple[MemoryTransport, MemoryTransport]:
        """Two transports wired to each other."""
        left, right = cls(), cls()
        left._peer = right
        right._peer = left
        return left, right

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self._inbox.put_nowait(None)
        if self._peer is not None:
            self._peer.feed_close()

    def send(self, frame: Frame) -> None:
        if not self._connected:
            raise ConnectionClosedError("Transport not connected")
        self.sent.append(frame)
        if self._peer is not None:
            self._peer.feed(frame)

    def feed(self, frame: Frame) -> None:
        """Deliver an inbound frame."""
        self._inbox.put_nowait(frame)

    def feed_close(self) -> None:
        """Simulate the remote end closing the channel."""
        self._inbox.put_nowait(None)

    async def receive(self) -> AsyncIterator[Frame]:
        while True:
            frame = await self._inbox.get()
            if frame is None:
                self._connected = False
                return
            yield frame
