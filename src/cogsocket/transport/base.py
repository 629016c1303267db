"""Transport abstraction base classes.

A transport is one duplex channel carrying text frames (and, rarely,
binary frames). The engine owns its transport for its whole lifetime.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from ..errors import ConnectionClosedError

logger = logging.getLogger(__name__)

Frame = str | bytes


class Transport(ABC):
    """Abstract duplex frame transport.

    `send` never blocks: frames are queued and written in order by the
    implementation. `receive` yields inbound frames until the channel
    closes.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the transport can send and receive."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Establish the transport connection."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the transport connection."""
        ...

    @abstractmethod
    def send(self, frame: Frame) -> None:
        """Queue a frame for sending.

        Raises:
            ConnectionClosedError: If the transport is not connected
        """
        ...

    @abstractmethod
    def receive(self) -> AsyncIterator[Frame]:
        """Receive frames until the channel closes."""
        ...

    async def __aenter__(self) -> Transport:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.disconnect()


class QueuedTransport(Transport):
    """Transport with an outbound queue drained by a writer task.

    Subclasses implement `_open`, `_close`, `_write` and `receive`.
    """

    def __init__(self) -> None:
        self._connected = False
        self._outbox: asyncio.Queue[Frame | None] = asyncio.Queue()
        self._writer_task: asyncio.Task[None] | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if self._connected:
            return
        await self._open()
        self._connected = True
        self._writer_task = asyncio.create_task(self._write_loop())

    async def disconnect(self) -> None:
        # The peer may already have closed; the writer and socket still need cleanup
        if not self._connected and self._writer_task is None:
            return
        self._connected = False

        # Let queued frames go out before closing
        if self._writer_task:
            self._outbox.put_nowait(None)
            try:
                await asyncio.wait_for(self._writer_task, timeout=1.0)
            except (TimeoutError, asyncio.CancelledError):
                self._writer_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._writer_task
            self._writer_task = None

        await self._close()

    def send(self, frame: Frame) -> None:
        if not self._connected:
            raise ConnectionClosedError("Transport not connected")
        self._outbox.put_nowait(frame)

    async def _write_loop(self) -> None:
        """Background task writing queued frames in order."""
        while True:
            frame = await self._outbox.get()
            if frame is None:
                break
            try:
                await self._write(frame)
            except Exception as e:
                logger.warning(f"{self.__class__.__name__} write failed: {e}")
                self._connected = False
                break

    @abstractmethod
    async def _open(self) -> None:
        """Implementation-specific connection logic."""
        ...

    @abstractmethod
    async def _close(self) -> None:
        """Implementation-specific disconnection logic."""
        ...

    @abstractmethod
    async def _write(self, frame: Frame) -> None:
        """Implementation-specific write logic."""
        ...
