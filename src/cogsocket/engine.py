"""CogSocket engine.

One engine per transport. Either endpoint can be client or server for
any message: the engine sends requests to the peer's object graph and
serves the peer's requests against its own `root`.

Usage:
    transport = WebSocketClientTransport("ws://169.254.26.207/ws")
    async with CogSocket(transport) as cogsock:
        state = await cogsock.get("cam0/hmi/state")
        session = await cogsock.post("cam0/hmi/openSession", {"cellNames": ["A0:Z8"]})
        await cogsock.add_listener(f"{session}/resultChanged", on_result)

Debugging:
    Besides the module logger, an optional `log` callable receives every
    inbound/outbound frame and lifecycle event:

        cogsock = CogSocket(transport, log=print)
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .config import CogSocketConfig
from .connection import ConnectionObject
from .errors import ConnectionClosedError, ProtocolError, error_code, error_text
from .graph import Listener
from .protocol import (
    MISSING,
    NOT_SUPPORTED,
    Message,
    MessageDispatcher,
    MessageKind,
    RequestCorrelator,
    SubscriptionManager,
    decode,
    encode,
)
from .resolver import PathResolver
from .transport.base import Frame, Transport

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]
Callback = Callable[..., Any]


class CogSocket:
    """Bidirectional CogSocket protocol engine.

    Lifecycle:
        open() connects the transport and starts reading frames.
        close() is terminal: running async methods and listeners are
        cancelled, event senders are detached, pending requests fail
        with ConnectionClosedError, the transport is disconnected. A
        closed engine cannot be reopened.

    Callbacks (optional, plain or async callables):
        on_open(), on_close(), on_error(exc)
    """

    def __init__(
        self,
        transport: Transport,
        root: Any = None,
        *,
        config: CogSocketConfig | None = None,
        log: LogSink | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            transport: Duplex frame transport, owned by this engine
            root: Root of the local object graph served to the peer
            config: Encoding and identity settings
            log: Optional sink for frame/lifecycle tracing
        """
        self.transport = transport
        self.config = config or CogSocketConfig()
        self.log = log

        self.on_open: Callback | None = None
        self.on_close: Callback | None = None
        self.on_error: Callback | None = None

        self._connection = ConnectionObject(self.config.identity)
        self._resolver = PathResolver(root, self._connection)
        self._correlator = RequestCorrelator(self._send_message)
        self._subscriptions = SubscriptionManager(
            self._correlator.call, self._resolver, self._send_message
        )
        self._dispatcher = MessageDispatcher(
            self._resolver,
            self._correlator,
            self._subscriptions,
            self._send_message,
            trace=self._trace,
        )

        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False

    # =========================================================================
    # State
    # =========================================================================

    @property
    def root(self) -> Any:
        return self._resolver.root

    @root.setter
    def root(self, value: Any) -> None:
        self._resolver.root = value

    @property
    def is_open(self) -> bool:
        return not self._closed and self.transport.is_connected

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_requests(self) -> int:
        """Number of requests waiting for a response."""
        return len(self._correlator)

    @property
    def local_info(self) -> dict[str, Any]:
        """Identity record this endpoint presents in the hello exchange."""
        return self._connection.identity()

    @property
    def remote_info(self) -> Any:
        """Identity record received from the peer, if any."""
        return self._connection.remote_info

    @property
    def subscriptions(self) -> SubscriptionManager:
        return self._subscriptions

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> None:
        """Connect the transport and start processing inbound frames."""
        if self._closed:
            raise ConnectionClosedError("CogSocket has been closed")
        if self._reader_task is not None:
            return

        await self.transport.connect()
        self._trace("socket.onopen")
        await self._fire(self.on_open)
        self._reader_task = asyncio.create_task(self._read_loop())

    async def serve(self) -> None:
        """Open and process frames until the transport closes."""
        await self.open()
        try:
            if self._reader_task is not None:
                # wait() does not raise if close() cancels the reader
                await asyncio.wait({self._reader_task})
        finally:
            await self.close()

    async def close(self) -> None:
        """Close the engine. Has no effect if it has already been closed."""
        if self._closed:
            return
        self._closed = True

        task = self._reader_task
        self._reader_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        await self._dispatcher.cancel_all()
        self._subscriptions.detach_all()
        self._correlator.discard_all(ConnectionClosedError("Connection closed"))

        try:
            await self.transport.disconnect()
        except Exception:
            logger.exception("Error disconnecting transport")

        self._trace("WebSocket.onclose")
        await self._fire(self.on_close)

    async def __aenter__(self) -> CogSocket:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _read_loop(self) -> None:
        """Background task feeding inbound frames to handle_frame."""
        try:
            async for frame in self.transport.receive():
                await self.handle_frame(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Transport receive error: {e}")
            self._trace("WebSocket.onerror")
            await self._fire(self.on_error, e)
        finally:
            if not self._closed:
                await self.close()

    async def _fire(self, callback: Callback | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Error in {getattr(callback, '__name__', 'callback')}")

    # =========================================================================
    # Outbound requests
    # =========================================================================

    async def get(self, path: str) -> Any:
        """Read the property at `path` on the peer.

        Raises:
            RemoteError: The peer answered with an error
            ConnectionClosedError: The engine closed before the response
        """
        return await self._request(MessageKind.GET, path)

    async def put(self, path: str, value: Any, *, respond: bool = True) -> None:
        """Assign `value` to the property at `path` on the peer.

        With `respond=False` no response is requested and the call
        returns as soon as the frame is queued.
        """
        await self._request(MessageKind.PUT, path, value, respond=respond)

    async def post(self, path: str, body: Any = MISSING, *, respond: bool = True) -> Any:
        """Invoke the method at `path` on the peer and return its result.

        A list body is spread into positional arguments by the peer; any
        other body is passed as a single argument.
        """
        return await self._request(MessageKind.POST, path, body, respond=respond)

    async def hello(self, info: Any = None) -> Any:
        """Exchange identity records with the peer via @/hello."""
        remote = await self.post("@/hello", info if info is not None else self.local_info)
        self._connection.remote_info = remote
        return remote

    async def add_listener(self, path: str, listener: Listener) -> None:
        """Call `listener` for every event the peer emits on `path`.

        Only the first listener on a path sends a `listen` request; if
        that request fails the registration is dropped and the error
        raised.
        """
        pending = self._subscriptions.add_listener(path, listener)
        if pending is None:
            return
        try:
            await pending
        except Exception:
            self._subscriptions.drop(path)
            raise

    async def remove_listener(self, path: str, listener: Listener | None = None) -> None:
        """Remove `listener` (or all listeners) from `path`.

        The `unlisten` request is only sent when no listener is left.
        """
        pending = self._subscriptions.remove_listener(path, listener)
        if pending is not None:
            await pending

    def _request(
        self,
        kind: MessageKind,
        path: str,
        body: Any = MISSING,
        *,
        respond: bool = True,
    ) -> Awaitable[Any]:
        future = self._correlator.call(kind, path, body, expect_response=respond)
        if future is None:
            return _completed(None)
        return future

    # =========================================================================
    # Inbound frames
    # =========================================================================

    async def handle_frame(self, frame: Frame) -> None:
        """Process one inbound frame to completion.

        Never raises for bad input: binary frames get the NOT_SUPPORTED
        reply, malformed frames are logged (and answered with an error
        response when their id could be read).
        """
        if isinstance(frame, bytes | bytearray | memoryview):
            self._trace("Binary frame received, replying 'not supported'")
            self._send_frame(NOT_SUPPORTED)
            return

        self._trace(f"Got {frame}")
        try:
            message = decode(frame)
        except ProtocolError as e:
            logger.warning(f"Dropping malformed frame: {e}")
            self._trace(f"Exception while handling CogSocket message: {e!r}")
            if e.request_id:
                self._send_frame(
                    encode(
                        Message.error_response(e.request_id, error_code(e), error_text(e)),
                        self.config.indent,
                    )
                )
            return

        await self._dispatcher.dispatch(message)

    # =========================================================================
    # Sending
    # =========================================================================

    def _send_message(self, message: Message) -> None:
        if self._closed:
            raise ConnectionClosedError("CogSocket has been closed")
        text = encode(message, self.config.indent)
        self._trace(f"Send {text}")
        self.transport.send(text)

    def _send_frame(self, frame: Frame) -> None:
        """Send a reply frame, logging instead of raising if closed."""
        try:
            if self._closed:
                raise ConnectionClosedError("CogSocket has been closed")
            self.transport.send(frame)
        except ConnectionClosedError as e:
            logger.warning(f"Reply not sent: {e}")

    def _trace(self, text: str) -> None:
        logger.debug(text)
        if self.log is not None:
            self.log(text)


async def _completed(value: Any) -> Any:
    return value
