"""Event subscriptions in both directions.

Local side: listeners registered by this application for events on the
peer. Many local listeners on one path share a single remote `listen`;
the `unlisten` is sent when the last one goes away.

Remote side: `listen` requests received from the peer. Each subscribed
path gets one EventSender attached to the local event source, which
turns local emissions into outbound `event` messages.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..graph import Addressable, Listener
from ..resolver import PathResolver
from .messages import Message, MessageKind

logger = logging.getLogger(__name__)

RequestCall = Callable[..., "asyncio.Future[Any] | None"]
SendMessage = Callable[[Message], None]


class EventSender:
    """Forwards a local event emission to the peer as an `event` message."""

    __slots__ = ("path", "_send", "source", "member")

    def __init__(self, path: str, send: SendMessage):
        self.path = path
        self._send = send
        # Event source this sender is attached to, set by attach_sender
        self.source: Addressable | None = None
        self.member = ""

    def __call__(self, *args: Any) -> None:
        self._send(Message.event(self.path, args))

    def __repr__(self) -> str:
        return f"EventSender({self.path!r})"


class SubscriptionManager:
    """Owns the listener and event-sender tables of one engine."""

    def __init__(self, call: RequestCall, resolver: PathResolver, send: SendMessage):
        self._call = call
        self._resolver = resolver
        self._send = send
        self._listeners: dict[str, list[Listener]] = {}
        self._senders: dict[str, EventSender] = {}

    # =========================================================================
    # Local listeners (our subscriptions to the peer)
    # =========================================================================

    def add_listener(self, path: str, listener: Listener) -> asyncio.Future[Any] | None:
        """Register a local listener for remote events on `path`.

        Returns:
            The pending `listen` request if this is the first listener
            for the path, else None (nothing was sent).
        """
        listeners = self._listeners.get(path)
        if listeners is not None:
            listeners.append(listener)
            return None

        self._listeners[path] = [listener]
        try:
            return self._call(MessageKind.LISTEN, path)
        except BaseException:
            del self._listeners[path]
            raise

    def remove_listener(
        self, path: str, listener: Listener | None = None
    ) -> asyncio.Future[Any] | None:
        """Unregister one local listener, or all of them if `listener` is None.

        Returns:
            The pending `unlisten` request if the path has no listeners
            left, else None (nothing was sent).
        """
        listeners = self._listeners.get(path)
        if listeners is None:
            return None

        if listener is not None and listener in listeners:
            listeners.remove(listener)

        if listener is None or not listeners:
            del self._listeners[path]
            return self._call(MessageKind.UNLISTEN, path)
        return None

    def drop(self, path: str) -> None:
        """Forget the registration for `path` without sending anything."""
        self._listeners.pop(path, None)

    def listeners(self, path: str | None) -> list[Listener]:
        """Snapshot of the local listeners for `path`."""
        if path is None:
            return []
        return list(self._listeners.get(path, ()))

    def listened_paths(self) -> list[str]:
        return list(self._listeners)

    # =========================================================================
    # Event senders (the peer's subscriptions to us)
    # =========================================================================

    def attach_sender(self, path: str) -> EventSender:
        """Start forwarding local events on `path` to the peer.

        A second `listen` for the same path reuses the existing sender.
        The resolved node is kept so that detaching does not depend on
        the path still resolving.
        """
        sender = self._senders.get(path)
        if sender is not None:
            return sender

        node, member = self._resolver.resolve(path)
        sender = EventSender(path, self._send)
        node.add_listener(member, sender)
        sender.source, sender.member = node, member
        self._senders[path] = sender
        logger.debug(f"Forwarding events on '{path}'")
        return sender

    def detach_sender(self, path: str) -> bool:
        """Stop forwarding local events on `path`.

        Returns:
            False if the path was not being forwarded.
        """
        sender = self._senders.pop(path, None)
        if sender is None:
            return False

        if sender.source is not None:
            sender.source.remove_listener(sender.member, sender)
        logger.debug(f"Stopped forwarding events on '{path}'")
        return True

    def detach_all(self) -> None:
        """Detach every event sender (engine teardown)."""
        for path in list(self._senders):
            try:
                self.detach_sender(path)
            except Exception:
                logger.exception(f"Failed to detach event sender for '{path}'")

    def is_forwarding(self, path: str) -> bool:
        return path in self._senders

    def forwarded_paths(self) -> list[str]:
        return list(self._senders)
