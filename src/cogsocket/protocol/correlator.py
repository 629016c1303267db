"""Request/response correlation.

Outbound requests that expect a response get an integer id and a pending
future. Inbound responses are matched by id, not by arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..errors import RemoteError
from .messages import MISSING, Message, MessageKind

logger = logging.getLogger(__name__)

# Ids are positive 31-bit integers; 0 means "no response expected"
MAX_REQUEST_ID = 0x7FFFFFFF

SendMessage = Callable[[Message], None]


@dataclass
class PendingRequest:
    """A request waiting for its response."""

    id: int
    kind: str
    path: str
    future: asyncio.Future[Any]


class RequestCorrelator:
    """Issues correlated requests and completes them from responses.

    Usage:
        correlator = RequestCorrelator(send)
        future = correlator.call(MessageKind.GET, "cam0/hmi/state")
        ...
        correlator.resolve(1, "Idle", None)  # from the inbound resp
        state = await future
    """

    def __init__(self, send: SendMessage):
        self._send = send
        self._last_id = 0
        self._pending: dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    @property
    def last_id(self) -> int:
        """The most recently issued id (0 before the first request)."""
        return self._last_id

    def next_id(self) -> int:
        """Allocate the next id, wrapping to 1 after MAX_REQUEST_ID."""
        request_id = self._last_id
        while True:
            request_id += 1
            if request_id > MAX_REQUEST_ID:
                request_id = 1
            # Only possible after a wrap with very long-lived requests
            if request_id not in self._pending:
                break
        self._last_id = request_id
        return request_id

    def call(
        self,
        kind: str | MessageKind,
        path: str,
        body: Any = MISSING,
        expect_response: bool = True,
    ) -> asyncio.Future[Any] | None:
        """Send a request.

        Args:
            kind: Request kind (get/put/post/listen/unlisten)
            path: Remote path
            body: Request body (omitted from the frame when MISSING)
            expect_response: If False the request carries no id and no
                response is tracked

        Returns:
            Future completed with the response body (or failed with
            RemoteError), or None for fire-and-forget requests.
        """
        if not expect_response:
            self._send(Message.request(kind, path, body))
            return None

        request_id = self.next_id()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        kind_value = kind.value if isinstance(kind, MessageKind) else kind
        self._pending[request_id] = PendingRequest(request_id, kind_value, path, future)

        try:
            self._send(Message.request(kind, path, body, id=request_id))
        except BaseException:
            del self._pending[request_id]
            raise

        return future

    def resolve(self, request_id: int | None, body: Any = None, error: int | None = None) -> bool:
        """Complete the pending request `request_id`.

        Returns:
            False if no request with that id was pending. This is not an
            error: the response is logged and dropped.
        """
        pending = self._pending.pop(request_id, None) if request_id else None
        if pending is None:
            logger.warning(f"Received response {request_id} with no pending request")
            return False

        if pending.future.done():
            # Cancelled by the caller
            return True

        if error:
            message = str(body) if body not in (None, "") else str(error)
            pending.future.set_exception(RemoteError(message, code=error))
        else:
            pending.future.set_result(body)
        return True

    def discard_all(self, exc: BaseException | None = None) -> None:
        """Forget every pending request.

        With `exc`, each waiting caller receives it; without, the
        requests are dropped without completion.
        """
        pending = list(self._pending.values())
        self._pending.clear()
        if exc is None:
            return
        for request in pending:
            if not request.future.done():
                request.future.set_exception(exc)
