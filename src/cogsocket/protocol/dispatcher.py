"""Message Dispatcher - routes inbound messages by kind.

Requests (get/put/post/listen/unlisten) are executed against the local
object graph and answered with a `resp`. Events go to local listeners,
responses to the correlator.

Failure policy: any exception while handling a message is caught here
and, when the message carried an id, converted into an error response:

    {"$type": "resp", "id": 7, "error": -1, "body": "No member 'stat'"}

Nothing escapes `dispatch`.

Synchronous handlers run to completion in arrival order. An async method
or listener runs as a background task so that it can itself await
requests on the same engine while the reader keeps processing frames;
an async post is answered when its task finishes.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import ProtocolError, UnmatchedResponseError, error_code, error_text
from ..resolver import PathResolver
from .correlator import RequestCorrelator
from .messages import MISSING, Message, MessageKind
from .subscriptions import SubscriptionManager

logger = logging.getLogger(__name__)

SendMessage = Callable[[Message], None]
Trace = Callable[[str], None]


class MessageDispatcher:
    """Handles inbound protocol messages for one engine."""

    def __init__(
        self,
        resolver: PathResolver,
        correlator: RequestCorrelator,
        subscriptions: SubscriptionManager,
        send: SendMessage,
        trace: Trace | None = None,
    ) -> None:
        self._resolver = resolver
        self._correlator = correlator
        self._subscriptions = subscriptions
        self._send = send
        self._trace = trace or logger.debug
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending_tasks(self) -> int:
        """Number of async methods and listeners still running."""
        return len(self._tasks)

    async def dispatch(self, message: Message) -> None:
        """Process one inbound message.

        Returns once every synchronous part has run; async method results
        and async listeners continue in tracked background tasks.
        """
        request_id = message.id if message.expects_response else None

        try:
            match message.kind:
                case MessageKind.GET:
                    node, member = self._resolver.resolve(message.path)
                    value = node.get_member(member)
                    self._respond(request_id, value)

                case MessageKind.PUT:
                    node, member = self._resolver.resolve(message.path)
                    node.set_member(member, message.body)
                    self._respond(request_id)

                case MessageKind.POST:
                    node, member = self._resolver.resolve(message.path)
                    result = node.invoke_member(member, message.args())
                    if inspect.isawaitable(result):
                        self._spawn(self._finish_post(message, request_id, result))
                    else:
                        self._respond(request_id, result)

                case MessageKind.LISTEN:
                    self._subscriptions.attach_sender(self._require_path(message))
                    self._respond(request_id)

                case MessageKind.UNLISTEN:
                    self._subscriptions.detach_sender(self._require_path(message))
                    self._respond(request_id)

                case MessageKind.EVENT:
                    self._deliver_event(message)
                    self._respond(request_id)

                case MessageKind.RESP:
                    self._handle_response(message)

                case _:
                    raise ProtocolError(f"Request type '{message.kind}' is not supported.")

        except Exception as e:
            self._report(message, request_id, e)

    async def cancel_all(self) -> None:
        """Cancel every running async method and listener (engine teardown)."""
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _finish_post(
        self, message: Message, request_id: int | None, result: Awaitable[Any]
    ) -> None:
        try:
            value = await result
        except Exception as e:
            self._report(message, request_id, e)
            return
        try:
            self._respond(request_id, value)
        except Exception as e:
            logger.warning(f"Response {request_id} for '{message.path}' not sent: {e}")

    def _deliver_event(self, message: Message) -> None:
        """Call every local listener of the event's path with its arguments."""
        args = message.args()
        for listener in self._subscriptions.listeners(message.path):
            try:
                result = listener(*args)
            except Exception:
                logger.exception(f"Error in listener for event '{message.path}'")
                continue
            if inspect.isawaitable(result):
                self._spawn(self._run_listener(message.path, result))

    @staticmethod
    async def _run_listener(path: str | None, result: Awaitable[Any]) -> None:
        try:
            await result
        except Exception:
            logger.exception(f"Error in listener for event '{path}'")

    def _handle_response(self, message: Message) -> None:
        if not self._correlator.resolve(message.id, message.body, message.error):
            unmatched = UnmatchedResponseError(
                f"Received response {message.id} with no pending request"
            )
            self._trace(f"ERROR: {unmatched}")

    def _report(self, message: Message, request_id: int | None, exc: Exception) -> None:
        logger.warning(f"Error handling '{message.kind}' message for '{message.path}': {exc}")
        self._trace(f"Exception while handling CogSocket message: {exc!r}")
        if request_id:
            self._respond_error(request_id, exc)

    def _respond(self, request_id: int | None, body: Any = MISSING) -> None:
        if request_id:
            self._send(Message.response(request_id, body))

    def _respond_error(self, request_id: int, exc: BaseException) -> None:
        try:
            self._send(Message.error_response(request_id, error_code(exc), error_text(exc)))
        except Exception:
            logger.exception(f"Failed to send error response {request_id}")

    @staticmethod
    def _require_path(message: Message) -> str:
        if not message.path:
            raise ProtocolError(f"'{message.kind}' message without a path")
        return message.path
