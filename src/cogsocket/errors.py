"""Error taxonomy for the CogSocket protocol.

Errors raised while handling an inbound request are converted into an
error response at the message-processing boundary. Errors coming back
from the peer are reconstituted as RemoteError.
"""

from __future__ import annotations


class CogSocketError(Exception):
    """Base class for all protocol errors.

    Every error carries an integer `code` that travels in the `error`
    field of a response. -1 means "unspecified".
    """

    code: int = -1

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ResolutionError(CogSocketError):
    """A path does not resolve to a member of the object graph."""


class InvocationError(CogSocketError):
    """Reading, writing or invoking a resolved member failed."""


class ProtocolError(CogSocketError):
    """Malformed frame or unknown message kind."""

    def __init__(self, message: str, request_id: int | None = None, code: int | None = None):
        super().__init__(message, code)
        self.request_id = request_id


class UnmatchedResponseError(CogSocketError):
    """A response arrived for an id with no pending request (logged only)."""


class RemoteError(CogSocketError):
    """Error response received from the peer."""

    def __repr__(self) -> str:
        return f"RemoteError({self.message!r}, code={self.code})"


class ConnectionClosedError(CogSocketError, ConnectionError):
    """The engine or its transport has been closed."""


def error_code(exc: BaseException) -> int:
    """Integer code to send for an exception, -1 when it has none."""
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return -1


def error_text(exc: BaseException) -> str:
    """Text to send for an exception."""
    return str(exc) or exc.__class__.__name__
