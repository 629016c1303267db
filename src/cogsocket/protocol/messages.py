"""Message definitions for the CogSocket protocol.

Every frame on the wire is one JSON object:

    {"$type": "get", "id": 1, "path": "cam0/hmi/state"}
    {"$type": "resp", "id": 1, "body": "Idle"}
    {"$type": "resp", "id": 2, "error": -1, "body": "No member 'stat'"}
    {"$type": "event", "path": "cam0/hmi/stateChanged", "body": {"state": "Online"}}

Fields other than `$type` are written only when set. In particular a
response without a body has no "body" key, while a body explicitly set
to None is written as null.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Missing:
    """Marker for "no body" (distinct from a None body)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class MessageKind(str, Enum):
    """All message kinds in the protocol."""

    # Requests (either endpoint may send them)
    GET = "get"
    PUT = "put"
    POST = "post"
    LISTEN = "listen"
    UNLISTEN = "unlisten"

    # Notifications and responses
    EVENT = "event"
    RESP = "resp"


REQUEST_KINDS = frozenset(
    {
        MessageKind.GET,
        MessageKind.PUT,
        MessageKind.POST,
        MessageKind.LISTEN,
        MessageKind.UNLISTEN,
    }
)


class Message(BaseModel):
    """A CogSocket protocol message.

    `kind` is kept as a plain string so that frames with an unknown kind
    still parse and can be answered with an error response.
    """

    model_config = ConfigDict(populate_by_name=True)

    kind: str = Field(alias="$type")
    id: int | None = None  # Correlation id, absent/0 = no response expected
    path: str | None = None
    body: Any = None
    error: int | None = None  # resp only: error code

    @property
    def has_body(self) -> bool:
        """True if the body was present on the wire (even as null)."""
        return "body" in self.model_fields_set

    @property
    def expects_response(self) -> bool:
        """Only requests with a positive id are answered."""
        return self.id is not None and self.id > 0 and self.kind != MessageKind.RESP.value

    @property
    def is_error(self) -> bool:
        return self.kind == MessageKind.RESP.value and bool(self.error)

    def args(self) -> list[Any]:
        """The body unwrapped as positional arguments.

        No body -> [], list body -> its items, anything else -> [body].
        """
        if not self.has_body:
            return []
        if isinstance(self.body, list):
            return list(self.body)
        return [self.body]

    def to_wire(self) -> dict[str, Any]:
        """Dictionary ready for JSON encoding, using wire field names."""
        data = self.model_dump(by_alias=True, exclude_unset=True)
        data["$type"] = self.kind
        if not data.get("id"):
            data.pop("id", None)
        return data

    # =========================================================================
    # Factory methods
    # =========================================================================

    @classmethod
    def create(
        cls,
        kind: str | MessageKind,
        *,
        id: int | None = None,
        path: str | None = None,
        body: Any = MISSING,
        error: int | None = None,
    ) -> Message:
        """Build a message, setting only the fields that were given."""
        fields: dict[str, Any] = {"kind": kind.value if isinstance(kind, MessageKind) else kind}
        if id:
            fields["id"] = id
        if path is not None:
            fields["path"] = path
        if body is not MISSING:
            fields["body"] = body
        if error is not None:
            fields["error"] = error
        return cls(**fields)

    @classmethod
    def request(
        cls,
        kind: str | MessageKind,
        path: str,
        body: Any = MISSING,
        id: int | None = None,
    ) -> Message:
        """Create a get/put/post/listen/unlisten request."""
        return cls.create(kind, id=id, path=path, body=body)

    @classmethod
    def response(cls, id: int, body: Any = MISSING) -> Message:
        """Create a successful response."""
        return cls.create(MessageKind.RESP, id=id, body=body)

    @classmethod
    def error_response(cls, id: int, code: int, text: str) -> Message:
        """Create an error response; the text travels as the body."""
        return cls.create(MessageKind.RESP, id=id, body=text, error=code)

    @classmethod
    def event(cls, path: str, args: Sequence[Any] = (), id: int | None = None) -> Message:
        """Create an event from emitted positional arguments.

        No args -> no body, one arg -> that value, more -> a list.
        """
        if len(args) == 0:
            body = MISSING
        elif len(args) == 1:
            body = args[0]
        else:
            body = list(args)
        return cls.create(MessageKind.EVENT, id=id, path=path, body=body)
