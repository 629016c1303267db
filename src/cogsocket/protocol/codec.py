"""Text frame encoding for protocol messages.

Only JSON text frames carry protocol content. Binary frames are answered
with the NOT_SUPPORTED sentinel and otherwise ignored.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import ProtocolError
from .messages import Message

# Reply to any binary frame: "operation not supported"
NOT_SUPPORTED = bytes((0x00, 0x00, 0xE0, 0x80))


def encode(message: Message, indent: int | str | None = None) -> str:
    """Serialize a message to a JSON text frame."""
    return json.dumps(message.to_wire(), indent=indent, default=_to_json)


def _to_json(value: Any) -> Any:
    """Fallback conversion for values json cannot encode natively."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, set | frozenset):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def decode(text: str | bytes) -> Message:
    """Parse a JSON text frame.

    Raises:
        ProtocolError: The frame is not JSON, not an object, or has
            invalid fields. `request_id` is set when the frame carried a
            usable id, so the caller can still answer with an error.
    """
    try:
        data: Any = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"Invalid JSON frame: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(f"Frame must be a JSON object, got {type(data).__name__}")

    try:
        return Message.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"Invalid message: {e}", request_id=_request_id(data)) from e


def _request_id(data: dict[str, Any]) -> int | None:
    """Best-effort id of an invalid request frame (never for responses)."""
    request_id = data.get("id")
    if data.get("$type") == "resp":
        return None
    if isinstance(request_id, int) and not isinstance(request_id, bool) and request_id > 0:
        return request_id
    return None
