"""Unit tests for protocol messages and the text frame codec."""

from __future__ import annotations

import json
from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from cogsocket.errors import ProtocolError
from cogsocket.protocol import MISSING, NOT_SUPPORTED, Message, MessageKind, decode, encode

# =============================================================================
# Message Tests
# =============================================================================


class TestMessageCreation:
    """Tests for Message factories and wire form."""

    def test_request_to_wire(self) -> None:
        """Request includes $type, id, path and body."""
        msg = Message.request(MessageKind.PUT, "mode", True, id=2)

        assert msg.to_wire() == {"$type": "put", "id": 2, "path": "mode", "body": True}

    def test_request_without_id_omits_id(self) -> None:
        """Fire-and-forget requests carry no id."""
        msg = Message.request(MessageKind.POST, "cam0/hmi/ready")

        assert msg.to_wire() == {"$type": "post", "path": "cam0/hmi/ready"}
        assert msg.expects_response is False

    def test_response_without_body(self) -> None:
        """A response with no payload has no body key."""
        msg = Message.response(2)

        assert msg.to_wire() == {"$type": "resp", "id": 2}
        assert msg.has_body is False

    def test_response_with_none_body(self) -> None:
        """A None body is written as null, not omitted."""
        msg = Message.response(3, None)

        assert msg.to_wire() == {"$type": "resp", "id": 3, "body": None}
        assert msg.has_body is True

    def test_error_response(self) -> None:
        """Error responses carry the code and the text as body."""
        msg = Message.error_response(4, -1, "No member 'stat'")

        assert msg.to_wire() == {"$type": "resp", "id": 4, "error": -1, "body": "No member 'stat'"}
        assert msg.is_error is True

    def test_zero_id_is_dropped(self) -> None:
        """Id 0 means no response expected and is never written."""
        msg = Message.create(MessageKind.GET, id=0, path="state")

        assert "id" not in msg.to_wire()

    def test_negative_id_expects_no_response(self) -> None:
        """Only positive ids are answered."""
        msg = Message.create(MessageKind.GET, id=-5, path="state")

        assert msg.expects_response is False
        assert Message.create(MessageKind.GET, id=1, path="state").expects_response is True

    def test_response_never_expects_response(self) -> None:
        """Responses are not answered even though they carry an id."""
        assert Message.response(5, "x").expects_response is False


class TestEventPackaging:
    """Tests for Message.event argument packaging."""

    def test_no_args_no_body(self) -> None:
        msg = Message.event("cam0/hmi/ready")

        assert msg.to_wire() == {"$type": "event", "path": "cam0/hmi/ready"}

    def test_single_arg_is_body(self) -> None:
        msg = Message.event("sensor/changed", ({"v": 5},))

        assert msg.to_wire() == {"$type": "event", "path": "sensor/changed", "body": {"v": 5}}

    def test_many_args_are_list(self) -> None:
        msg = Message.event("sensor/moved", (1, 2, 3))

        assert msg.body == [1, 2, 3]


class TestMessageArgs:
    """Tests for unwrapping bodies into positional arguments."""

    def test_absent_body(self) -> None:
        assert Message.create("post", path="x").args() == []

    def test_list_body_is_spread(self) -> None:
        assert Message.create("post", path="x", body=[1, 2]).args() == [1, 2]

    def test_object_body_is_single_arg(self) -> None:
        assert Message.create("post", path="x", body={"x": 1}).args() == [{"x": 1}]

    def test_null_body_is_single_arg(self) -> None:
        assert Message.create("post", path="x", body=None).args() == [None]


# =============================================================================
# Codec Tests
# =============================================================================


class TestEncode:
    """Tests for encode()."""

    def test_encode_compact(self) -> None:
        text = encode(Message.response(1, "Idle"))

        assert json.loads(text) == {"$type": "resp", "id": 1, "body": "Idle"}
        assert "\n" not in text

    def test_encode_indented(self) -> None:
        text = encode(Message.response(1, "Idle"), indent=2)

        assert "\n  " in text

    def test_encode_pydantic_body(self) -> None:
        class Result(BaseModel):
            x: int

        data = json.loads(encode(Message.response(1, Result(x=3))))

        assert data["body"] == {"x": 3}

    def test_encode_dataclass_body(self) -> None:
        @dataclass
        class Pose:
            x: float
            r: float

        data = json.loads(encode(Message.response(1, Pose(1.5, 90.0))))

        assert data["body"] == {"x": 1.5, "r": 90.0}

    def test_encode_unserializable_body_raises(self) -> None:
        with pytest.raises((TypeError, ValueError)):
            encode(Message.response(1, object()))


class TestDecode:
    """Tests for decode()."""

    def test_decode_request(self) -> None:
        msg = decode('{"$type": "get", "id": 1, "path": "state"}')

        assert msg.kind == MessageKind.GET
        assert msg.id == 1
        assert msg.path == "state"
        assert msg.has_body is False

    def test_decode_error_response(self) -> None:
        msg = decode('{"$type": "resp", "id": 9, "error": 5, "body": "boom"}')

        assert msg.is_error is True
        assert msg.error == 5
        assert msg.body == "boom"

    def test_decode_unknown_kind_still_parses(self) -> None:
        """Unknown kinds are left for the dispatcher to reject."""
        msg = decode('{"$type": "delete", "id": 3, "path": "x"}')

        assert msg.kind == "delete"

    def test_decode_invalid_json(self) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            decode("not json")

        assert exc_info.value.request_id is None

    def test_decode_non_object(self) -> None:
        with pytest.raises(ProtocolError):
            decode("[1, 2]")

    def test_decode_missing_type(self) -> None:
        with pytest.raises(ProtocolError):
            decode('{"id": 1, "path": "state"}')

    def test_decode_invalid_field_keeps_request_id(self) -> None:
        """An invalid request still reports its id so it can be answered."""
        with pytest.raises(ProtocolError) as exc_info:
            decode('{"$type": "get", "id": 5, "path": 7}')

        assert exc_info.value.request_id == 5

    def test_decode_invalid_response_has_no_request_id(self) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            decode('{"$type": "resp", "id": 5, "error": "bad"}')

        assert exc_info.value.request_id is None


def test_not_supported_sentinel() -> None:
    """The binary reply is exactly 00 00 E0 80."""
    assert NOT_SUPPORTED == b"\x00\x00\xe0\x80"
    assert len(NOT_SUPPORTED) == 4


def test_missing_is_falsy() -> None:
    assert not MISSING
    assert repr(MISSING) == "MISSING"
