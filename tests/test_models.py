"""Tests for wire frame models built on SyncedBaseModel."""

from __future__ import annotations

import base64
import json

import pytest

from pysynced.exceptions import FrameDecodeError
from pysynced.models import BinaryMeta, DownloadPayload, Envelope, UserSession


class TestEnvelope:
    def test_parse_json(self) -> None:
        envelope = Envelope.parse_json('{"type": "_SET:counter", "data": {"count": 1}, "extra": 1}')
        assert envelope.type == "_SET:counter"
        assert envelope.data == {"count": 1}

    def test_data_defaults_to_none(self) -> None:
        assert Envelope.parse({"type": "ping"}).data is None

    def test_to_json_has_type_and_data(self) -> None:
        assert json.loads(Envelope(type="chat", data=[1, "two"]).to_json()) == {"type": "chat", "data": [1, "two"]}

    @pytest.mark.parametrize(
        "raw",
        ["{not json", '{"data": 1}', '{"type": "", "data": 1}', '{"type": 5}', "[]"],
    )
    def test_invalid_frames_raise_decode_error(self, raw: str) -> None:
        with pytest.raises(FrameDecodeError):
            Envelope.parse_json(raw)

    def test_frozen(self) -> None:
        envelope = Envelope(type="chat")
        with pytest.raises(Exception):  # noqa: B017
            envelope.type = "other"  # type: ignore[misc]


class TestBinaryMeta:
    def test_metadata_is_optional(self) -> None:
        meta = BinaryMeta.parse({"type": "_ACTION:files"})
        assert meta.type == "_ACTION:files"
        assert meta.metadata is None

    def test_type_required(self) -> None:
        with pytest.raises(FrameDecodeError):
            BinaryMeta.parse({"metadata": {}})


class TestDownloadPayload:
    def test_base64_is_decoded(self) -> None:
        payload = DownloadPayload.parse({"filename": "a.bin", "data": base64.b64encode(b"\x00\x01\xff").decode()})
        assert payload.data == b"\x00\x01\xff"
        assert payload.filename == "a.bin"

    def test_missing_data_rejected(self) -> None:
        with pytest.raises(FrameDecodeError):
            DownloadPayload.parse({"filename": "a.bin"})


def test_user_session_dump() -> None:
    assert UserSession(user="u-1", session="s-1").model_dump() == {"user": "u-1", "session": "s-1"}
