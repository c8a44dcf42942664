"""Tests for the create_session factory."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pysynced.client import create_session
from pysynced.config import SessionConfig
from pysynced.identity import IdentityStore

if TYPE_CHECKING:
    from conftest import Drain, FakeTransport


@pytest.mark.asyncio
async def test_ws_auth_answers_identity_request(transport: FakeTransport, drain: Drain) -> None:
    config = SessionConfig(url="ws://peer.test/ws", ws_auth=True, auto_connect=True)
    store = IdentityStore()

    session = await create_session(config, identity_store=store, transport=transport)
    assert session.is_connected

    transport.last.feed_text({"type": "_REQUEST_USER_SESSION", "data": None})
    await drain()

    assert transport.last.sent_frames() == [
        {"type": "_USER_SESSION", "data": {"user": store.user_id, "session": store.session_id}}
    ]
    await session.close()


@pytest.mark.asyncio
async def test_without_ws_auth_identity_request_is_unhandled(transport: FakeTransport) -> None:
    session = await create_session(SessionConfig(url="ws://peer.test/ws"), transport=transport)

    assert not session.is_connected
    assert not session.registry.has_event("_REQUEST_USER_SESSION")
    await session.close()


@pytest.mark.asyncio
async def test_download_dir_installs_file_saver(transport: FakeTransport, tmp_path: Path) -> None:
    config = SessionConfig(url="ws://peer.test/ws", download_dir=str(tmp_path))
    session = await create_session(config, transport=transport)

    await session.handle_receive_event(
        json.dumps({"type": "_DOWNLOAD", "data": {"filename": "a.txt", "data": base64.b64encode(b"hi").decode()}})
    )

    assert (tmp_path / "a.txt").read_bytes() == b"hi"
    await session.close()


@pytest.mark.asyncio
async def test_explicit_file_saver_wins_over_download_dir(transport: FakeTransport, tmp_path: Path) -> None:
    saved: list[str] = []
    config = SessionConfig(url="ws://peer.test/ws", download_dir=str(tmp_path))
    session = await create_session(config, transport=transport, file_saver=lambda _blob, name: saved.append(name))

    await session.handle_receive_event(
        json.dumps({"type": "_DOWNLOAD", "data": {"filename": "a.txt", "data": base64.b64encode(b"hi").decode()}})
    )

    assert saved == ["a.txt"]
    assert not (tmp_path / "a.txt").exists()
    await session.close()
