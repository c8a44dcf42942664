"""Shared transport/notifier doubles for the pysynced test suite."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from pysynced._transport import Frame, FrameKind
from pysynced.config import SessionConfig
from pysynced.exceptions import SyncedTransportError
from pysynced.session import Session


class FakeConnection:
    """In-memory connection: records writes, replays queued inbound frames."""

    def __init__(self) -> None:
        self.sent: list[str | bytes] = []
        self.closed = False
        self._inbound: asyncio.Queue[Frame] = asyncio.Queue()

    async def send_text(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("connection closed")
        self.sent.append(data)

    async def send_binary(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError("connection closed")
        self.sent.append(data)

    async def receive(self) -> Frame:
        return await self._inbound.get()

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbound.put_nowait(Frame(FrameKind.CLOSED))

    def feed_text(self, payload: dict[str, Any]) -> None:
        self._inbound.put_nowait(Frame(FrameKind.TEXT, json.dumps(payload)))

    def feed_binary(self, payload: bytes) -> None:
        self._inbound.put_nowait(Frame(FrameKind.BINARY, payload))

    def feed_error(self, exc: Exception) -> None:
        self._inbound.put_nowait(Frame(FrameKind.ERROR, exc))

    def drop(self) -> None:
        """Simulate the peer going away."""
        self.closed = True
        self._inbound.put_nowait(Frame(FrameKind.CLOSED))

    def sent_frames(self) -> list[dict[str, Any]]:
        return [json.loads(item) for item in self.sent if isinstance(item, str)]


class FakeTransport:
    """Hands out :class:`FakeConnection` objects; can be told to fail opens."""

    def __init__(self, *, failures: int = 0) -> None:
        self.failures = failures
        self.opened: list[FakeConnection] = []
        self.open_attempts = 0
        self.closed = False

    async def open(self, url: str) -> FakeConnection:
        self.open_attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise SyncedTransportError(f"Connection to {url} failed: refused", url=url)
        connection = FakeConnection()
        self.opened.append(connection)
        return connection

    async def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> FakeConnection:
        return self.opened[-1]


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, message: str, options: dict[str, Any]) -> None:
        self.calls.append((level, message, options))

    def info(self, message: str, **options: Any) -> None:
        self._record("info", message, options)

    def success(self, message: str, **options: Any) -> None:
        self._record("success", message, options)

    def warning(self, message: str, **options: Any) -> None:
        self._record("warning", message, options)

    def error(self, message: str, **options: Any) -> None:
        self._record("error", message, options)

    def loading(self, message: str, **options: Any) -> None:
        self._record("loading", message, options)

    def levels(self, level: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [call for call in self.calls if call[0] == level]


async def _drain(rounds: int = 10) -> None:
    """Let background tasks (reader loop, retry connects) make progress."""
    for _ in range(rounds):
        await asyncio.sleep(0)


Drain = Callable[..., Awaitable[None]]
TransportFactory = Callable[..., FakeTransport]


@pytest.fixture
def drain() -> Drain:
    return _drain


@pytest.fixture
def transport_factory() -> TransportFactory:
    """Build a :class:`FakeTransport`, e.g. ``transport_factory(failures=2)``."""
    return FakeTransport


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(url="ws://peer.test/ws", label="Peer")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def session(config: SessionConfig, transport: FakeTransport, notifier: RecordingNotifier) -> Session:
    return Session(config, transport=transport, notifier=notifier)
