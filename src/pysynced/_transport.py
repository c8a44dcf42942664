"""WebSocket transport over aiohttp."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pysynced.exceptions import SyncedTransportError

_logger = logging.getLogger(__name__)


class FrameKind(enum.StrEnum):
    TEXT = "text"
    BINARY = "binary"
    ERROR = "error"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Frame:
    """One inbound transport event.

    ``data`` is the text for ``TEXT``, the payload for ``BINARY``, the
    exception (if any) for ``ERROR`` and ``None`` for ``CLOSED``.
    """

    kind: FrameKind
    data: Any = None


class Connection(Protocol):
    """One open connection. Ordered and reliable only within its lifetime."""

    async def send_text(self, data: str) -> None:
        ...

    async def send_binary(self, data: bytes) -> None:
        ...

    async def receive(self) -> Frame:
        ...

    async def close(self) -> None:
        ...


class Transport(Protocol):
    """Opens connections for :class:`pysynced.session.Session`.

    ``open`` raises :class:`~pysynced.exceptions.SyncedTransportError` when
    the peer cannot be reached. :class:`AiohttpTransport` is the default.
    """

    async def open(self, url: str) -> Connection:
        ...

    async def close(self) -> None:
        ...


class AiohttpConnection:
    """Adapts :class:`aiohttp.ClientWebSocketResponse` to :class:`Connection`."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    async def send_text(self, data: str) -> None:
        await self._ws.send_str(data)

    async def send_binary(self, data: bytes) -> None:
        await self._ws.send_bytes(data)

    async def receive(self) -> Frame:
        msg = await self._ws.receive()
        if msg.type == aiohttp.WSMsgType.TEXT:
            return Frame(FrameKind.TEXT, msg.data)
        if msg.type == aiohttp.WSMsgType.BINARY:
            return Frame(FrameKind.BINARY, msg.data)
        if msg.type == aiohttp.WSMsgType.ERROR:
            return Frame(FrameKind.ERROR, self._ws.exception())
        # CLOSE, CLOSING and CLOSED all end this connection.
        return Frame(FrameKind.CLOSED)

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()


class AiohttpTransport:
    """Opens WebSocket connections through an :class:`aiohttp.ClientSession`.

    The HTTP session is created lazily on the first :meth:`open` unless one is
    passed in; an external session is never closed by this transport.
    """

    def __init__(
        self,
        *,
        http_session: aiohttp.ClientSession | None = None,
        connect_timeout: float = 10.0,
        heartbeat: float | None = None,
    ) -> None:
        self._external_session = http_session is not None
        self._http = http_session
        self._connect_timeout = connect_timeout
        self._heartbeat = heartbeat

    async def open(self, url: str) -> AiohttpConnection:
        if self._http is None:
            self._http = aiohttp.ClientSession()

        _logger.debug("WS CONNECT %s", url)
        try:
            async with asyncio.timeout(self._connect_timeout):
                ws = await self._http.ws_connect(url, heartbeat=self._heartbeat)
        except aiohttp.WSServerHandshakeError as exc:
            raise SyncedTransportError(
                f"Handshake with {url} rejected: HTTP {exc.status}",
                url=url,
            ) from exc
        except TimeoutError as exc:
            raise SyncedTransportError(f"Connection to {url} timed out", url=url) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise SyncedTransportError(f"Connection to {url} failed: {exc}", url=url) from exc
        return AiohttpConnection(ws)

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None
