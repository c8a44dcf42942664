"""Connection manager: transport lifecycle, reconnect backoff and frame dispatch."""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pysynced._constants import BINARY_META_EVENT, DISCONNECT_EVENT, DOWNLOAD_EVENT
from pysynced._redact import redact_for_log
from pysynced._registry import BinaryHandler, EventHandler, EventRegistry, InitHandler
from pysynced._transport import AiohttpTransport, Connection, Frame, FrameKind, Transport
from pysynced.config import SessionConfig
from pysynced.exceptions import FrameDecodeError, SyncedTransportError
from pysynced.models.frames import BinaryMeta, DownloadPayload, Envelope
from pysynced.sinks import FileSaver, Notifier

_logger = logging.getLogger(__name__)


class ConnectionState(enum.StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass
class RetryState:
    """Exponential reconnect backoff bounded by ``[min_interval, max_interval]``."""

    min_interval: float
    max_interval: float
    current_interval: float = field(init=False)
    pending_timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.current_interval = self.min_interval

    def reset(self) -> None:
        self.current_interval = self.min_interval

    def next_delay(self) -> float:
        """Return the delay to wait now and double the next one (capped)."""
        delay = self.current_interval
        self.current_interval = min(self.current_interval * 2, self.max_interval)
        return delay

    def cancel_timer(self) -> bool:
        timer = self.pending_timer
        self.pending_timer = None
        if timer is None:
            return False
        timer.cancel()
        return True


@dataclass(frozen=True, slots=True)
class PendingBinaryFrame:
    """Metadata announced by ``_BIN_META``, waiting for its binary payload."""

    target_event_type: str
    metadata: Any = None

    def merge(self, payload: bytes) -> dict[str, Any]:
        """Build the handler argument ``{"data": payload, **metadata}``."""
        if self.metadata is None:
            return {"data": payload}
        if isinstance(self.metadata, Mapping):
            return {"data": payload, **self.metadata}
        return {"data": payload, "metadata": self.metadata}


async def _invoke(handler: Callable[..., Any], *args: Any) -> None:
    result = handler(*args)
    if inspect.isawaitable(result):
        await result


class Session:
    """One persistent connection to a remote authority.

    Usage::

        async with Session(SessionConfig(url="ws://localhost:8000/ws")) as session:
            session.register_event("greeting", print)
            await session.connect()
            await session.send("hello", {"name": "world"})

    Sends are never buffered: while not connected they are reported to the
    notifier and dropped. Unexpected closes are retried with exponential
    backoff until :meth:`disconnect` is called.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        transport: Transport | None = None,
        notifier: Notifier | None = None,
        file_saver: FileSaver | None = None,
        on_connection_change: Callable[[bool], None] | None = None,
    ) -> None:
        self._config = config
        self._owns_transport = transport is None
        self._transport: Transport = transport or AiohttpTransport(
            connect_timeout=config.connect_timeout,
            heartbeat=config.heartbeat,
        )
        self._notifier = notifier
        self._file_saver = file_saver
        self._on_connection_change = on_connection_change
        self._registry = EventRegistry()
        self._state = ConnectionState.DISCONNECTED
        self._connection: Connection | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._retry = RetryState(config.min_retry_interval, config.max_retry_interval)
        self._auto_reconnect = True
        self._pending_binary: PendingBinaryFrame | None = None
        # Bumped by every connect()/disconnect() so a stale handshake can tell it lost the race.
        self._generation = 0

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Disconnect and release the transport if this session created it."""
        await self.disconnect()
        task = self._connect_task
        self._connect_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        if self._owns_transport:
            await self._transport.close()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def label(self) -> str:
        return self._config.label

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def retry_state(self) -> RetryState:
        return self._retry

    @property
    def registry(self) -> EventRegistry:
        return self._registry

    @property
    def pending_binary(self) -> PendingBinaryFrame | None:
        return self._pending_binary

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_event(self, event: str, handler: EventHandler) -> None:
        self._registry.register_event(event, handler)

    def deregister_event(self, event: str) -> None:
        self._registry.deregister_event(event)

    def register_init(self, key: str, handler: InitHandler) -> None:
        """Run *handler* every time the transport becomes ready."""
        self._registry.register_init(key, handler)

    def deregister_init(self, key: str) -> None:
        self._registry.deregister_init(key)

    def register_binary_handler(self, handler: BinaryHandler) -> None:
        """Catch-all for binary frames that were not announced by ``_BIN_META``."""
        self._registry.register_binary(handler)

    def deregister_binary_handler(self) -> None:
        self._registry.deregister_binary()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport. No-op while already connecting or connected."""
        if self._state is not ConnectionState.DISCONNECTED:
            _logger.debug("connect() ignored, session is %s", self._state)
            return

        self._auto_reconnect = True
        self._retry.cancel_timer()
        self._generation += 1
        generation = self._generation
        self._state = ConnectionState.CONNECTING
        self._notify("info", f"Connecting to {self.label}...")

        try:
            connection = await self._transport.open(self.url)
        except SyncedTransportError as exc:
            _logger.info("Connecting to %s failed: %s", self.label, exc)
            if generation == self._generation:
                self._handle_close()
            return

        if generation != self._generation:
            # disconnect() ran while the handshake was in flight.
            _logger.debug("Discarding connection to %s opened after disconnect", self.label)
            await connection.close()
            return

        self._connection = connection
        self._state = ConnectionState.CONNECTED
        self._retry.reset()
        _logger.info("Connected to %s at %s", self.label, self.url)
        self._notify("success", f"Connected to {self.label}!")
        self._notify_connection_change(True)
        self._reader_task = asyncio.create_task(self._read_loop(connection), name=f"pysynced-reader-{self.label}")

        for handler in self._registry.init_handlers():
            try:
                await _invoke(handler)
            except Exception:
                _logger.exception("Init handler failed")

    async def disconnect(self) -> None:
        """Close deliberately and stop reconnecting until :meth:`connect` is called."""
        self._auto_reconnect = False
        self._generation += 1
        if self._retry.cancel_timer():
            _logger.debug("Cancelled pending reconnect to %s", self.label)

        connection = self._connection
        reader = self._reader_task
        self._connection = None
        self._reader_task = None
        self._pending_binary = None
        was_active = self._state is not ConnectionState.DISCONNECTED
        self._state = ConnectionState.DISCONNECTED

        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
        if connection is not None:
            try:
                await connection.close()
            except (ConnectionError, OSError):
                _logger.debug("Error while closing connection to %s", self.label, exc_info=True)
        if was_active:
            _logger.info("Disconnected from %s", self.label)
        self._notify_connection_change(False)

    def _handle_close(self) -> None:
        """Transport closed (or never opened) without a deliberate disconnect."""
        self._connection = None
        self._reader_task = None
        self._pending_binary = None
        self._state = ConnectionState.DISCONNECTED
        self._notify_connection_change(False)

        if not self._auto_reconnect:
            self._notify("warning", f"Disconnected from {self.label}!")
            return

        delay = self._retry.next_delay()
        _logger.info("Lost connection to %s, retrying in %.2fs", self.label, delay)
        self._notify("warning", f"Disconnected from {self.label}: Retrying in {delay:g} seconds...")
        loop = asyncio.get_running_loop()
        self._retry.pending_timer = loop.call_later(delay, self._on_retry_timer)

    def _on_retry_timer(self) -> None:
        self._retry.pending_timer = None
        # Skip if a manual connect() won the race or we were shut down meanwhile.
        if not self._auto_reconnect or self._state is not ConnectionState.DISCONNECTED:
            return
        self._connect_task = asyncio.create_task(self.connect())

    async def _read_loop(self, connection: Connection) -> None:
        while True:
            try:
                frame = await connection.receive()
            except (ConnectionError, OSError) as exc:
                frame = Frame(FrameKind.ERROR, exc)

            if frame.kind is FrameKind.CLOSED:
                break
            if frame.kind is FrameKind.ERROR:
                _logger.error("Socket to %s encountered error: %s. Closing socket", self.label, frame.data)
                self._notify("error", f"{self.label}: Socket Error: {frame.data}")
                try:
                    await connection.close()
                except (ConnectionError, OSError):
                    _logger.debug("Error while force-closing socket", exc_info=True)
                break

            try:
                await self.handle_receive_event(frame.data)
            except Exception:
                _logger.exception("Failed to handle %s frame from %s", frame.kind, self.label)
            if connection is not self._connection:
                # A handler (or _DISCONNECT) tore this connection down.
                return

        if connection is self._connection:
            self._handle_close()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _require_connection(self) -> Connection | None:
        connection = self._connection
        if self._state is not ConnectionState.CONNECTED or connection is None:
            self._notify("error", f"{self.label}: Sending while not connected!")
            return None
        return connection

    async def _write(self, connection: Connection, data: str | bytes) -> bool:
        try:
            if isinstance(data, str):
                await connection.send_text(data)
            else:
                await connection.send_binary(data)
        except (ConnectionError, OSError) as exc:
            _logger.warning("Write to %s failed: %s", self.label, exc)
            self._notify("error", f"{self.label}: Sending failed: {exc}")
            return False
        return True

    async def send(self, event_type: str, payload: Any) -> None:
        """Send one ``{type, data}`` text frame, or drop it when not connected."""
        connection = self._require_connection()
        if connection is None:
            _logger.debug("Dropped %s while disconnected", event_type)
            return
        _logger.debug("SEND %s %s", event_type, redact_for_log(payload))
        await self._write(connection, Envelope(type=event_type, data=payload).to_json())

    async def send_binary(self, event_type: str, metadata: Any, data: bytes) -> None:
        """Send a ``_BIN_META`` frame followed by one raw binary frame."""
        connection = self._require_connection()
        if connection is None:
            _logger.debug("Dropped binary %s while disconnected", event_type)
            return
        meta = Envelope(type=BINARY_META_EVENT, data={"type": event_type, "metadata": metadata})
        _logger.debug("SEND binary %s (%d bytes) %s", event_type, len(data), redact_for_log(metadata))
        if await self._write(connection, meta.to_json()):
            await self._write(connection, bytes(data))

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_receive_event(self, data: str | bytes | bytearray) -> None:
        """Dispatch one inbound frame (text envelope or binary payload)."""
        if isinstance(data, str):
            await self._handle_text(data)
        else:
            await self._handle_binary(bytes(data))

    async def _handle_text(self, text: str) -> None:
        try:
            envelope = Envelope.parse_json(text)
        except FrameDecodeError as exc:
            _logger.warning("Dropping malformed frame from %s: %s", self.label, exc)
            return

        event_type = envelope.type
        _logger.debug("RECV %s %s", event_type, redact_for_log(envelope.data))

        if event_type == DISCONNECT_EVENT:
            await self.disconnect()
            self._notify("loading", f"{self.label}: {envelope.data}", persistent=True)
            return
        if event_type == DOWNLOAD_EVENT:
            self._handle_download(envelope.data)
            return
        if event_type == BINARY_META_EVENT:
            self._handle_binary_meta(envelope.data)
            return

        handler = self._registry.get_event(event_type)
        if handler is None:
            _logger.warning("Unhandled event: %s", event_type)
            return
        await _invoke(handler, envelope.data)

    def _handle_download(self, data: Any) -> None:
        try:
            payload = DownloadPayload.parse(data)
        except FrameDecodeError as exc:
            _logger.warning("Dropping malformed download frame: %s", exc)
            return
        if self._file_saver is None:
            _logger.warning("No file saver configured, dropping download %s", payload.filename)
            return
        try:
            self._file_saver(payload.data, payload.filename)
        except (OSError, ValueError) as exc:
            _logger.error("Saving download %s failed: %s", payload.filename, exc)
            self._notify("error", f"{self.label}: Download of {payload.filename} failed")

    def _handle_binary_meta(self, data: Any) -> None:
        try:
            meta = BinaryMeta.parse(data)
        except FrameDecodeError as exc:
            _logger.warning("Dropping malformed binary metadata: %s", exc)
            return
        if self._pending_binary is not None:
            _logger.warning(
                "Overwriting bytes metadata for %s with %s",
                self._pending_binary.target_event_type,
                meta.type,
            )
        self._pending_binary = PendingBinaryFrame(meta.type, meta.metadata)

    async def _handle_binary(self, payload: bytes) -> None:
        pending = self._pending_binary
        if pending is not None:
            self._pending_binary = None
            handler = self._registry.get_event(pending.target_event_type)
            if handler is None:
                _logger.warning("No handler for binary event: %s", pending.target_event_type)
                return
            await _invoke(handler, pending.merge(payload))
            return

        binary_handler = self._registry.binary_handler
        if binary_handler is not None:
            await _invoke(binary_handler, payload)
            return
        _logger.warning("Unhandled binary message (%d bytes)", len(payload))

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def _notify(self, level: str, message: str, **options: Any) -> None:
        if self._notifier is None:
            return
        getattr(self._notifier, level)(message, **options)

    def _notify_connection_change(self, connected: bool) -> None:
        if self._on_connection_change is not None:
            self._on_connection_change(connected)
