"""pysynced - Async Python client keeping local state in sync with a WebSocket peer."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysynced")
except PackageNotFoundError:
    __version__ = "0+local"
from pysynced._transport import AiohttpTransport, Connection, Frame, FrameKind, Transport
from pysynced.client import create_session
from pysynced.config import SessionConfig
from pysynced.exceptions import (
    ContractViolationError,
    FrameDecodeError,
    PatchError,
    SyncedConfigError,
    SyncedError,
    SyncedTransportError,
)
from pysynced.identity import IdentityStore
from pysynced.session import ConnectionState, PendingBinaryFrame, RetryState, Session
from pysynced.sinks import DirectoryFileSaver, FileSaver, LoggingNotifier, Notifier
from pysynced.state.patch import PatchOperation, apply_patch, make_patch, normalize_path
from pysynced.state.synced import SyncedState, TransitionResult

__all__ = [
    "__version__",
    "AiohttpTransport",
    "Connection",
    "ConnectionState",
    "ContractViolationError",
    "DirectoryFileSaver",
    "FileSaver",
    "Frame",
    "FrameDecodeError",
    "FrameKind",
    "IdentityStore",
    "LoggingNotifier",
    "Notifier",
    "PatchError",
    "PatchOperation",
    "PendingBinaryFrame",
    "RetryState",
    "Session",
    "SessionConfig",
    "SyncedConfigError",
    "SyncedError",
    "SyncedState",
    "SyncedTransportError",
    "Transport",
    "TransitionResult",
    "apply_patch",
    "create_session",
    "make_patch",
    "normalize_path",
]
