"""Custom exception hierarchy for pysynced."""

from __future__ import annotations


class SyncedError(Exception):
    """Base exception for all pysynced errors."""


class SyncedConfigError(SyncedError):
    """Invalid or missing configuration."""


class ContractViolationError(SyncedError):
    """A registry contract was broken (duplicate or missing registration).

    Raised synchronously from the register/deregister call; the existing
    handler is left in place.
    """

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class SyncedTransportError(SyncedError):
    """WebSocket-level failure (connect refused, handshake rejected, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
    ) -> None:
        self.url = url
        super().__init__(message)


class FrameDecodeError(SyncedError):
    """Inbound text frame is not a valid ``{type, data}`` envelope."""


class PatchError(SyncedError):
    """A patch operation could not be applied to the document."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)
