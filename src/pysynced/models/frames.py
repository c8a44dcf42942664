"""Wire frame envelopes."""

from __future__ import annotations

from typing import Any

from pydantic import Base64Bytes, Field

from pysynced.models._base import SyncedBaseModel


class Envelope(SyncedBaseModel):
    """Every text frame: ``{"type": ..., "data": ...}``."""

    type: str = Field(..., min_length=1)
    data: Any = None

    def to_json(self) -> str:
        return self.model_dump_json()


class BinaryMeta(SyncedBaseModel):
    """``_BIN_META`` payload announcing the next binary frame."""

    type: str = Field(..., min_length=1, description="Event type the binary frame is routed to")
    metadata: Any = None


class DownloadPayload(SyncedBaseModel):
    """``_DOWNLOAD`` payload: a file pushed by the server."""

    filename: str = Field(..., min_length=1)
    data: Base64Bytes


class UserSession(SyncedBaseModel):
    """``_USER_SESSION`` reply to the server's identity request."""

    user: str
    session: str
