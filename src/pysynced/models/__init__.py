"""Pydantic models for pysynced wire frames."""

from pysynced.models._base import SyncedBaseModel
from pysynced.models.frames import BinaryMeta, DownloadPayload, Envelope, UserSession

__all__ = [
    "BinaryMeta",
    "DownloadPayload",
    "Envelope",
    "SyncedBaseModel",
    "UserSession",
]
