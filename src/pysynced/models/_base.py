"""Base model for wire frames.

Every frame model inherits from :class:`SyncedBaseModel` which is frozen,
ignores unknown keys sent by newer peers, and exposes
:meth:`SyncedBaseModel.parse` that converts pydantic validation failures
into :class:`~pysynced.exceptions.FrameDecodeError`.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, ValidationError

from pysynced.exceptions import FrameDecodeError


class SyncedBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def parse(cls, value: Any) -> Self:
        """Validate a decoded JSON value, raising :class:`FrameDecodeError`."""
        try:
            return cls.model_validate(value)
        except ValidationError as exc:
            raise FrameDecodeError(f"Invalid {cls.__name__}: {exc.error_count()} error(s)") from exc

    @classmethod
    def parse_json(cls, text: str | bytes) -> Self:
        """Validate a raw JSON document, raising :class:`FrameDecodeError`."""
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise FrameDecodeError(f"Invalid {cls.__name__}: {exc.error_count()} error(s)") from exc
