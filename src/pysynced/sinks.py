"""Notification and file-save collaborators used by :class:`Session`.

Neither affects control flow: the session reports connection feedback to a
:class:`Notifier` and hands ``_DOWNLOAD`` payloads to a :class:`FileSaver`,
and carries on regardless of what they do.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

_logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Human-visible feedback sink (toasts, status bar, log)."""

    def info(self, message: str, **options: Any) -> None:
        ...

    def success(self, message: str, **options: Any) -> None:
        ...

    def warning(self, message: str, **options: Any) -> None:
        ...

    def error(self, message: str, **options: Any) -> None:
        ...

    def loading(self, message: str, **options: Any) -> None:
        ...


class FileSaver(Protocol):
    def __call__(self, blob: bytes, filename: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes every message to a logger.

    ``loading`` messages with ``persistent=True`` are logged at WARNING since
    they announce a state the user has to act on.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger

    def info(self, message: str, **options: Any) -> None:
        self._logger.info(message)

    def success(self, message: str, **options: Any) -> None:
        self._logger.info(message)

    def warning(self, message: str, **options: Any) -> None:
        self._logger.warning(message)

    def error(self, message: str, **options: Any) -> None:
        self._logger.error(message)

    def loading(self, message: str, **options: Any) -> None:
        level = logging.WARNING if options.get("persistent") else logging.INFO
        self._logger.log(level, message)


class DirectoryFileSaver:
    """Writes downloaded files into one directory.

    Only the final path component of the server-supplied filename is used, so
    a peer cannot write outside *directory*.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def __call__(self, blob: bytes, filename: str) -> None:
        name = Path(filename.replace("\\", "/")).name
        if not name or name in {".", ".."}:
            raise ValueError(f"Refusing to save download with filename {filename!r}")
        self._directory.mkdir(parents=True, exist_ok=True)
        target = self._directory / name
        target.write_bytes(blob)
        _logger.info("Saved download %s (%d bytes)", target, len(blob))
