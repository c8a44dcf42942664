"""Durable user id and ephemeral session id for the identity handshake."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path

_logger = logging.getLogger(__name__)


class IdentityStore:
    """Hands out the ids sent in reply to ``_REQUEST_USER_SESSION``.

    The user id survives restarts when *path* is given (a small JSON file);
    the session id lives as long as this store instance. Both are generated
    on first use.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._user_id: str | None = None
        self._session_id: str | None = None

    def _load_user_id(self) -> str | None:
        if self._path is None or not self._path.exists():
            return None
        try:
            stored = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            _logger.warning("Identity file %s unreadable, generating a new user id", self._path, exc_info=True)
            return None
        value = stored.get("user_id") if isinstance(stored, dict) else None
        return value if isinstance(value, str) and value else None

    def _save_user_id(self, user_id: str) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"user_id": user_id}), encoding="utf-8")

    @property
    def user_id(self) -> str:
        if self._user_id is None:
            user_id = self._load_user_id()
            if user_id is None:
                user_id = str(uuid.uuid4())
                self._save_user_id(user_id)
                _logger.info("Generated new user id %s...", user_id[:8])
            self._user_id = user_id
        return self._user_id

    @property
    def session_id(self) -> str:
        if self._session_id is None:
            self._session_id = str(uuid.uuid4())
            _logger.info("Generated new session id %s...", self._session_id[:8])
        return self._session_id
