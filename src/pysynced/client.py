"""High-level session factory."""

from __future__ import annotations

import logging
from typing import Any

from pysynced._constants import REQUEST_USER_SESSION_EVENT, USER_SESSION_EVENT
from pysynced.config import SessionConfig
from pysynced.identity import IdentityStore
from pysynced.models.frames import UserSession
from pysynced.session import Session
from pysynced.sinks import DirectoryFileSaver

_logger = logging.getLogger(__name__)


async def create_session(
    config: SessionConfig,
    *,
    identity_store: IdentityStore | None = None,
    **session_kwargs: Any,
) -> Session:
    """Build a :class:`Session` wired up according to *config*.

    * ``ws_auth``: answer ``_REQUEST_USER_SESSION`` with ``_USER_SESSION``
      carrying the durable user id and the ephemeral session id.
    * ``download_dir``: save ``_DOWNLOAD`` payloads there unless a
      ``file_saver`` is passed explicitly.
    * ``auto_connect``: connect before returning.

    Usage::

        session = await create_session(SessionConfig.from_env())
        async with session:
            ...
    """
    if config.download_dir is not None and session_kwargs.get("file_saver") is None:
        session_kwargs["file_saver"] = DirectoryFileSaver(config.download_dir)

    session = Session(config, **session_kwargs)

    if config.ws_auth:
        store = identity_store or IdentityStore(config.identity_path)

        async def reply_user_session(_data: Any) -> None:
            reply = UserSession(user=store.user_id, session=store.session_id)
            _logger.debug("Answering identity request from %s", session.label)
            await session.send(USER_SESSION_EVENT, reply.model_dump())

        session.register_event(REQUEST_USER_SESSION_EVENT, reply_user_session)

    if config.auto_connect:
        await session.connect()

    return session
