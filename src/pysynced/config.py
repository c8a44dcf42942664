"""Session configuration for pysynced."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pysynced._constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_LABEL,
    DEFAULT_MAX_RETRY_INTERVAL,
    DEFAULT_MIN_RETRY_INTERVAL,
)
from pysynced.exceptions import SyncedConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class SessionConfig:
    """Connection configuration.

    Parameters
    ----------
    url : str
        WebSocket URL of the remote authority (``ws://`` or ``wss://``).
    label : str
        Human-readable name of the peer used in notifications.
    min_retry_interval : float
        First reconnect delay in seconds, and the value the delay resets
        to after every successful connect.
    max_retry_interval : float
        Upper bound in seconds for the doubling reconnect delay.
    connect_timeout : float
        Seconds to wait for the WebSocket handshake.
    heartbeat : float or None
        Ping interval in seconds handed to aiohttp, ``None`` disables it.
    auto_connect : bool
        Connect immediately from :func:`pysynced.client.create_session`.
    ws_auth : bool
        Answer ``_REQUEST_USER_SESSION`` with the stored user/session ids.
    identity_path : str or None
        JSON file holding the durable user id. In-memory when unset.
    download_dir : str or None
        Directory where ``_DOWNLOAD`` payloads are written.
    """

    url: str
    label: str = DEFAULT_LABEL
    min_retry_interval: float = DEFAULT_MIN_RETRY_INTERVAL
    max_retry_interval: float = DEFAULT_MAX_RETRY_INTERVAL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    heartbeat: float | None = None
    auto_connect: bool = False
    ws_auth: bool = False
    identity_path: str | None = None
    download_dir: str | None = None

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise SyncedConfigError("url must be non-empty")
        if self.min_retry_interval <= 0:
            raise SyncedConfigError(f"min_retry_interval must be positive, got {self.min_retry_interval}")
        if self.max_retry_interval < self.min_retry_interval:
            raise SyncedConfigError(
                f"max_retry_interval ({self.max_retry_interval}) must be >= "
                f"min_retry_interval ({self.min_retry_interval})"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> SessionConfig:
        """Create configuration from environment variables.

        Reads ``SYNCED_URL`` and optional ``SYNCED_*`` variables. Explicit
        keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SessionConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "SYNCED_URL": "url",
            "SYNCED_LABEL": "label",
            "SYNCED_IDENTITY_PATH": "identity_path",
            "SYNCED_DOWNLOAD_DIR": "download_dir",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "SYNCED_MIN_RETRY_INTERVAL": "min_retry_interval",
            "SYNCED_MAX_RETRY_INTERVAL": "max_retry_interval",
            "SYNCED_CONNECT_TIMEOUT": "connect_timeout",
            "SYNCED_HEARTBEAT": "heartbeat",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise SyncedConfigError(f"{env_key} must be a number, got {val!r}") from exc

        if "auto_connect" not in overrides:
            config_kwargs["auto_connect"] = _env_bool(env.get("SYNCED_AUTO_CONNECT"), False)

        if "ws_auth" not in overrides:
            config_kwargs["ws_auth"] = _env_bool(env.get("SYNCED_WS_AUTH"), False)

        config_kwargs.update(overrides)

        if "url" not in config_kwargs:
            raise SyncedConfigError("SYNCED_URL is not set and no url override was given")

        return cls(**config_kwargs)
