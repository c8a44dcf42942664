from __future__ import annotations

import pytest

from pysynced.config import SessionConfig
from pysynced.exceptions import SyncedConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SYNCED_URL",
        "SYNCED_LABEL",
        "SYNCED_IDENTITY_PATH",
        "SYNCED_DOWNLOAD_DIR",
        "SYNCED_MIN_RETRY_INTERVAL",
        "SYNCED_MAX_RETRY_INTERVAL",
        "SYNCED_CONNECT_TIMEOUT",
        "SYNCED_HEARTBEAT",
        "SYNCED_AUTO_CONNECT",
        "SYNCED_WS_AUTH",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = SessionConfig(url="ws://localhost:8000/ws")

    assert config.label == "Server"
    assert config.min_retry_interval == 0.25
    assert config.max_retry_interval == 10.0
    assert config.auto_connect is False
    assert config.ws_auth is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"url": ""},
        {"url": "ws://x", "min_retry_interval": 0},
        {"url": "ws://x", "min_retry_interval": 2.0, "max_retry_interval": 1.0},
    ],
)
def test_invalid_values_rejected(kwargs: dict) -> None:
    with pytest.raises(SyncedConfigError):
        SessionConfig(**kwargs)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCED_URL", "wss://example.test/ws")
    monkeypatch.setenv("SYNCED_LABEL", "Example")
    monkeypatch.setenv("SYNCED_MIN_RETRY_INTERVAL", "0.5")
    monkeypatch.setenv("SYNCED_MAX_RETRY_INTERVAL", "30")
    monkeypatch.setenv("SYNCED_HEARTBEAT", "15")
    monkeypatch.setenv("SYNCED_AUTO_CONNECT", "yes")
    monkeypatch.setenv("SYNCED_WS_AUTH", "on")
    monkeypatch.setenv("SYNCED_DOWNLOAD_DIR", "/tmp/downloads")

    config = SessionConfig.from_env()

    assert config.url == "wss://example.test/ws"
    assert config.label == "Example"
    assert config.min_retry_interval == 0.5
    assert config.max_retry_interval == 30.0
    assert config.heartbeat == 15.0
    assert config.auto_connect is True
    assert config.ws_auth is True
    assert config.download_dir == "/tmp/downloads"


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCED_URL", "ws://env.test/ws")
    monkeypatch.setenv("SYNCED_MIN_RETRY_INTERVAL", "not-a-number")
    monkeypatch.setenv("SYNCED_AUTO_CONNECT", "1")

    config = SessionConfig.from_env(url="ws://override.test/ws", min_retry_interval=1.0, auto_connect=False)

    assert config.url == "ws://override.test/ws"
    assert config.min_retry_interval == 1.0
    assert config.auto_connect is False


def test_from_env_requires_url() -> None:
    with pytest.raises(SyncedConfigError):
        SessionConfig.from_env()


def test_from_env_rejects_bad_number(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCED_URL", "ws://env.test/ws")
    monkeypatch.setenv("SYNCED_CONNECT_TIMEOUT", "soon")

    with pytest.raises(SyncedConfigError):
        SessionConfig.from_env()
