from __future__ import annotations

import pytest

from bookingsync.config import SyncConfig
from bookingsync.exceptions import ConfigError

_ENV_KEYS = (
    "BOOKINGSYNC_BASE_URL",
    "BOOKINGSYNC_API_KEY",
    "BOOKINGSYNC_ACCESS_TOKEN",
    "BOOKINGSYNC_REALTIME_URL",
    "BOOKINGSYNC_SCHEMA",
    "BOOKINGSYNC_REQUEST_TIMEOUT",
    "BOOKINGSYNC_REALTIME_ENABLED",
    "BOOKINGSYNC_REALTIME_HEARTBEAT",
    "BOOKINGSYNC_REALTIME_RECONNECT_DELAY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_and_trailing_slash() -> None:
    config = SyncConfig(base_url="https://abc.example.co/", api_key="anon")

    assert config.base_url == "https://abc.example.co"
    assert config.schema == "public"
    assert config.bearer_token == "anon"
    assert config.websocket_url == "wss://abc.example.co/realtime/v1/websocket"


def test_access_token_overrides_bearer() -> None:
    config = SyncConfig(base_url="http://localhost:54321", api_key="anon", access_token="jwt")

    assert config.bearer_token == "jwt"
    assert config.websocket_url == "ws://localhost:54321/realtime/v1/websocket"


def test_explicit_realtime_url_wins() -> None:
    config = SyncConfig(base_url="https://abc.example.co", api_key="anon", realtime_url="wss://rt.example.co/ws")

    assert config.websocket_url == "wss://rt.example.co/ws"


@pytest.mark.parametrize(("base_url", "api_key"), [("", "anon"), ("https://x", "  ")])
def test_required_fields_validated(base_url: str, api_key: str) -> None:
    with pytest.raises(ConfigError):
        SyncConfig(base_url=base_url, api_key=api_key)


def test_from_env_reads_all_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOKINGSYNC_BASE_URL", "https://env.example.co")
    monkeypatch.setenv("BOOKINGSYNC_API_KEY", "env-key")
    monkeypatch.setenv("BOOKINGSYNC_SCHEMA", "bookings")
    monkeypatch.setenv("BOOKINGSYNC_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("BOOKINGSYNC_REALTIME_ENABLED", "off")
    monkeypatch.setenv("BOOKINGSYNC_REALTIME_HEARTBEAT", "5")
    monkeypatch.setenv("BOOKINGSYNC_REALTIME_RECONNECT_DELAY", "0.5")

    config = SyncConfig.from_env()

    assert config.base_url == "https://env.example.co"
    assert config.api_key == "env-key"
    assert config.schema == "bookings"
    assert config.request_timeout == 2.5
    assert config.realtime_enabled is False
    assert config.realtime_heartbeat == 5.0
    assert config.realtime_reconnect_delay == 0.5


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOKINGSYNC_BASE_URL", "https://env.example.co")
    monkeypatch.setenv("BOOKINGSYNC_API_KEY", "env-key")
    monkeypatch.setenv("BOOKINGSYNC_REQUEST_TIMEOUT", "2.5")

    config = SyncConfig.from_env(api_key="explicit", request_timeout=1.0, realtime_enabled=True)

    assert config.api_key == "explicit"
    assert config.request_timeout == 1.0
    assert config.realtime_enabled is True


def test_from_env_missing_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOKINGSYNC_API_KEY", "env-key")

    with pytest.raises(ConfigError, match="base_url"):
        SyncConfig.from_env()


def test_from_env_rejects_non_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOKINGSYNC_BASE_URL", "https://env.example.co")
    monkeypatch.setenv("BOOKINGSYNC_API_KEY", "env-key")
    monkeypatch.setenv("BOOKINGSYNC_REQUEST_TIMEOUT", "soon")

    with pytest.raises(ConfigError, match="BOOKINGSYNC_REQUEST_TIMEOUT"):
        SyncConfig.from_env()
