"""Client configuration for bookingsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from bookingsync._constants import REALTIME_PATH
from bookingsync.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(value: str | None, name: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Gateway base URL. REST lives under ``/rest/v1``, identity admin
        records under ``/auth/v1/admin/users``.
    api_key : str
        Project API key, sent as ``apikey`` header and as the default
        bearer token.
    access_token : str or None
        Bearer token of the signed-in user. Falls back to ``api_key``.
    realtime_url : str or None
        Websocket endpoint for change notifications. Derived from
        ``base_url`` when unset.
    schema : str
        Database schema the relations live in.
    request_timeout : float
        Total timeout in seconds for a single REST request.
    realtime_enabled : bool
        Open push channels. When disabled, domains still perform their
        initial fetch and can be refetched manually.
    realtime_heartbeat : float
        Seconds between websocket heartbeats.
    realtime_join_timeout : float
        Seconds to wait for a channel join acknowledgement.
    realtime_reconnect_delay : float
        Seconds before the first reconnect attempt after the websocket
        drops. Doubles on each failed attempt.
    realtime_reconnect_max_delay : float
        Upper bound on the reconnect backoff.
    """

    base_url: str
    api_key: str
    access_token: str | None = None
    realtime_url: str | None = None
    schema: str = "public"
    request_timeout: float = 10.0
    realtime_enabled: bool = True
    realtime_heartbeat: float = 25.0
    realtime_join_timeout: float = 10.0
    realtime_reconnect_delay: float = 1.0
    realtime_reconnect_max_delay: float = 30.0

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise ConfigError("base_url must be non-empty")
        if not self.api_key.strip():
            raise ConfigError("api_key must be non-empty")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def bearer_token(self) -> str:
        return self.access_token or self.api_key

    @property
    def websocket_url(self) -> str:
        """Realtime websocket URL, derived from ``base_url`` when not configured."""
        if self.realtime_url:
            return self.realtime_url
        if self.base_url.startswith("https://"):
            return "wss://" + self.base_url.removeprefix("https://") + REALTIME_PATH
        if self.base_url.startswith("http://"):
            return "ws://" + self.base_url.removeprefix("http://") + REALTIME_PATH
        return self.base_url + REALTIME_PATH

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads ``BOOKINGSYNC_BASE_URL``, ``BOOKINGSYNC_API_KEY`` and the
        optional ``BOOKINGSYNC_*`` variables. Explicit keyword arguments
        override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "BOOKINGSYNC_BASE_URL": "base_url",
            "BOOKINGSYNC_API_KEY": "api_key",
            "BOOKINGSYNC_ACCESS_TOKEN": "access_token",
            "BOOKINGSYNC_REALTIME_URL": "realtime_url",
            "BOOKINGSYNC_SCHEMA": "schema",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric fields, handled separately
        for env_key, field_name in (
            ("BOOKINGSYNC_REQUEST_TIMEOUT", "request_timeout"),
            ("BOOKINGSYNC_REALTIME_HEARTBEAT", "realtime_heartbeat"),
            ("BOOKINGSYNC_REALTIME_RECONNECT_DELAY", "realtime_reconnect_delay"),
        ):
            parsed = _env_float(env.get(env_key), env_key)
            if parsed is not None and field_name not in overrides:
                config_kwargs[field_name] = parsed

        if "realtime_enabled" not in overrides:
            config_kwargs["realtime_enabled"] = _env_bool(env.get("BOOKINGSYNC_REALTIME_ENABLED"), True)

        config_kwargs.update(overrides)

        for required in ("base_url", "api_key"):
            if not config_kwargs.get(required):
                raise ConfigError(f"Missing required setting {required!r} (env BOOKINGSYNC_{required.upper()})")

        return cls(**config_kwargs)
