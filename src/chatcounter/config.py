"""Client configuration for chatcounter."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from chatcounter._constants import API_URL
from chatcounter.exceptions import ChatCounterConfigError

COUNT_SCOPES: frozenset[str] = frozenset({"all", "user"})
MEMBERSHIP_SCOPES: frozenset[str] = frozenset({"all", "mine"})


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
class ChatCounterConfig:
    """Client configuration.

    Parameters
    ----------
    api_url : str
        Base URL of the REST backend (snapshot, session and membership).
    socket_url : str or None
        URL of the Socket.IO push service. Defaults to ``api_url``.
    socket_path : str
        Socket.IO endpoint path on the push service.
    access_token : str or None
        Bearer token for the REST backend. Also sent as Socket.IO
        ``auth={"token": ...}``.
    count_scope : str
        ``"all"`` counts every chat message known to the backend,
        ``"user"`` asks for the signed-in user's messages only.
    membership_scope : str
        ``"all"`` reads ``/events``; ``"mine"`` reads ``/users/me/events``.
    request_timeout : float
        Total timeout in seconds for one REST call.
    reconnection : bool
        Let the Socket.IO client reconnect after unplanned disconnects.
    reconnection_attempts : int
        Reconnect attempts before giving up. ``0`` retries forever.
    reconnection_delay : float
        First reconnect delay in seconds.
    reconnection_delay_max : float
        Upper bound of the reconnect backoff in seconds.
    randomization_factor : float
        Jitter applied to reconnect delays.
    websocket_only : bool
        Skip HTTP long-polling and use the websocket transport directly.
    """

    api_url: str = API_URL
    socket_url: str | None = None
    socket_path: str = "socket.io"
    access_token: str | None = None
    count_scope: str = "all"
    membership_scope: str = "all"
    request_timeout: float = 15.0
    reconnection: bool = True
    reconnection_attempts: int = 0
    reconnection_delay: float = 1.0
    reconnection_delay_max: float = 5.0
    randomization_factor: float = 0.5
    websocket_only: bool = True

    def __post_init__(self) -> None:
        if not self.api_url.strip():
            raise ChatCounterConfigError("api_url must be non-empty")
        if self.count_scope not in COUNT_SCOPES:
            raise ChatCounterConfigError(
                f"count_scope must be one of {sorted(COUNT_SCOPES)}, got {self.count_scope!r}"
            )
        if self.membership_scope not in MEMBERSHIP_SCOPES:
            raise ChatCounterConfigError(
                f"membership_scope must be one of {sorted(MEMBERSHIP_SCOPES)}, got {self.membership_scope!r}"
            )
        if self.reconnection_attempts < 0:
            raise ChatCounterConfigError("reconnection_attempts must be >= 0")

    @property
    def resolved_socket_url(self) -> str:
        """Push service URL, falling back to the REST base URL."""
        return (self.socket_url or self.api_url).rstrip("/")

    @property
    def resolved_api_url(self) -> str:
        return self.api_url.rstrip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> ChatCounterConfig:
        """Create configuration from environment variables.

        Reads ``CHATCOUNTER_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ChatCounterConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "CHATCOUNTER_API_URL": "api_url",
            "CHATCOUNTER_SOCKET_URL": "socket_url",
            "CHATCOUNTER_SOCKET_PATH": "socket_path",
            "CHATCOUNTER_ACCESS_TOKEN": "access_token",
            "CHATCOUNTER_COUNT_SCOPE": "count_scope",
            "CHATCOUNTER_MEMBERSHIP_SCOPE": "membership_scope",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "CHATCOUNTER_REQUEST_TIMEOUT": "request_timeout",
            "CHATCOUNTER_RECONNECTION_DELAY": "reconnection_delay",
            "CHATCOUNTER_RECONNECTION_DELAY_MAX": "reconnection_delay_max",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise ChatCounterConfigError(f"{env_key} must be a number, got {val!r}") from exc

        attempts_env = env.get("CHATCOUNTER_RECONNECTION_ATTEMPTS")
        if attempts_env is not None and "reconnection_attempts" not in overrides:
            try:
                config_kwargs["reconnection_attempts"] = int(attempts_env)
            except ValueError as exc:
                raise ChatCounterConfigError(
                    f"CHATCOUNTER_RECONNECTION_ATTEMPTS must be an integer, got {attempts_env!r}"
                ) from exc

        if "reconnection" not in overrides:
            config_kwargs["reconnection"] = _env_bool(env.get("CHATCOUNTER_RECONNECTION"), True)

        if "websocket_only" not in overrides:
            config_kwargs["websocket_only"] = _env_bool(env.get("CHATCOUNTER_WEBSOCKET_ONLY"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
