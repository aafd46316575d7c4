"""Custom exception hierarchy for chatcounter."""

from __future__ import annotations


class ChatCounterError(Exception):
    """Base exception for all chatcounter errors."""


class ChatCounterConfigError(ChatCounterError):
    """Invalid or missing configuration."""


class ChatCounterTransportError(ChatCounterError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class SnapshotUnavailableError(ChatCounterError):
    """The baseline message count could not be fetched or parsed.

    Non-fatal: the counter degrades to counting live notifications only.
    """


class SessionUnavailableError(ChatCounterError):
    """The current user could not be resolved (e.g. not authenticated)."""


class MembershipUnavailableError(ChatCounterError):
    """The set of events the user belongs to could not be fetched.

    Blocks room joining only; the counter keeps operating.
    """


class ConnectionTransientError(ChatCounterError):
    """Recoverable push connection failure.

    Handled by the automatic reconnect path and never surfaced to
    the presentation layer.
    """


class ConnectionFatalError(ChatCounterError):
    """Terminal push connection failure.

    Reported once; the connection stays down and is not retried.
    """
