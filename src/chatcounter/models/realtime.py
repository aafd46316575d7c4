"""Push connection value types.

Rooms, inbound notifications and the counter state handed to observers.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatcounter._constants import NEW_MESSAGE_EVENT


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class NotificationKind(StrEnum):
    NEW_MESSAGE = NEW_MESSAGE_EVENT
    OTHER = "other"


class RoomKey(BaseModel):
    """A joinable topic: one (user, event) pair.

    Two keys are equal iff both identifiers are equal.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    event_id: str

    @field_validator("user_id", "event_id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValueError("room identifiers must be non-empty")
        return text

    def join_payload(self) -> dict[str, str]:
        """Body of the ``joinEvent`` request for this room."""
        return {"userId": self.user_id, "eventId": self.event_id}


class Notification(BaseModel):
    """An inbound push event, in arrival order."""

    model_config = ConfigDict(frozen=True)

    kind: NotificationKind
    event_id: str | None = Field(default=None, description="Event the notification belongs to, if known")
    payload: dict[str, Any] = Field(default_factory=dict, description="Original payload (as received)")

    @classmethod
    def from_socket(cls, event_name: str, data: Any) -> Notification:
        """Build a notification from a raw Socket.IO event."""
        try:
            kind = NotificationKind(event_name)
        except ValueError:
            kind = NotificationKind.OTHER
        payload = data if isinstance(data, dict) else {}
        return cls(kind=kind, event_id=_extract_event_id(payload), payload=payload)


def _extract_event_id(payload: dict[str, Any]) -> str | None:
    for key in ("eventId", "event_id"):
        value = payload.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return str(value)
    nested = payload.get("event")
    if isinstance(nested, dict):
        value = nested.get("id")
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            return str(value)
    return None


class CounterState(BaseModel):
    """Counter view handed to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0)
    baseline_applied: bool = False
    live_only: bool = False
    degraded: bool = False
