"""Data models for backend API responses and push events."""

from chatcounter.models._base import ApiBaseModel
from chatcounter.models.chat import MessageCount
from chatcounter.models.event import ChatEvent
from chatcounter.models.realtime import ConnectionState, CounterState, Notification, NotificationKind, RoomKey
from chatcounter.models.user import User

__all__ = [
    "ApiBaseModel",
    "ChatEvent",
    "ConnectionState",
    "CounterState",
    "MessageCount",
    "Notification",
    "NotificationKind",
    "RoomKey",
    "User",
]
