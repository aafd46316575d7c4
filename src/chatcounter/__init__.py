"""chatcounter - Live chat message counter over a REST snapshot and Socket.IO rooms."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("chatcounter")
except PackageNotFoundError:
    __version__ = "0+local"
from chatcounter._socket import ConnectionManager
from chatcounter.client import ChatCounterClient
from chatcounter.config import ChatCounterConfig
from chatcounter.counter import MessageCounter
from chatcounter.exceptions import (
    ChatCounterConfigError,
    ChatCounterError,
    ChatCounterTransportError,
    ConnectionFatalError,
    ConnectionTransientError,
    MembershipUnavailableError,
    SessionUnavailableError,
    SnapshotUnavailableError,
)
from chatcounter.models import (
    ChatEvent,
    ConnectionState,
    CounterState,
    MessageCount,
    Notification,
    NotificationKind,
    RoomKey,
    User,
)
from chatcounter.monitor import ChatCounterMonitor
from chatcounter.rooms import RoomSubscriber

__all__ = [
    "__version__",
    "ChatCounterClient",
    "ChatCounterConfig",
    "ChatCounterConfigError",
    "ChatCounterError",
    "ChatCounterMonitor",
    "ChatCounterTransportError",
    "ChatEvent",
    "ConnectionFatalError",
    "ConnectionManager",
    "ConnectionState",
    "ConnectionTransientError",
    "CounterState",
    "MembershipUnavailableError",
    "MessageCount",
    "MessageCounter",
    "Notification",
    "NotificationKind",
    "RoomKey",
    "RoomSubscriber",
    "SessionUnavailableError",
    "SnapshotUnavailableError",
    "User",
]
