"""Internal Socket.IO connection runtime.

Owns:
- the single persistent push connection and its state machine
- translating inbound Socket.IO events into ordered notifications
- ``connected`` / fatal signals for the rest of the library

Reconnect scheduling is left to ``socketio.AsyncClient`` (its
``reconnection_*`` options). The only reconnect done here is after a
server-initiated disconnect, which Socket.IO clients never retry on their
own.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import socketio
from socketio.exceptions import SocketIOError

from chatcounter._constants import JOIN_EVENT, NEW_MESSAGE_EVENT
from chatcounter._redact import redact_for_log
from chatcounter.config import ChatCounterConfig
from chatcounter.exceptions import ConnectionFatalError, ConnectionTransientError
from chatcounter.models.realtime import ConnectionState, Notification, RoomKey

_logger = logging.getLogger(__name__)

# Disconnect reason python-socketio reports when the server closed the session.
_SERVER_DISCONNECT = "server disconnect"

ConnectedListener = Callable[[], Awaitable[None] | None]
FatalListener = Callable[[ConnectionFatalError], None]
SocketClientFactory = Callable[[ChatCounterConfig], Any]


def build_socket_client(config: ChatCounterConfig) -> socketio.AsyncClient:
    """Create the Socket.IO client with the configured reconnect policy."""
    return socketio.AsyncClient(
        reconnection=config.reconnection,
        reconnection_attempts=config.reconnection_attempts,
        reconnection_delay=config.reconnection_delay,
        reconnection_delay_max=config.reconnection_delay_max,
        randomization_factor=config.randomization_factor,
        logger=False,
        engineio_logger=False,
    )


class ConnectionManager:
    """Single owner of the push connection.

    State machine::

        DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED
                             ^             |
                             +-------------+  (unplanned loss, reconnecting)
    """

    def __init__(
        self,
        config: ChatCounterConfig,
        *,
        client_factory: SocketClientFactory = build_socket_client,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._client: Any | None = None
        self._state = ConnectionState.DISCONNECTED
        self._closing = False
        self._fatal_error: ConnectionFatalError | None = None
        self._last_disconnect_reason: Any = None
        self._supervisor: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[Notification | None] = asyncio.Queue()
        self._stream_closed = False
        self._connected_listeners: list[ConnectedListener] = []
        self._fatal_listeners: list[FatalListener] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def fatal_error(self) -> ConnectionFatalError | None:
        """Terminal failure, once one happened."""
        return self._fatal_error

    def add_connected_listener(self, listener: ConnectedListener) -> Callable[[], None]:
        """Call *listener* on every transition into CONNECTED (reconnects included)."""
        self._connected_listeners.append(listener)
        return lambda: self._discard(self._connected_listeners, listener)

    def add_fatal_listener(self, listener: FatalListener) -> Callable[[], None]:
        """Call *listener* once if the connection fails terminally."""
        self._fatal_listeners.append(listener)
        return lambda: self._discard(self._fatal_listeners, listener)

    @staticmethod
    def _discard(listeners: list[Any], listener: Any) -> None:
        if listener in listeners:
            listeners.remove(listener)

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the push connection. No-op unless DISCONNECTED."""
        if self._fatal_error is not None:
            _logger.debug("Ignoring connect(), connection halted: %s", self._fatal_error)
            return
        if self._state is not ConnectionState.DISCONNECTED:
            return

        self._state = ConnectionState.CONNECTING
        self._closing = False
        self._last_disconnect_reason = None
        if self._stream_closed:
            self._queue = asyncio.Queue()
            self._stream_closed = False

        try:
            client = self._client_factory(self._config)
        except Exception as exc:
            self._halt(ConnectionFatalError(f"Invalid push connection configuration: {exc}"))
            return
        self._register_handlers(client)
        self._client = client

        url = self._config.resolved_socket_url
        token = self._config.access_token
        _logger.debug(
            "Push connect requested url=%s path=%s websocket_only=%s",
            url,
            self._config.socket_path,
            self._config.websocket_only,
        )
        try:
            await client.connect(
                url,
                auth={"token": token} if token else None,
                transports=["websocket"] if self._config.websocket_only else None,
                socketio_path=self._config.socket_path,
                retry=self._config.reconnection,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._client is not client:
                return
            # The transport already applied its reconnect policy and gave up.
            self._halt(ConnectionFatalError(f"Push connection to {url} failed: {exc}"))
            await self._release(client)
            return

        if self._client is not client:
            # disconnect() ran while the handshake was in flight.
            await self._release(client)
            return
        self._supervisor = asyncio.create_task(self._supervise(client))

    async def disconnect(self) -> None:
        """Close the push connection and end the notification stream. Idempotent."""
        self._closing = True
        client = self._client
        self._client = None
        supervisor = self._supervisor
        self._supervisor = None
        self._state = ConnectionState.DISCONNECTED
        self._close_stream()

        if supervisor is not None and supervisor is not asyncio.current_task():
            supervisor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await supervisor

        if client is None:
            return
        _logger.debug("Push disconnect requested")
        await self._release(client)

    async def _release(self, client: Any) -> None:
        try:
            await client.disconnect()
        except Exception:
            _logger.debug("Push transport release failed", exc_info=True)

    def _halt(self, error: ConnectionFatalError) -> None:
        self._fatal_error = error
        self._client = None
        self._state = ConnectionState.DISCONNECTED
        self._close_stream()
        _logger.warning("Push connection halted: %s", error)
        for listener in list(self._fatal_listeners):
            try:
                listener(error)
            except Exception:
                _logger.warning("Fatal listener %r failed", listener, exc_info=True)

    async def _supervise(self, client: Any) -> None:
        """Wait for the session to end for good and decide what happens next."""
        try:
            await client.wait()
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.debug("Push transport wait failed", exc_info=True)

        if self._closing or self._client is not client:
            return

        if self._last_disconnect_reason == _SERVER_DISCONNECT and self._config.reconnection:
            _logger.debug("Server closed the push connection, reconnecting")
            self._client = None
            self._state = ConnectionState.DISCONNECTED
            await self._release(client)
            await self.connect()
            return

        self._halt(ConnectionFatalError(f"Push transport stopped reconnecting (reason={self._last_disconnect_reason})"))
        await self._release(client)

    # ------------------------------------------------------------------
    # Socket.IO handlers
    # ------------------------------------------------------------------

    def _register_handlers(self, client: Any) -> None:
        async def on_connect() -> None:
            if self._client is not client or self._closing:
                return
            self._state = ConnectionState.CONNECTED
            _logger.debug("Push connected sid=%s", getattr(client, "sid", None))
            await self._emit_connected()

        async def on_connect_error(data: Any = None) -> None:
            if self._client is not client:
                return
            _logger.debug("Push connect attempt failed: %s", redact_for_log(data))

        async def on_disconnect(reason: Any = None) -> None:
            if self._client is not client or self._closing:
                return
            self._last_disconnect_reason = reason
            self._state = ConnectionState.CONNECTING
            _logger.debug("Push disconnected reason=%s", reason)

        async def on_new_message(data: Any = None) -> None:
            if self._client is not client:
                return
            notification = Notification.from_socket(NEW_MESSAGE_EVENT, data)
            _logger.debug(
                "Received %s event_id=%s payload=%s",
                NEW_MESSAGE_EVENT,
                notification.event_id,
                redact_for_log(notification.payload),
            )
            self._deliver(notification)

        client.on("connect", on_connect)
        client.on("connect_error", on_connect_error)
        client.on("disconnect", on_disconnect)
        client.on(NEW_MESSAGE_EVENT, on_new_message)

    async def _emit_connected(self) -> None:
        for listener in list(self._connected_listeners):
            try:
                result = listener()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.warning("Connected listener %r failed", listener, exc_info=True)

    # ------------------------------------------------------------------
    # Notifications / joins
    # ------------------------------------------------------------------

    def _deliver(self, notification: Notification) -> None:
        if self._stream_closed:
            return
        self._queue.put_nowait(notification)

    def _close_stream(self) -> None:
        if self._stream_closed:
            return
        self._stream_closed = True
        self._queue.put_nowait(None)

    async def notifications(self) -> AsyncIterator[Notification]:
        """Yield inbound notifications in arrival order.

        The stream ends when the connection is closed; the next
        ``connect()`` starts a new one.
        """
        queue = self._queue
        while True:
            item = await queue.get()
            if item is None:
                return
            yield item

    async def join_room(self, room: RoomKey) -> None:
        """Send a ``joinEvent`` request for *room*.

        Raises
        ------
        ConnectionTransientError
            The connection is not up; the join has to wait for ``connected``.
        """
        client = self._client
        if client is None or self._state is not ConnectionState.CONNECTED:
            raise ConnectionTransientError(f"Cannot join room {room.event_id} while {self._state}")
        _logger.debug("Joining room user_id=%s event_id=%s", room.user_id, room.event_id)
        try:
            await client.emit(JOIN_EVENT, room.join_payload())
        except SocketIOError as exc:
            raise ConnectionTransientError(f"{JOIN_EVENT} failed for event {room.event_id}: {exc}") from exc
