"""Lifecycle of one live chat message counter.

Startup ordering:

1. snapshot fetch, push connection and session/membership lookup start
   concurrently
2. once the user and the membership are known, rooms are joined
3. every ``connected`` signal rejoins the last known membership
4. ``stop()`` always disconnects, whichever step failed
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from typing import Any, Protocol

from chatcounter.counter import MessageCounter
from chatcounter.exceptions import (
    ConnectionFatalError,
    MembershipUnavailableError,
    SessionUnavailableError,
    SnapshotUnavailableError,
)
from chatcounter.models.realtime import RoomKey
from chatcounter.rooms import RoomSubscriber

_logger = logging.getLogger(__name__)

SessionSource = Callable[[], Awaitable[str]]
"""Resolves the signed-in user id; raises ``SessionUnavailableError``."""

MembershipSource = Callable[[], Awaitable[Iterable[str]]]
"""Resolves the event ids the user belongs to; raises ``MembershipUnavailableError``."""

SnapshotSource = Callable[[], Awaitable[int]]
"""Resolves the baseline count; raises ``SnapshotUnavailableError``."""


class PushConnection(Protocol):
    """Connection surface the monitor drives."""

    @property
    def is_connected(self) -> bool:
        ...

    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    def notifications(self) -> Any:
        ...

    async def join_room(self, room: RoomKey) -> None:
        ...

    def add_connected_listener(self, listener: Callable[[], Any]) -> Callable[[], None]:
        ...

    def add_fatal_listener(self, listener: Callable[[ConnectionFatalError], None]) -> Callable[[], None]:
        ...


class ChatCounterMonitor:
    """Runs a :class:`MessageCounter` fed by a snapshot and the push connection.

    Usage::

        async with ChatCounterMonitor(...) as monitor:
            monitor.counter.subscribe(render)
            ...
    """

    def __init__(
        self,
        *,
        session_source: SessionSource,
        membership_source: MembershipSource,
        snapshot_source: SnapshotSource,
        connection: PushConnection,
        counter: MessageCounter | None = None,
        subscriber: RoomSubscriber | None = None,
    ) -> None:
        self._session_source = session_source
        self._membership_source = membership_source
        self._snapshot_source = snapshot_source
        self._connection = connection
        self._counter = counter or MessageCounter()
        self._subscriber = subscriber or RoomSubscriber(connection)
        self._user_id: str | None = None
        self._membership: frozenset[str] = frozenset()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._startup_tasks: list[asyncio.Task[Any]] = []
        self._unsubscribers: list[Callable[[], None]] = []
        self._started = False
        self._stopping = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ChatCounterMonitor:
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def counter(self) -> MessageCounter:
        return self._counter

    @property
    def subscriber(self) -> RoomSubscriber:
        return self._subscriber

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def membership(self) -> frozenset[str]:
        return self._membership

    @property
    def stopped(self) -> bool:
        return self._stopping

    async def start(self) -> None:
        """Kick off every startup step without waiting for them."""
        if self._started or self._stopping:
            return
        self._started = True

        self._unsubscribers.append(self._connection.add_connected_listener(self._on_connected))
        self._unsubscribers.append(self._connection.add_fatal_listener(self._on_fatal))

        # The pump must be reading before the first notification can arrive.
        self._spawn(self._pump_notifications(), "notifications")
        self._startup_tasks = [
            self._spawn(self._load_snapshot(), "snapshot"),
            self._spawn(self._connection.connect(), "connect"),
            self._spawn(self._join_rooms(), "rooms"),
        ]

    async def wait_started(self) -> None:
        """Wait until every startup step has finished (successfully or not)."""
        if self._startup_tasks:
            await asyncio.gather(*self._startup_tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Tear down. Safe to call more than once and before ``start()``."""
        if self._stopping:
            return
        self._stopping = True
        # Nothing may touch the counter or the rooms once teardown has begun.
        self._counter.close()
        self._subscriber.close()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        try:
            tasks = [task for task in self._tasks if task is not asyncio.current_task()]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._tasks.clear()
            await self._connection.disconnect()
            _logger.debug("Chat counter monitor stopped")

    async def refresh_membership(self) -> list[RoomKey]:
        """Re-read the membership and join rooms of newly added events.

        Raises
        ------
        SessionUnavailableError
            The user could not be resolved.
        MembershipUnavailableError
            The membership could not be read.
        """
        if self._stopping:
            return []
        user_id = self._user_id or await self._session_source()
        membership = frozenset(await self._membership_source())
        if self._stopping:
            return []
        self._user_id = user_id
        self._membership = membership
        return await self._subscriber.sync_rooms(user_id, membership)

    # ------------------------------------------------------------------
    # Startup steps
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=f"chatcounter-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Chat counter task %s failed", task.get_name(), exc_info=exc)

    async def _load_snapshot(self) -> None:
        try:
            baseline = await self._snapshot_source()
        except SnapshotUnavailableError as exc:
            if self._stopping:
                return
            _logger.warning("Message count snapshot unavailable, counting live messages only: %s", exc)
            self._counter.mark_baseline_unavailable()
            return
        if self._stopping:
            _logger.debug("Ignoring late snapshot baseline=%s", baseline)
            return
        self._counter.apply_baseline(baseline)

    async def _join_rooms(self) -> None:
        results = await asyncio.gather(
            self._session_source(),
            self._membership_source(),
            return_exceptions=True,
        )
        errors = [result for result in results if isinstance(result, BaseException)]
        for error in errors:
            if not isinstance(error, (SessionUnavailableError, MembershipUnavailableError)):
                raise error
        if errors:
            for error in errors:
                _logger.warning("Cannot join event rooms, counting without them: %s", error)
            return
        user_id, membership = results
        if self._stopping:
            return
        self._user_id = user_id
        self._membership = frozenset(membership)
        await self._subscriber.sync_rooms(user_id, self._membership)

    async def _pump_notifications(self) -> None:
        async for notification in self._connection.notifications():
            if self._stopping:
                return
            self._counter.consume(notification)

    # ------------------------------------------------------------------
    # Connection signals
    # ------------------------------------------------------------------

    async def _on_connected(self) -> None:
        if self._stopping:
            return
        await self._subscriber.on_connected()

    def _on_fatal(self, error: ConnectionFatalError) -> None:
        if self._stopping:
            return
        _logger.warning("Live chat updates stopped: %s", error)
        self._counter.mark_degraded()
