"""High-level async client for the chat backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from chatcounter._api import chat as _chat_api
from chatcounter._api import events as _events_api
from chatcounter._api import users as _users_api
from chatcounter._socket import ConnectionManager
from chatcounter._transport import HttpTransport, Transport
from chatcounter.config import ChatCounterConfig
from chatcounter.exceptions import ChatCounterError, SessionUnavailableError, SnapshotUnavailableError
from chatcounter.models.event import ChatEvent
from chatcounter.models.user import User
from chatcounter.monitor import ChatCounterMonitor

_logger = logging.getLogger(__name__)


class ChatCounterClient:
    """Async client for the chat backend.

    Usage::

        async with ChatCounterClient(config) as client:
            async with client.monitor() as monitor:
                monitor.counter.subscribe(print)
                await asyncio.Event().wait()
    """

    def __init__(
        self,
        config: ChatCounterConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._external_transport = transport is not None
        self._user_task: asyncio.Task[User] | None = None
        self._monitors: list[ChatCounterMonitor] = []

    @property
    def config(self) -> ChatCounterConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ChatCounterClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        monitors = list(self._monitors)
        self._monitors.clear()
        for monitor in monitors:
            try:
                await monitor.stop()
            except Exception:
                _logger.debug("Monitor stop failed", exc_info=True)
        if self._user_task is not None and not self._user_task.done():
            self._user_task.cancel()
        self._user_task = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise ChatCounterError("Client not initialized. Use 'async with ChatCounterClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Session / membership / snapshot
    # ------------------------------------------------------------------

    async def get_current_user(self) -> User:
        """Return the signed-in user, fetched once per client.

        A failed lookup is not cached.
        """
        transport = self._require_transport()
        task = self._user_task
        if task is None or (task.done() and (task.cancelled() or task.exception() is not None)):
            task = asyncio.ensure_future(_users_api.get_current_user(transport))
            self._user_task = task
        return await asyncio.shield(task)

    async def get_user_id(self) -> str:
        user = await self.get_current_user()
        return user.id

    async def get_events(self) -> list[ChatEvent]:
        """Every event visible to the user."""
        return await _events_api.get_events(self._require_transport())

    async def get_my_events(self) -> list[ChatEvent]:
        """Events the user participates in."""
        return await _events_api.get_my_events(self._require_transport())

    async def get_membership(self) -> frozenset[str]:
        """Event ids whose rooms the counter listens to."""
        return await _events_api.fetch_membership(
            self._require_transport(),
            mine_only=self._config.membership_scope == "mine",
        )

    async def fetch_baseline(self) -> int:
        """Baseline message count for the configured count scope."""
        transport = self._require_transport()
        user_id: str | None = None
        if self._config.count_scope == "user":
            try:
                user_id = await self.get_user_id()
            except SessionUnavailableError as exc:
                raise SnapshotUnavailableError(f"Per-user count needs the current user: {exc}") from exc
        return await _chat_api.fetch_baseline(transport, user_id=user_id)

    # ------------------------------------------------------------------
    # Live counter
    # ------------------------------------------------------------------

    def monitor(self, *, connection: ConnectionManager | None = None) -> ChatCounterMonitor:
        """Build a live counter monitor wired to this client.

        The monitor is stopped when the client exits, at the latest.
        """
        self._require_transport()
        monitor = ChatCounterMonitor(
            session_source=self.get_user_id,
            membership_source=self.get_membership,
            snapshot_source=self.fetch_baseline,
            connection=connection or ConnectionManager(self._config),
        )
        self._monitors.append(monitor)
        return monitor
