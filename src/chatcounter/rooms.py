"""Room membership on the push connection.

One room per (user, event) pair. Joins are tracked locally so unchanged
membership never produces redundant requests, and the whole target set is
rejoined after every reconnect because the push service does not keep
room membership across connections.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol

from chatcounter.exceptions import ConnectionTransientError
from chatcounter.models.realtime import RoomKey

_logger = logging.getLogger(__name__)


class RoomConnection(Protocol):
    """What the subscriber needs from the connection."""

    @property
    def is_connected(self) -> bool:
        ...

    async def join_room(self, room: RoomKey) -> None:
        ...


class RoomSubscriber:
    """Keeps the joined room set in line with the user's event membership."""

    def __init__(self, connection: RoomConnection) -> None:
        self._connection = connection
        self._target: frozenset[RoomKey] = frozenset()
        self._joined: set[RoomKey] = set()
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def target_rooms(self) -> frozenset[RoomKey]:
        return self._target

    @property
    def joined_rooms(self) -> frozenset[RoomKey]:
        return frozenset(self._joined)

    @property
    def closed(self) -> bool:
        return self._closed

    async def sync_rooms(self, user_id: str, event_ids: Iterable[str]) -> list[RoomKey]:
        """Join every room of *event_ids* that is not joined yet.

        Rooms dropped from the membership are not left. Returns the rooms a
        join was issued for; empty when the connection is down (the joins
        then happen on the next ``connected`` signal).
        """
        target = frozenset(RoomKey(user_id=user_id, event_id=event_id) for event_id in event_ids)
        async with self._lock:
            if self._closed:
                return []
            self._target = target
            if not self._connection.is_connected:
                _logger.debug("Deferring %d room joins until connected", len(target - self._joined))
                return []
            return await self._join_missing()

    async def on_connected(self) -> list[RoomKey]:
        """Forget every join and rejoin the full target set."""
        async with self._lock:
            if self._closed:
                return []
            self._joined.clear()
            return await self._join_missing()

    def close(self) -> None:
        """Forget target and joins. Joins still in flight are dropped."""
        self._closed = True
        self._target = frozenset()
        self._joined.clear()

    async def _join_missing(self) -> list[RoomKey]:
        issued: list[RoomKey] = []
        for room in sorted(self._target - self._joined, key=lambda key: key.event_id):
            try:
                await self._connection.join_room(room)
            except ConnectionTransientError:
                _logger.debug("Room joins interrupted, resuming on next connect", exc_info=True)
                break
            if self._closed:
                _logger.debug("Subscriber closed during join of event_id=%s", room.event_id)
                return []
            self._joined.add(room)
            issued.append(room)
        if issued:
            _logger.debug("Issued %d room joins (%d joined)", len(issued), len(self._joined))
        return issued
