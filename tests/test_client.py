from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from chatcounter._socket import ConnectionManager
from chatcounter.client import ChatCounterClient
from chatcounter.config import ChatCounterConfig
from chatcounter.exceptions import (
    ChatCounterError,
    ChatCounterTransportError,
    SessionUnavailableError,
    SnapshotUnavailableError,
)


class _RoutingTransport:
    def __init__(self, routes: dict[str, Any]) -> None:
        self._routes = routes
        self.calls: list[tuple[str, dict[str, str] | None]] = []

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        self.calls.append((endpoint, dict(params) if params else None))
        body = self._routes[endpoint]
        if isinstance(body, Exception):
            raise body
        return body


def _routes(**overrides: Any) -> dict[str, Any]:
    routes: dict[str, Any] = {
        "/users/me": {"id": "U1", "nom": "Alice"},
        "/events": [{"id": "E1"}, {"id": "E2"}],
        "/users/me/events": [{"id": "E2"}],
        "/chat/count": {"count": 9},
    }
    routes.update(overrides)
    return routes


@pytest.mark.asyncio
async def test_requires_context_manager() -> None:
    client = ChatCounterClient(ChatCounterConfig())

    with pytest.raises(ChatCounterError):
        await client.fetch_baseline()


@pytest.mark.asyncio
async def test_current_user_is_fetched_once() -> None:
    transport = _RoutingTransport(_routes())

    async with ChatCounterClient(ChatCounterConfig(), transport=transport) as client:
        assert await client.get_user_id() == "U1"
        assert (await client.get_current_user()).name == "Alice"

    assert transport.calls.count(("/users/me", None)) == 1


@pytest.mark.asyncio
async def test_failed_user_lookup_is_retried() -> None:
    transport = _RoutingTransport(
        _routes(**{"/users/me": ChatCounterTransportError("HTTP 401", status_code=401, endpoint="/users/me")})
    )

    async with ChatCounterClient(ChatCounterConfig(), transport=transport) as client:
        with pytest.raises(SessionUnavailableError):
            await client.get_user_id()
        with pytest.raises(SessionUnavailableError):
            await client.get_user_id()

    assert transport.calls.count(("/users/me", None)) == 2


@pytest.mark.asyncio
async def test_membership_scope_selects_endpoint() -> None:
    transport = _RoutingTransport(_routes())

    async with ChatCounterClient(ChatCounterConfig(), transport=transport) as client:
        assert await client.get_membership() == frozenset({"E1", "E2"})

    async with ChatCounterClient(ChatCounterConfig(membership_scope="mine"), transport=transport) as client:
        assert await client.get_membership() == frozenset({"E2"})


@pytest.mark.asyncio
async def test_user_count_scope_queries_with_user_id() -> None:
    transport = _RoutingTransport(_routes())

    async with ChatCounterClient(ChatCounterConfig(count_scope="user"), transport=transport) as client:
        assert await client.fetch_baseline() == 9

    assert ("/chat/count", {"userId": "U1"}) in transport.calls


@pytest.mark.asyncio
async def test_user_count_scope_without_session_is_snapshot_unavailable() -> None:
    transport = _RoutingTransport(_routes(**{"/users/me": {}}))

    async with ChatCounterClient(ChatCounterConfig(count_scope="user"), transport=transport) as client:
        with pytest.raises(SnapshotUnavailableError):
            await client.fetch_baseline()


@pytest.mark.asyncio
async def test_client_exit_stops_its_monitors() -> None:
    transport = _RoutingTransport(_routes())
    config = ChatCounterConfig()

    async with ChatCounterClient(config, transport=transport) as client:
        monitor = client.monitor(connection=ConnectionManager(config, client_factory=_no_client))
        assert not monitor.stopped

    assert monitor.stopped


def _no_client(_config: ChatCounterConfig) -> Any:
    raise AssertionError("monitor was never started")
