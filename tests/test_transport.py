from __future__ import annotations

import aiohttp
import pytest
from aiohttp import test_utils, web

from chatcounter._transport import HttpTransport
from chatcounter.config import ChatCounterConfig
from chatcounter.exceptions import ChatCounterTransportError


async def _count(request: web.Request) -> web.Response:
    if request.headers.get("Authorization") != "Bearer tok":
        return web.json_response({"message": "Unauthorized"}, status=401)
    user_id = request.query.get("userId")
    return web.json_response({"count": 5 if user_id else 12})


async def _broken(_request: web.Request) -> web.Response:
    return web.Response(text="<html>oops</html>", content_type="text/html")


async def _empty(_request: web.Request) -> web.Response:
    return web.Response(status=204)


def _app() -> web.Application:
    app = web.Application()
    app.router.add_get("/chat/count", _count)
    app.router.add_get("/broken", _broken)
    app.router.add_get("/empty", _empty)
    return app


@pytest.mark.asyncio
async def test_get_json_sends_bearer_token_and_query() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        config = ChatCounterConfig(api_url=str(server.make_url("/")), access_token="tok")
        transport = HttpTransport(config, session)

        assert await transport.get_json("/chat/count") == {"count": 12}
        assert await transport.get_json("/chat/count", {"userId": "U1"}) == {"count": 5}


@pytest.mark.asyncio
async def test_non_success_status_raises_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        config = ChatCounterConfig(api_url=str(server.make_url("/")), access_token="wrong")
        transport = HttpTransport(config, session)

        with pytest.raises(ChatCounterTransportError) as exc_info:
            await transport.get_json("/chat/count")

    assert exc_info.value.status_code == 401
    assert exc_info.value.endpoint == "/chat/count"


@pytest.mark.asyncio
async def test_invalid_json_raises_transport_error() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        config = ChatCounterConfig(api_url=str(server.make_url("/")))
        transport = HttpTransport(config, session)

        with pytest.raises(ChatCounterTransportError, match="Invalid JSON"):
            await transport.get_json("/broken")


@pytest.mark.asyncio
async def test_empty_body_decodes_to_empty_dict() -> None:
    async with test_utils.TestServer(_app()) as server, aiohttp.ClientSession() as session:
        config = ChatCounterConfig(api_url=str(server.make_url("/")))
        transport = HttpTransport(config, session)

        assert await transport.get_json("/empty") == {}


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error() -> None:
    server = test_utils.TestServer(_app())
    await server.start_server()
    url = str(server.make_url("/"))
    await server.close()

    async with aiohttp.ClientSession() as session:
        transport = HttpTransport(ChatCounterConfig(api_url=url, request_timeout=2.0), session)
        with pytest.raises(ChatCounterTransportError) as exc_info:
            await transport.get_json("/chat/count")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, (aiohttp.ClientError, TimeoutError))
