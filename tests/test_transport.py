import asyncio
import json
from contextlib import asynccontextmanager

import aiohttp
import pytest
from aiohttp import web

from collector import collect_events
from conftest import make_wire_event
from errors import RelayConnectionError
from relay_client import RelayClient
from transport import WebSocketTransport


@asynccontextmanager
async def relay_server(stored_events=(), hang_up=False):
    """Serve a minimal relay on a random local port and yield its ws:// url."""
    received = []

    async def handler(request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        if hang_up:
            await ws.close()
            return ws
        async for msg in ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                break
            frame = json.loads(msg.data)
            received.append(frame)
            if frame[0] == "REQ":
                for payload in stored_events:
                    await ws.send_str(json.dumps(["EVENT", frame[1], payload]))
                await ws.send_str(json.dumps(["EOSE", frame[1]]))
        return ws

    app = web.Application()
    app.router.add_get("/", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        yield f"ws://127.0.0.1:{port}/", received
    finally:
        await runner.cleanup()


def test_unreachable_relay_raises_connection_error_and_releases_session():
    transport = WebSocketTransport(connect_timeout=2.0)

    async def _run():
        await transport.connect("ws://127.0.0.1:1/")

    with pytest.raises(RelayConnectionError) as excinfo:
        asyncio.run(_run())

    assert isinstance(excinfo.value, ConnectionError)
    assert transport.closed
    assert transport._session is None


def test_collect_events_over_websocket():
    async def _run():
        async with relay_server([make_wire_event("A", 1700000500)]) as (url, received):
            client = RelayClient(url, WebSocketTransport())
            events = await collect_events(client, 3600, subscription_timeout=5, now=1700003600)
            return events, received

    events, received = asyncio.run(_run())

    assert [e.content for e in events] == ["A"]
    assert received[0][0] == "REQ"
    assert received[0][2]["since"] == 1700000000
    assert received[0][2]["kinds"] == [1]


def test_receive_raises_when_relay_hangs_up():
    async def _run():
        async with relay_server(hang_up=True) as (url, _):
            transport = WebSocketTransport()
            await transport.connect(url)
            try:
                await transport.receive()
            finally:
                await transport.close()

    with pytest.raises(RelayConnectionError, match="closed"):
        asyncio.run(_run())


def test_close_is_idempotent_and_releases_owned_session():
    async def _run():
        async with relay_server() as (url, _):
            transport = WebSocketTransport()
            await transport.connect(url)
            session = transport._session
            await transport.close()
            await transport.close()
            return transport, session

    transport, session = asyncio.run(_run())

    assert transport.closed
    assert session.closed
    assert transport._session is None


def test_close_leaves_injected_session_open():
    async def _run():
        async with relay_server() as (url, _):
            async with aiohttp.ClientSession() as session:
                transport = WebSocketTransport(session=session)
                await transport.connect(url)
                await transport.close()
                return transport.closed, session.closed

    transport_closed, session_closed = asyncio.run(_run())

    assert transport_closed
    assert not session_closed
