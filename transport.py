#!/usr/bin/env python3
import asyncio
import logging
from typing import Optional, Protocol

import aiohttp

from constants import LOGGER_NAME
from errors import RelayConnectionError

logger = logging.getLogger(LOGGER_NAME)


class RelayTransport(Protocol):
    """Text-frame transport a RelayClient is built on."""

    async def connect(self, url: str) -> None: ...

    async def send(self, message: str) -> None: ...

    async def receive(self) -> str: ...

    async def close(self) -> None: ...

    @property
    def closed(self) -> bool: ...


class WebSocketTransport:
    """aiohttp websocket transport for a single relay endpoint.

    A ClientSession may be passed in to share a connection pool; otherwise
    the transport owns one and closes it together with the socket.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = 10.0,
        heartbeat: Optional[float] = 30.0,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._connect_timeout = connect_timeout
        self._heartbeat = heartbeat
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._url: Optional[str] = None

    @property
    def closed(self) -> bool:
        return self._ws is None or self._ws.closed

    async def connect(self, url: str) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._url = url
        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(url, heartbeat=self._heartbeat),
                timeout=self._connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await self.close()
            raise RelayConnectionError(f"Failed to connect to relay {url}: {e}") from e

    async def send(self, message: str) -> None:
        if self.closed:
            raise RelayConnectionError(f"Relay {self._url} is not connected")
        try:
            await self._ws.send_str(message)
        except (aiohttp.ClientError, ConnectionResetError) as e:
            raise RelayConnectionError(f"Failed to send to relay {self._url}: {e}") from e

    async def receive(self) -> str:
        if self._ws is None:
            raise RelayConnectionError(f"Relay {self._url} is not connected")
        msg = await self._ws.receive()
        if msg.type == aiohttp.WSMsgType.TEXT:
            return msg.data
        if msg.type == aiohttp.WSMsgType.BINARY:
            return msg.data.decode("utf-8", errors="replace")
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise RelayConnectionError(f"Relay {self._url} connection error: {self._ws.exception()}")
        raise RelayConnectionError(f"Relay {self._url} closed the connection")

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            try:
                await ws.close()
            except (aiohttp.ClientError, OSError) as e:
                logger.warning(f"Error closing relay connection {self._url}: {e}")
        if self._owns_session and self._session is not None:
            session, self._session = self._session, None
            await session.close()
