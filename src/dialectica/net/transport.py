"""Text-frame transports between the host and the joining client.

Sessions only see the ``Transport`` protocol, so tests run the whole
replication flow over ``LoopbackTransport`` without opening a socket.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import websockets
from websockets.exceptions import ConnectionClosed as WebSocketClosed

from .errors import ConnectionClosed, PeerUnavailable

log = logging.getLogger(__name__)


class Transport(Protocol):
    async def send(self, text: str) -> None: ...

    async def recv(self) -> str: ...

    async def close(self) -> None: ...


class LoopbackTransport:
    """One end of an in-memory duplex pipe."""

    def __init__(self, inbox: asyncio.Queue[str | None], outbox: asyncio.Queue[str | None]) -> None:
        self._inbox = inbox
        self._outbox = outbox
        self._closed = False

    @staticmethod
    def pair() -> tuple["LoopbackTransport", "LoopbackTransport"]:
        a: asyncio.Queue[str | None] = asyncio.Queue()
        b: asyncio.Queue[str | None] = asyncio.Queue()
        return LoopbackTransport(a, b), LoopbackTransport(b, a)

    async def send(self, text: str) -> None:
        if self._closed:
            raise ConnectionClosed("Loopback transport is closed")
        await self._outbox.put(text)

    async def recv(self) -> str:
        if self._closed:
            raise ConnectionClosed("Loopback transport is closed")
        item = await self._inbox.get()
        if item is None:
            self._closed = True
            raise ConnectionClosed("Peer closed the loopback transport")
        return item

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._outbox.put(None)


class WebSocketTransport:
    def __init__(self, websocket: websockets.ClientConnection | websockets.ServerConnection) -> None:
        self._ws = websocket

    async def send(self, text: str) -> None:
        try:
            await self._ws.send(text)
        except WebSocketClosed as e:
            raise ConnectionClosed(f"Peer went away: {e}") from e

    async def recv(self) -> str:
        try:
            frame = await self._ws.recv()
        except WebSocketClosed as e:
            raise ConnectionClosed(f"Peer went away: {e}") from e
        return frame if isinstance(frame, str) else frame.decode("utf-8")

    async def close(self) -> None:
        await self._ws.close()

    async def wait_closed(self) -> None:
        await self._ws.wait_closed()


async def connect(url: str, *, retries: int = 5, retry_delay: float = 2.0) -> WebSocketTransport:
    for attempt in range(1, retries + 1):
        try:
            ws = await websockets.connect(url, ping_interval=20, ping_timeout=10, close_timeout=5)
            log.info("Connected to %s", url)
            return WebSocketTransport(ws)
        except OSError as e:
            log.warning("[%d/%d] Could not reach %s: %s", attempt, retries, url, e)
        if attempt < retries:
            await asyncio.sleep(retry_delay)
    raise PeerUnavailable(f"No host answered at {url}")


class WebSocketListener:
    """Accepts exactly one joining client; later connections are turned away."""

    def __init__(self, host: str, port: int) -> None:
        self.host = host
        self.port = port
        self._server: websockets.Server | None = None
        self._accepted: asyncio.Future[WebSocketTransport] | None = None

    async def start(self) -> None:
        self._accepted = asyncio.get_running_loop().create_future()
        self._server = await websockets.serve(self._handle_client, self.host, self.port)
        log.info("Hosting on ws://%s:%d", self.host, self.port)

    async def _handle_client(self, websocket: websockets.ServerConnection) -> None:
        assert self._accepted is not None
        if self._accepted.done():
            log.info("Turning away %s: match is full", websocket.remote_address)
            await websocket.close(code=1013, reason="Match is full")
            return
        log.info("Client connected: %s", websocket.remote_address)
        transport = WebSocketTransport(websocket)
        self._accepted.set_result(transport)
        # The connection lives as long as this handler does.
        await transport.wait_closed()
        log.info("Client disconnected: %s", websocket.remote_address)

    async def accept(self) -> WebSocketTransport:
        if self._accepted is None:
            await self.start()
        assert self._accepted is not None
        return await self._accepted

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
