"""
WebSocket client for the live frame broadcaster.

The broadcaster pushes JSON text messages of the form

    {"event": "image", "data": "<base64 encoded jpeg>"}

After connecting the client subscribes to one event name and forwards each
matching message, in arrival order, to the `on_frame` callback. On any
connection error or close it waits a fixed delay and reconnects, forever.
Pending capture requests are never told about outages; they simply wait for
the next frame.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from enum import Enum, auto
from typing import Callable, Optional

import aiohttp

from camera.errors import ConnectionFailedError
from camera.results import FrameEvent

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 1.0  # seconds
DEFAULT_CONNECT_TIMEOUT = 5.0  # seconds

_CONNECTION_ERRORS = (aiohttp.ClientError, OSError, asyncio.TimeoutError)


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTED = auto()
    RECONNECTING = auto()


class FrameBroadcastClient:
    def __init__(
            self,
            url: str,
            on_frame: Callable[[FrameEvent], object],
            *,
            event_name: str = "image",
            reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
            connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        self.url = url
        self.event_name = event_name
        self.reconnect_delay = reconnect_delay
        self.connect_timeout = connect_timeout
        self.state = ConnectionState.DISCONNECTED
        self.attempts = 0

        self._on_frame = on_frame
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return (
                self.state == ConnectionState.CONNECTED
                and self._ws is not None
                and not self._ws.closed
        )

    # ---------- Lifecycle ----------

    async def connect(self) -> None:
        """Open the first connection and start receiving in the background."""
        if self._task is not None:
            return

        self._session = aiohttp.ClientSession()
        logger.info("trying to connect to %s", self.url)
        try:
            await self._open()
        except _CONNECTION_ERRORS as e:
            await self._close_session()
            raise ConnectionFailedError() from e

        self._task = asyncio.create_task(self._run(), name=f"frame-broadcast {self.url}")

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        await self._close_socket()
        await self._close_session()
        self.state = ConnectionState.DISCONNECTED

    # ---------- Connection state machine ----------

    async def _open(self) -> None:
        self._ws = await asyncio.wait_for(
            self._session.ws_connect(self.url),
            timeout=self.connect_timeout,
        )
        try:
            await self._ws.send_json({"subscribe": self.event_name})
        except BaseException:
            await self._close_socket()
            raise
        self.state = ConnectionState.CONNECTED

    async def _run(self) -> None:
        while True:
            try:
                await self._receive()
                logger.info("disconnect (%s)", self._ws.close_code if self._ws else None)
            except _CONNECTION_ERRORS as e:
                logger.warning("connect_error %s", e)

            self.state = ConnectionState.RECONNECTING
            await self._close_socket()
            await self._reconnect()

    async def _reconnect(self) -> None:
        while True:
            await asyncio.sleep(self.reconnect_delay)
            self.attempts += 1
            try:
                await self._open()
            except _CONNECTION_ERRORS as e:
                logger.warning("reconnect attempt %d to %s failed: %s", self.attempts, self.url, e)
                continue

            logger.info("reconnected to %s", self.url)
            return

    async def _receive(self) -> None:
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                self._handle_message(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise aiohttp.ClientError(f"WebSocket error: {self._ws.exception()}")
            else:
                logger.debug("ignoring %s message", msg.type.name)

    def _handle_message(self, text: str) -> None:
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("dropping malformed broadcast message")
            return

        if not isinstance(message, dict):
            logger.warning("dropping malformed broadcast message")
            return

        if message.get("event") != self.event_name:
            logger.debug("data (%s)", message.get("event"))
            return

        data = message.get("data")
        if not isinstance(data, str):
            logger.warning("dropping %s event without frame data", self.event_name)
            return

        self._on_frame(FrameEvent(data=data))

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None and not ws.closed:
            await ws.close()

    async def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            await session.close()
