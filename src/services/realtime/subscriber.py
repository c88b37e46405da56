"""
Client side of the real-time channel.

Connects to the server's /ws endpoint, authenticates with a user id,
forwards every decoded message to registered listeners, and reconnects
with a fixed delay after an unexpected close. After the configured
number of failed attempts it gives up quietly; the notification list
endpoint remains the source of truth.
"""

import asyncio
import json
import logging
from typing import Any, Callable

import websockets
from websockets.exceptions import WebSocketException

logger = logging.getLogger(__name__)

MessageListener = Callable[[dict], Any]


class NotificationSubscriber:
    def __init__(
        self,
        url: str,
        user_id: int,
        *,
        max_reconnect_attempts: int = 5,
        reconnect_delay: float = 3.0,
        connect: Callable = websockets.connect,
    ):
        self.url = url
        self.user_id = user_id
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_delay = reconnect_delay
        self.reconnect_attempts = 0
        self._connect = connect
        self._listeners: list[MessageListener] = []
        self._socket = None
        self._stopped = False

    @property
    def connected(self) -> bool:
        return self._socket is not None

    def add_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def run(self) -> None:
        """Connect and listen until stopped or out of reconnect attempts."""
        while not self._stopped:
            try:
                async with self._connect(self.url) as socket:
                    self._socket = socket
                    self.reconnect_attempts = 0
                    logger.info("Connected to %s", self.url)
                    await self._authenticate(socket)
                    async for raw in socket:
                        self._deliver(raw)
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                logger.warning("Connection to %s lost: %s", self.url, exc)
            finally:
                self._socket = None

            if self._stopped:
                break
            if self.reconnect_attempts >= self.max_reconnect_attempts:
                logger.info("Giving up on %s after %d reconnect attempts",
                            self.url, self.reconnect_attempts)
                return
            self.reconnect_attempts += 1
            logger.info("Attempting to reconnect (%d/%d)...",
                        self.reconnect_attempts, self.max_reconnect_attempts)
            await asyncio.sleep(self.reconnect_delay)

    async def send(self, message: dict) -> bool:
        if self._socket is None:
            logger.error("WebSocket not connected, cannot send message")
            return False
        await self._socket.send(json.dumps(message))
        return True

    async def stop(self) -> None:
        """Close the connection without reconnecting."""
        self._stopped = True
        if self._socket is not None:
            await self._socket.close()

    async def _authenticate(self, socket) -> None:
        if self.user_id is not None:
            await socket.send(json.dumps({"type": "auth", "userId": self.user_id}))

    def _deliver(self, raw) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Error parsing WebSocket message: %.80r", raw)
            return
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Listener failed on %s message",
                                 message.get("type") if isinstance(message, dict) else "?")
