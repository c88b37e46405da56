"""
Server side of a real-time connection.

Lifecycle: CONNECTING -> OPEN -> AUTHENTICATED -> CLOSED.

Client to server:  {"type": "auth", "userId": <int>}   (once per connection)
Server to client:  {"type": "connected"}
                   {"type": "notification", "data": <notification>}
"""

import asyncio
import contextlib
import enum
import json
import logging

from services.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    connecting = "connecting"
    open = "open"
    authenticated = "authenticated"
    closed = "closed"


class ClientConnection:
    """
    One accepted WebSocket plus its outbound queue.

    ``push`` may be called from any thread; messages are handed to the
    connection's event loop and written by ``run_sender`` in order.
    """

    def __init__(self, websocket, registry: ConnectionRegistry | None = None):
        self.websocket = websocket
        self.registry = registry
        self.state = ConnectionState.connecting
        self.user_id: int | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._outbox: asyncio.Queue | None = None

    @property
    def is_open(self) -> bool:
        return self.state in (ConnectionState.open, ConnectionState.authenticated)

    async def accept(self) -> None:
        await self.websocket.accept()
        self._loop = asyncio.get_running_loop()
        self._outbox = asyncio.Queue()
        self.state = ConnectionState.open

    def authenticate(self, user_id: int) -> bool:
        """Move OPEN -> AUTHENTICATED. A connection authenticates once."""
        if self.state != ConnectionState.open:
            return False
        self.user_id = user_id
        self.state = ConnectionState.authenticated
        return True

    def push(self, message: dict) -> bool:
        """Queue a message for sending. Never blocks, never raises."""
        if not self.is_open:
            return False
        try:
            self._loop.call_soon_threadsafe(self._outbox.put_nowait, message)
        except RuntimeError:
            # Event loop already closed.
            logger.warning("Dropped %s message for user %s: loop closed",
                           message.get("type"), self.user_id)
            self.state = ConnectionState.closed
            return False
        return True

    async def run_sender(self) -> None:
        """Drain the outbound queue until cancelled or a write fails."""
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception:
                logger.warning("Failed to send %s message to user %s",
                               message.get("type"), self.user_id,
                               exc_info=True)
                await self._drop()
                return

    def close(self) -> None:
        self.state = ConnectionState.closed

    async def _drop(self) -> None:
        """Give up on a connection whose socket can no longer be written."""
        self.state = ConnectionState.closed
        if self.registry is not None:
            self.registry.unregister(self)
        # ends the receive loop in serve_connection
        with contextlib.suppress(Exception):
            await self.websocket.close()


def parse_client_message(raw: str | None) -> dict | None:
    """Decode one inbound frame; None for anything that is not a JSON object with a type."""
    if raw is None:
        return None
    try:
        message = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring non-JSON message: %.80r", raw)
        return None
    if not isinstance(message, dict) or not isinstance(message.get("type"), str):
        logger.warning("Ignoring message without a type: %.80r", raw)
        return None
    return message


def _auth_user_id(message: dict) -> int | None:
    user_id = message.get("userId")
    # bool is an int subclass; reject it explicitly
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        return None
    return user_id


def handle_message(
    connection: ClientConnection,
    registry: ConnectionRegistry,
    message: dict,
) -> None:
    if message["type"] != "auth":
        logger.debug("Ignoring unsupported message type %r", message["type"])
        return
    user_id = _auth_user_id(message)
    if user_id is None:
        logger.warning("Ignoring auth message without a valid userId")
        return
    if not connection.authenticate(user_id):
        logger.warning(
            "Ignoring auth for user %s: connection already authenticated as %s",
            user_id, connection.user_id,
        )
        return
    registry.register(user_id, connection)
    logger.info("WebSocket client authenticated for user %s", user_id)


async def serve_connection(websocket, registry: ConnectionRegistry) -> None:
    """Run one connection from accept to close."""
    connection = ClientConnection(websocket, registry)
    await connection.accept()
    sender = asyncio.create_task(connection.run_sender())
    connection.push({"type": "connected"})
    logger.info("WebSocket client connected")
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None and frame.get("bytes") is not None:
                raw = frame["bytes"].decode("utf-8", errors="replace")
            message = parse_client_message(raw)
            if message is not None:
                handle_message(connection, registry, message)
            if connection.state == ConnectionState.closed:
                break
    finally:
        connection.close()
        registry.unregister(connection)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        if connection.user_id is not None:
            logger.info("WebSocket client disconnected for user %s",
                        connection.user_id)
        else:
            logger.info("Unauthenticated WebSocket client disconnected")
