"""
Connection registry - at most one live connection per user.
"""

import logging
import threading
from typing import Any

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Maps a user id to the connection that last authenticated as that user.

    One instance is created per application and handed to both the
    WebSocket endpoint and the push dispatcher. All access goes through a
    lock because HTTP handlers and socket handlers may run on different
    threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: dict[int, Any] = {}

    def register(self, user_id: int, connection: Any) -> None:
        """Bind ``connection`` to ``user_id``, replacing any previous one."""
        with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info("User %s re-registered; previous connection dropped",
                        user_id)

    def unregister(self, connection: Any) -> int | None:
        """Remove the entry pointing at this exact connection, if any."""
        with self._lock:
            for user_id, current in list(self._connections.items()):
                if current is connection:
                    del self._connections[user_id]
                    return user_id
        return None

    def lookup(self, user_id: int) -> Any | None:
        with self._lock:
            return self._connections.get(user_id)

    def connected_user_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._connections)

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
