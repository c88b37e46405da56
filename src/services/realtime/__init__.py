"""
Real-time notification delivery - registry, connections, dispatcher, client.
"""

from services.realtime.registry import ConnectionRegistry  # noqa: F401
from services.realtime.connection import (  # noqa: F401
    ClientConnection,
    ConnectionState,
    serve_connection,
)
from services.realtime.dispatcher import PushDispatcher  # noqa: F401
from services.realtime.subscriber import NotificationSubscriber  # noqa: F401
