"""
Push dispatcher - best-effort real-time delivery of stored notifications.

The notification row is already committed when ``dispatch`` runs, so a
missing or broken connection only means the recipient sees it on the
next read of their notification list.
"""

import logging

from services.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class PushDispatcher:
    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def dispatch(self, notification: dict) -> bool:
        """Queue the notification on the recipient's connection, if any."""
        recipient_id = notification.get("user_id")
        connection = self.registry.lookup(recipient_id)
        if connection is None or not connection.is_open:
            logger.debug("User %s not connected; notification %s not pushed",
                         recipient_id, notification.get("id"))
            return False
        try:
            queued = connection.push({"type": "notification", "data": notification})
        except Exception:
            logger.exception("Push of notification %s to user %s failed",
                             notification.get("id"), recipient_id)
            return False
        if queued:
            logger.debug("Pushed notification %s to user %s",
                         notification.get("id"), recipient_id)
        return queued

    def dispatch_all(self, notifications: list) -> int:
        """Dispatch each notification; returns how many were queued."""
        return sum(1 for n in notifications if self.dispatch(n))
