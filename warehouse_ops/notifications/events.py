"""
Post-commit side effects: websocket broadcasts and in-app notifications.

Nothing here runs until the surrounding database transaction commits, so
a rolled-back operation never announces itself.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

EVENTS_GROUP = "warehouse_events"


def broadcast_now(event: str, data: dict) -> None:
    layer = get_channel_layer()
    if layer is None:
        logger.debug(f"No channel layer configured, dropping {event}")
        return
    async_to_sync(layer.group_send)(
        EVENTS_GROUP,
        {"type": "warehouse.event", "data": {"event": event, "payload": data}},
    )


class EventPublisher:
    """
    Queues broadcasts and notifications for after the current transaction.

    Outside a transaction the callbacks run immediately.
    """

    def __init__(self, using="default", notifications=None):
        self.using = using
        self.notifications = notifications or NotificationService(using=using)

    def broadcast(self, event: str, data: dict) -> None:
        transaction.on_commit(lambda: self._safe(broadcast_now, event, data), using=self.using)

    def notify(self, user, notification_type, title, message, data=None, **kwargs) -> None:
        if user is None:
            return
        transaction.on_commit(
            lambda: self._safe(
                self.notifications.send, user, notification_type, title, message, data=data, **kwargs
            ),
            using=self.using,
        )

    def _safe(self, func, *args, **kwargs):
        # The business change is already committed; a failed side effect is logged, not raised.
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception(f"Post-commit side effect {getattr(func, '__name__', func)} failed")
