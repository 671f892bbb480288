import logging

from django.utils import timezone

from core.exceptions import NotFoundException
from notifications.models import Notification, NotificationChannel, NotificationPriority

logger = logging.getLogger(__name__)


class NotificationService:
    """Stores in-app notifications and marks them read."""

    def __init__(self, using="default"):
        self.using = using

    def send(self, user, notification_type, title, message, data=None, priority=NotificationPriority.NORMAL):
        notification = Notification.objects.using(self.using).create(
            user=user,
            type=notification_type,
            channel=NotificationChannel.IN_APP,
            title=title,
            message=message,
            priority=priority,
            data=data or {},
        )
        logger.info(f"Notification {notification_type} sent to {user}")
        return notification

    def for_user(self, user, unread_only=False):
        notifications = Notification.objects.using(self.using).filter(user=user)
        if unread_only:
            notifications = notifications.filter(read_at__isnull=True)
        return notifications

    def mark_read(self, notification_id, user):
        """
        Mark one of ``user``'s notifications as read.

        Reading an already read notification keeps its original ``read_at``.
        """
        notification = self.for_user(user).filter(pk=notification_id).first()
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.read_at is None:
            notification.read_at = timezone.now()
            notification.save(update_fields=["read_at"])
        return notification
