from django.conf import settings
from django.db import models


class NotificationType(models.TextChoices):
    ORDER_CLAIMED = "ORDER_CLAIMED", "Order Claimed"
    ORDER_COMPLETED = "ORDER_COMPLETED", "Order Completed"
    ORDER_CANCELLED = "ORDER_CANCELLED", "Order Cancelled"
    ORDER_SHIPPED = "ORDER_SHIPPED", "Order Shipped"
    PICK_UPDATED = "PICK_UPDATED", "Pick Updated"
    ZONE_ASSIGNED = "ZONE_ASSIGNED", "Zone Assigned"
    EXCEPTION_RESOLVED = "EXCEPTION_RESOLVED", "Exception Resolved"
    QUALITY_APPROVED = "QUALITY_APPROVED", "Quality Approved"
    QUALITY_FAILED = "QUALITY_FAILED", "Quality Failed"
    LOW_STOCK = "LOW_STOCK", "Low Stock"
    SYSTEM = "SYSTEM", "System"


class NotificationChannel(models.TextChoices):
    IN_APP = "IN_APP", "In App"


class NotificationPriority(models.TextChoices):
    LOW = "LOW", "Low"
    NORMAL = "NORMAL", "Normal"
    HIGH = "HIGH", "High"
    URGENT = "URGENT", "Urgent"


class Notification(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications")
    type = models.CharField(max_length=30, choices=NotificationType.choices)
    channel = models.CharField(max_length=20, choices=NotificationChannel.choices, default=NotificationChannel.IN_APP)
    title = models.CharField(max_length=200)
    message = models.TextField()
    priority = models.CharField(
        max_length=10, choices=NotificationPriority.choices, default=NotificationPriority.NORMAL
    )
    data = models.JSONField(default=dict, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "read_at"]),
            models.Index(fields=["-created_at"]),
        ]

    def __str__(self):
        return f"{self.type} for {self.user} - {self.title}"

    @property
    def is_read(self):
        return self.read_at is not None
