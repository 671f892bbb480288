"""
Order status audit trail.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


def generate_change_id():
    return f"OSC-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:10].upper()}"


class OrderStateChange(models.Model):
    """One row per order status transition."""

    change_id = models.CharField(max_length=40, unique=True, default=generate_change_id, editable=False)
    order = models.ForeignKey('Order', on_delete=models.CASCADE, related_name='state_changes')
    from_status = models.CharField(max_length=20)
    to_status = models.CharField(max_length=20)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='order_state_changes'
    )
    reason = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'order_state_changes'
        ordering = ['timestamp', 'id']
        indexes = [
            models.Index(fields=['order', 'timestamp']),
        ]

    def __str__(self):
        return f"{self.order.order_id}: {self.from_status} -> {self.to_status}"

    @classmethod
    def record(cls, order, from_status, to_status, user=None, reason='', using='default'):
        """Write an audit row for a transition."""
        return cls.objects.using(using).create(
            order=order,
            from_status=from_status,
            to_status=to_status,
            user=user,
            reason=reason or '',
        )
