"""
Pick task model for Order Fulfillment.
"""

import uuid
from django.db import models
from django.conf import settings
from django.db.models import F, Q


class PickTaskStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    COMPLETED = 'COMPLETED', 'Completed'
    SKIPPED = 'SKIPPED', 'Skipped'


def generate_pick_task_id():
    return f"PT-{uuid.uuid4().hex[:8].upper()}"


class PickTask(models.Model):
    """
    Instruction to pick one order item from its bin.

    A task is COMPLETED exactly when ``picked_quantity`` reaches
    ``quantity``; undoing a pick moves it back to IN_PROGRESS.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pick_task_id = models.CharField(
        max_length=20,
        unique=True,
        default=generate_pick_task_id,
        editable=False
    )
    order = models.ForeignKey(
        'Order',
        on_delete=models.CASCADE,
        related_name='pick_tasks'
    )
    order_item = models.ForeignKey(
        'OrderItem',
        on_delete=models.CASCADE,
        related_name='pick_tasks'
    )

    sku = models.CharField(max_length=100)
    name = models.CharField(max_length=255)
    target_bin = models.CharField(max_length=50)
    quantity = models.PositiveIntegerField()
    picked_quantity = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=PickTaskStatus.choices,
        default=PickTaskStatus.PENDING
    )
    picker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='pick_tasks'
    )

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    skipped_at = models.DateTimeField(null=True, blank=True)
    skip_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'pick_tasks'
        ordering = ['target_bin', 'pick_task_id']
        indexes = [
            models.Index(fields=['order', 'status']),
            models.Index(fields=['picker', 'status']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(picked_quantity__lte=F('quantity')), name='task_picked_within_quantity'
            ),
        ]

    def __str__(self):
        return f"Pick task {self.pick_task_id} - {self.status}"

    @property
    def remaining_quantity(self):
        return self.quantity - self.picked_quantity

    @property
    def is_done(self):
        return self.status in (PickTaskStatus.COMPLETED, PickTaskStatus.SKIPPED)
