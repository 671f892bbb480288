"""
OrderItem model for Order Fulfillment.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.db.models import F, Q


class OrderItemStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PARTIAL_PICKED = 'PARTIAL_PICKED', 'Partially Picked'
    FULLY_PICKED = 'FULLY_PICKED', 'Fully Picked'
    SKIPPED = 'SKIPPED', 'Skipped'


class OrderItem(models.Model):
    """
    One SKU line of an order, reserved from a single bin.

    ``picked_quantity`` mirrors the pick task; ``verified_quantity`` is
    counted at the packing station.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'Order',
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Order this item belongs to"
    )

    sku = models.CharField(max_length=100, help_text="SKU code at time of order")
    name = models.CharField(max_length=255, help_text="SKU name at time of order")
    bin_location = models.CharField(max_length=50, help_text="Bin the quantity was reserved from")

    quantity = models.PositiveIntegerField()
    picked_quantity = models.PositiveIntegerField(default=0)
    verified_quantity = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=OrderItemStatus.choices,
        default=OrderItemStatus.PENDING
    )
    skip_reason = models.TextField(blank=True)

    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    class Meta:
        db_table = 'order_items'
        ordering = ['sku']
        indexes = [
            models.Index(fields=['order', 'sku']),
        ]
        constraints = [
            models.UniqueConstraint(fields=['order', 'sku'], name='unique_sku_per_order'),
            models.CheckConstraint(condition=Q(picked_quantity__lte=F('quantity')), name='item_picked_within_quantity'),
            models.CheckConstraint(
                condition=Q(verified_quantity__lte=F('quantity')), name='item_verified_within_quantity'
            ),
        ]

    def __str__(self):
        return f"{self.sku} x {self.quantity} ({self.order.order_id})"

    def save(self, *args, **kwargs):
        self.line_total = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    def pick_status(self):
        """Status derived from the picked quantity alone."""
        if self.picked_quantity >= self.quantity:
            return OrderItemStatus.FULLY_PICKED
        if self.picked_quantity > 0:
            return OrderItemStatus.PARTIAL_PICKED
        return OrderItemStatus.PENDING
