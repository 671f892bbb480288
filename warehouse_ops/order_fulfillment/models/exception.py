"""
Order exception model for Order Fulfillment.
"""

import uuid
from django.db import models
from django.conf import settings


class ExceptionType(models.TextChoices):
    """Problems found while fulfilling an order line."""
    SHORT_PICK = 'SHORT_PICK', 'Short Pick'
    SHORT_PICK_BACKORDER = 'SHORT_PICK_BACKORDER', 'Short Pick (Backorder)'
    DAMAGE = 'DAMAGE', 'Damage'
    DEFECTIVE = 'DEFECTIVE', 'Defective'
    WRONG_ITEM = 'WRONG_ITEM', 'Wrong Item'
    SUBSTITUTION = 'SUBSTITUTION', 'Substitution'
    OUT_OF_STOCK = 'OUT_OF_STOCK', 'Out of Stock'
    BIN_MISMATCH = 'BIN_MISMATCH', 'Bin Mismatch'
    BARCODE_MISMATCH = 'BARCODE_MISMATCH', 'Barcode Mismatch'
    EXPIRED = 'EXPIRED', 'Expired'
    OTHER = 'OTHER', 'Other'


class ExceptionStatus(models.TextChoices):
    OPEN = 'OPEN', 'Open'
    REVIEWING = 'REVIEWING', 'Reviewing'
    RESOLVED = 'RESOLVED', 'Resolved'


class ExceptionResolution(models.TextChoices):
    BACKORDER = 'BACKORDER', 'Backorder'
    SUBSTITUTE = 'SUBSTITUTE', 'Substitute'
    CANCEL_ORDER = 'CANCEL_ORDER', 'Cancel Order'
    RETURN_TO_STOCK = 'RETURN_TO_STOCK', 'Return to Stock'
    WRITE_OFF = 'WRITE_OFF', 'Write Off'
    CONTACT_CUSTOMER = 'CONTACT_CUSTOMER', 'Contact Customer'
    MANUAL_OVERRIDE = 'MANUAL_OVERRIDE', 'Manual Override'


def generate_exception_id():
    return f"EXC-{uuid.uuid4().hex[:10].upper()}"


class OrderException(models.Model):
    """
    A reported problem with one line of an order.

    Short picks that need a backorder start in REVIEWING; everything else
    starts OPEN. Resolution is final.
    """

    exception_id = models.CharField(
        max_length=20,
        unique=True,
        default=generate_exception_id,
        editable=False
    )
    order = models.ForeignKey(
        'Order',
        on_delete=models.CASCADE,
        related_name='exceptions'
    )
    order_item = models.ForeignKey(
        'OrderItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='exceptions'
    )
    sku = models.CharField(max_length=100)
    type = models.CharField(max_length=30, choices=ExceptionType.choices)
    status = models.CharField(
        max_length=20,
        choices=ExceptionStatus.choices,
        default=ExceptionStatus.OPEN
    )

    quantity_expected = models.PositiveIntegerField(default=0)
    quantity_actual = models.PositiveIntegerField(default=0)
    quantity_short = models.IntegerField(default=0)
    reason = models.TextField()
    substitute_sku = models.CharField(max_length=100, blank=True)

    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='reported_exceptions'
    )
    reported_at = models.DateTimeField(auto_now_add=True)

    resolution = models.CharField(max_length=30, choices=ExceptionResolution.choices, blank=True)
    resolution_notes = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_exceptions'
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'order_exceptions'
        ordering = ['-reported_at', '-id']
        indexes = [
            models.Index(fields=['status', 'type']),
            models.Index(fields=['order', 'status']),
            models.Index(fields=['sku']),
        ]

    def __str__(self):
        return f"{self.exception_id} {self.type} on {self.order.order_id} ({self.status})"

    @property
    def is_resolved(self):
        return self.status == ExceptionStatus.RESOLVED
