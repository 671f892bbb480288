"""
Exceptions raised by the order fulfillment services.
"""

from core.exceptions import (  # noqa: F401
    BusinessException,
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)


class InventoryUnavailableException(ConflictException):
    """Raised when no bin can cover the requested quantity of a SKU."""

    def __init__(self, sku: str, requested_qty: int, available_qty: int = 0):
        message = f"Insufficient inventory for SKU {sku}: requested {requested_qty}, available {available_qty}"
        super().__init__(message, {
            "sku": sku,
            "requested_quantity": requested_qty,
            "available_quantity": available_qty
        }, code="INVENTORY_UNAVAILABLE")
