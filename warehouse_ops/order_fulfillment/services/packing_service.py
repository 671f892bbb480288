"""
Packing Service for Order Fulfillment.

Handles the packing station: claiming picked orders, verifying items,
completing packing and shipping.
"""

import logging
import uuid
from django.db import transaction
from django.utils import timezone

from notifications.models import NotificationType

from ..models import Order, OrderItem, OrderItemStatus, OrderStatus, PickTaskStatus
from ..exceptions import ConflictException, NotFoundException, ValidationException
from .base import FulfillmentService, priority_rank

logger = logging.getLogger(__name__)


class PackingService(FulfillmentService):
    """Service class for packing and shipping operations."""

    def get_packing_queue(self):
        return (
            self._orders()
            .filter(status=OrderStatus.PICKED)
            .select_related('picker')
            .prefetch_related('items')
            .annotate(priority_rank=priority_rank())
            .order_by('-priority_rank', 'picked_at')
        )

    def claim_order_for_packing(self, order_id: str, packer) -> Order:
        """
        Claim a picked order at the packing station.

        Raises:
            NotFoundException: If the order does not exist
            ConflictException: If another packer holds it or it is not PICKED
        """
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.packer_id is not None and order.packer_id != packer.pk:
                raise ConflictException(
                    f"Order {order_id} is already being packed by another packer",
                    code="ORDER_ALREADY_CLAIMED"
                )
            if order.status != OrderStatus.PICKED:
                raise ConflictException(
                    f"Order {order_id} must be PICKED to start packing (currently {order.status})",
                    {"status": order.status}, code="ORDER_NOT_PACKABLE"
                )

            self._transition(order, OrderStatus.PACKING, packer)
            order.packer = packer
            order.save(update_fields=['status', 'packer', 'updated_at'])

        logger.info(f"Order {order_id} claimed for packing by {packer}")
        return order

    def verify_packing_item(self, order_id: str, order_item_id, quantity: int = 1, packer=None) -> OrderItem:
        with transaction.atomic(using=self.using):
            order, item = self._packing_item(order_id, order_item_id, packer)
            if quantity < 1:
                raise ValidationException("Quantity must be at least 1")
            if item.verified_quantity + quantity > item.quantity:
                raise ConflictException(
                    f"Cannot verify {quantity} more of {item.sku}; "
                    f"{item.verified_quantity} of {item.quantity} already verified",
                    {"verified": item.verified_quantity, "quantity": item.quantity}
                )

            item.verified_quantity += quantity
            item.save(update_fields=['verified_quantity'])

        logger.info(f"Verified {quantity} x {item.sku} on order {order_id}")
        return item

    def skip_packing_item(self, order_id: str, order_item_id, reason: str, packer=None) -> OrderItem:
        with transaction.atomic(using=self.using):
            order, item = self._packing_item(order_id, order_item_id, packer)
            item.status = OrderItemStatus.SKIPPED
            item.skip_reason = reason or ''
            item.save(update_fields=['status', 'skip_reason'])

        logger.info(f"Skipped {item.sku} while packing order {order_id}: {reason}")
        return item

    def undo_packing_verification(self, order_id: str, order_item_id, quantity: int = 1,
                                  reason: str = '', packer=None) -> OrderItem:
        """
        Take back verified units, or revert a skipped item to its pick status.
        """
        with transaction.atomic(using=self.using):
            order, item = self._packing_item(order_id, order_item_id, packer)

            if item.status == OrderItemStatus.SKIPPED and not self._skipped_while_picking(item):
                self._restore_pick_status(item)
                item.save(update_fields=['status', 'skip_reason'])
            else:
                if quantity < 1:
                    raise ValidationException("Quantity must be at least 1")
                if quantity > item.verified_quantity:
                    raise ConflictException(
                        f"Cannot undo {quantity}; only {item.verified_quantity} verified",
                        {"verified": item.verified_quantity, "requested": quantity}
                    )
                item.verified_quantity -= quantity
                item.save(update_fields=['verified_quantity'])

        logger.info(f"Packing verification undone for {item.sku} on order {order_id}: {reason}")
        return item

    def complete_packing(self, order_id: str, packer) -> Order:
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.status != OrderStatus.PACKING:
                raise ConflictException(f"Order {order_id} is not being packed", {"status": order.status})
            if order.packer_id != packer.pk:
                raise ConflictException(f"Order {order_id} is not assigned to you")

            self._transition(order, OrderStatus.PACKED, packer)
            order.packed_at = timezone.now()
            order.save(update_fields=['status', 'packed_at', 'updated_at'])

        logger.info(f"Order {order_id} packed by {packer}")
        return order

    def unclaim_packing_order(self, order_id: str, packer, reason: str = '') -> Order:
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.status != OrderStatus.PACKING:
                raise ValidationException(f"Order {order_id} is not being packed")
            if order.packer_id != packer.pk:
                raise ValidationException(f"Order {order_id} is not assigned to you")

            for item in order.items.all():
                item.verified_quantity = 0
                self._restore_pick_status(item)
                item.save(update_fields=['verified_quantity', 'status', 'skip_reason'])

            self._transition(order, OrderStatus.PICKED, packer, reason)
            order.packer = None
            order.save(update_fields=['status', 'packer', 'updated_at'])

        logger.info(f"Order {order_id} returned to packing queue by {packer}: {reason}")
        return order

    def ship_order(self, order_id: str, user) -> Order:
        """
        Ship a packed order.

        Picked units leave the warehouse; any reservation for units that
        were never picked is released.
        """
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            self._transition(order, OrderStatus.SHIPPED, user)

            for item in order.items.all():
                if item.picked_quantity:
                    self.stock.deduct_shipped(item.sku, item.bin_location, item.picked_quantity, order.order_id, user)
                unpicked = item.quantity - item.picked_quantity
                if unpicked:
                    self.stock.release_reservation(
                        item.sku, item.bin_location, unpicked, order.order_id, user,
                        reason="Unpicked quantity released on shipping"
                    )

            order.shipped_at = timezone.now()
            order.save(update_fields=['status', 'shipped_at', 'updated_at'])

            self.events.notify(
                order.created_by, NotificationType.ORDER_SHIPPED,
                "Order shipped", f"Order {order.order_id} has shipped",
                data={'order_id': order.order_id},
            )

        logger.info(f"Order {order_id} shipped by {user}")
        return order

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _packing_item(self, order_id, order_item_id, packer):
        order = self._get_order(order_id, lock=True)
        if order.status != OrderStatus.PACKING:
            raise ConflictException(f"Order {order_id} is not being packed", {"status": order.status})
        if packer is not None and order.packer_id != packer.pk:
            raise ValidationException(f"Order {order_id} is not assigned to you")

        try:
            item_pk = uuid.UUID(str(order_item_id))
        except ValueError:
            raise NotFoundException("Order item", order_item_id)
        item = order.items.select_for_update().filter(pk=item_pk).first()
        if item is None:
            raise NotFoundException("Order item", order_item_id)
        return order, item

    def _skipped_while_picking(self, item: OrderItem) -> bool:
        return item.pick_tasks.filter(status=PickTaskStatus.SKIPPED).exists()

    def _restore_pick_status(self, item: OrderItem) -> None:
        """Put an item back to the status picking left it in."""
        skipped_task = item.pick_tasks.filter(status=PickTaskStatus.SKIPPED).first()
        if skipped_task is not None:
            item.status = OrderItemStatus.SKIPPED
            item.skip_reason = skipped_task.skip_reason
        else:
            item.status = item.pick_status()
            item.skip_reason = ''
