"""
Order Service for Order Fulfillment.

Handles order creation, the picking workflow (claim, pick, undo, skip,
unclaim, complete) and cancellation.
"""

import logging
import math
from decimal import Decimal
from typing import Dict, Any
from django.conf import settings
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from notifications.models import NotificationType
from products.models import Sku
from warehouse.models import InventoryUnit

from ..models import (
    Order, OrderItem, OrderItemStatus, OrderPriority, OrderStatus,
    PickTask, PickTaskStatus
)
from ..exceptions import (
    ConflictException, InventoryUnavailableException, NotFoundException, ValidationException
)
from .base import FulfillmentService, priority_rank

logger = logging.getLogger(__name__)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class OrderService(FulfillmentService):
    """Service class for order and picking operations."""

    def max_active_orders(self) -> int:
        return getattr(settings, 'MAX_ACTIVE_ORDERS_PER_PICKER', 5)

    # ------------------------------------------------------------------
    # Creation and queries
    # ------------------------------------------------------------------

    def create_order(self, order_data: Dict[str, Any], created_by=None) -> Order:
        """
        Create a new order, reserving stock for every item.

        Args:
            order_data: customer_id, customer_name, priority, notes and
                items (list of ``{"sku", "quantity"}``)
            created_by: User creating the order

        Returns:
            Created Order instance

        Raises:
            ValidationException: If the items are malformed
            NotFoundException: If a SKU is unknown or inactive
            InventoryUnavailableException: If no bin can cover a quantity
        """
        items_data = order_data.get('items') or []
        if not items_data:
            raise ValidationException("Order must contain at least one item")

        seen = set()
        for index, item_data in enumerate(items_data):
            sku = item_data.get('sku')
            if not sku:
                raise ValidationException(f"Item {index} is missing a SKU", {"items": {index: "sku is required"}})
            if not _is_positive_int(item_data.get('quantity')):
                raise ValidationException(
                    f"Quantity for {sku} must be a positive integer",
                    {"items": {index: "quantity must be a positive integer"}}
                )
            if sku in seen:
                raise ValidationException(f"Duplicate SKU in order: {sku}", {"items": {index: "duplicate sku"}})
            seen.add(sku)

        with transaction.atomic(using=self.using):
            order = self._orders().create(
                customer_id=order_data.get('customer_id', ''),
                customer_name=order_data.get('customer_name', ''),
                priority=order_data.get('priority', OrderPriority.NORMAL),
                notes=order_data.get('notes', ''),
                created_by=created_by,
            )

            subtotal = Decimal('0.00')
            for item_data in items_data:
                code, quantity = item_data['sku'], item_data['quantity']
                sku = Sku.objects.using(self.using).active().filter(sku=code).first()
                if sku is None:
                    raise NotFoundException("SKU", code)

                unit = self.stock.find_pick_unit(code, quantity)
                if unit is None:
                    available = (
                        InventoryUnit.objects.using(self.using)
                        .filter(sku_id=code)
                        .aggregate(q=Sum('quantity'), r=Sum('reserved'))
                    )
                    raise InventoryUnavailableException(
                        code, quantity, (available['q'] or 0) - (available['r'] or 0)
                    )

                item = OrderItem(
                    order=order,
                    sku=code,
                    name=sku.name,
                    bin_location=unit.bin_location_id,
                    quantity=quantity,
                    unit_price=sku.unit_price,
                )
                item.save(using=self.using)
                self.stock.reserve_stock(unit, quantity, order.order_id, created_by)
                subtotal += item.line_total

            order.subtotal = subtotal
            order.total_amount = subtotal + order.tax_amount + order.shipping_amount
            order.save(update_fields=['subtotal', 'total_amount', 'updated_at'])

        logger.info(f"Order {order.order_id} created with {len(items_data)} items by {created_by}")
        return order

    def get_order(self, order_id: str) -> Order:
        return self._get_order(order_id)

    def get_order_queue(self, status=None, priority=None, picker=None):
        """
        Orders for the picking queue, most urgent and oldest first.

        The PENDING queue only lists orders nobody has claimed.
        """
        orders = self._orders().select_related('picker', 'packer').prefetch_related('items')
        if status:
            orders = orders.filter(status=status)
            if status == OrderStatus.PENDING:
                orders = orders.filter(picker__isnull=True)
        if priority:
            orders = orders.filter(priority=priority)
        if picker:
            orders = orders.filter(picker=picker)
        return orders.annotate(priority_rank=priority_rank()).order_by('-priority_rank', 'created_at')

    def get_user_orders(self, user):
        """Orders the user currently holds, for picking or for packing."""
        orders = self._orders().filter(
            Q(picker=user, status=OrderStatus.PICKING) | Q(packer=user, status=OrderStatus.PACKING)
        )
        return orders.annotate(priority_rank=priority_rank()).order_by('-priority_rank', 'created_at')

    def get_order_progress(self, order_id: str) -> Dict[str, Any]:
        order = self._get_order(order_id)
        statuses = list(order.pick_tasks.values_list('status', flat=True))
        counts = {status: statuses.count(status) for status in PickTaskStatus.values}
        return {
            'order_id': order.order_id,
            'status': order.status,
            'total': len(statuses),
            'pending': counts[PickTaskStatus.PENDING],
            'in_progress': counts[PickTaskStatus.IN_PROGRESS],
            'completed': counts[PickTaskStatus.COMPLETED],
            'skipped': counts[PickTaskStatus.SKIPPED],
            'percentage': self._progress(order),
        }

    def get_next_pick_task(self, order_id: str):
        """First task still to pick, in bin walk order, or None."""
        order = self._get_order(order_id)
        return order.pick_tasks.filter(
            status__in=[PickTaskStatus.PENDING, PickTaskStatus.IN_PROGRESS]
        ).first()

    # ------------------------------------------------------------------
    # Picking workflow
    # ------------------------------------------------------------------

    def claim_order(self, order_id: str, picker) -> Order:
        """
        Claim a pending order for picking and generate its pick tasks.

        Raises:
            NotFoundException: If the order does not exist
            ConflictException: If the order is not claimable or the picker
                already holds the maximum number of active orders
        """
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)

            if order.status != OrderStatus.PENDING:
                raise ConflictException(
                    f"Order {order_id} cannot be claimed in status {order.status}",
                    {"status": order.status}, code="ORDER_NOT_CLAIMABLE"
                )
            if order.picker_id is not None:
                raise ConflictException(f"Order {order_id} is already claimed", code="ORDER_ALREADY_CLAIMED")

            limit = self.max_active_orders()
            active = self._orders().filter(picker=picker, status=OrderStatus.PICKING).count()
            if active >= limit:
                raise ConflictException(
                    f"Picker already has {active} active orders (limit {limit})",
                    {"active_orders": active, "limit": limit}, code="TOO_MANY_ACTIVE_ORDERS"
                )

            self._transition(order, OrderStatus.PICKING, picker)
            order.picker = picker
            order.claimed_at = timezone.now()
            order.progress = 0
            order.save(update_fields=['status', 'picker', 'claimed_at', 'progress', 'updated_at'])

            PickTask.objects.using(self.using).filter(order=order).delete()
            for item in order.items.all():
                PickTask.objects.using(self.using).create(
                    order=order,
                    order_item=item,
                    sku=item.sku,
                    name=item.name,
                    target_bin=item.bin_location,
                    quantity=item.quantity,
                    picker=picker,
                )

            self.events.broadcast('order-claimed', self._payload(order))
            self.events.notify(
                picker, NotificationType.ORDER_CLAIMED,
                "Order claimed", f"You claimed order {order.order_id}",
                data={'order_id': order.order_id},
            )

        logger.info(f"Order {order_id} claimed by {picker}")
        return order

    def continue_order(self, order_id: str, user) -> Dict[str, Any]:
        order = self._get_order(order_id)
        if order.status != OrderStatus.PICKING:
            raise ValidationException(f"Order {order_id} is not being picked")
        if order.picker_id != user.pk:
            raise ValidationException(f"Order {order_id} is not assigned to you")
        return {'order_id': order.order_id, 'status': order.status}

    def pick_item(self, order_id: str, data: Dict[str, Any], picker) -> Dict[str, Any]:
        """
        Confirm a scan against a pick task.

        Args:
            order_id: Order id
            data: ``pick_task_id``, scanned ``sku`` (SKU code or barcode),
                scanned ``bin_location`` and ``quantity`` (default 1)
            picker: Picker performing the scan

        Returns:
            Dict with success flag, updated order, pick task and a message

        Raises:
            NotFoundException: Order or task missing
            ValidationException: Any guard on state, scan or quantity fails
        """
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.status != OrderStatus.PICKING:
                raise ValidationException(f"Order {order_id} is not being picked")
            if order.picker_id != picker.pk:
                raise ValidationException(f"Order {order_id} is not assigned to you")

            task = self._get_task(data.get('pick_task_id'), lock=True)
            if task.order_id != order.pk:
                raise ValidationException("Pick task does not belong to this order")
            if task.status == PickTaskStatus.COMPLETED and task.picked_quantity >= task.quantity:
                raise ValidationException(f"Pick task {task.pick_task_id} is already completed")
            if task.status == PickTaskStatus.SKIPPED:
                raise ValidationException(f"Pick task {task.pick_task_id} was skipped")

            scanned = Sku.objects.using(self.using).resolve_code(data.get('sku') or '')
            if scanned != task.sku:
                raise ValidationException(
                    f"Wrong SKU. Expected: {task.sku}, scanned: {data.get('sku')}",
                    {"expected": task.sku, "scanned": data.get('sku')}
                )
            scanned_bin = data.get('bin_location') or ''
            if scanned_bin != task.target_bin:
                raise ValidationException(
                    f"Wrong bin location. Expected: {task.target_bin}, scanned: {scanned_bin}",
                    {"expected": task.target_bin, "scanned": scanned_bin}
                )

            quantity = data.get('quantity', 1)
            remaining = task.remaining_quantity
            if not _is_positive_int(quantity):
                raise ValidationException("Quantity must be at least 1")
            if quantity > remaining:
                raise ValidationException(
                    f"Cannot pick {quantity}; only {remaining} remaining",
                    {"remaining": remaining, "requested": quantity}
                )

            now = timezone.now()
            task.picked_quantity += quantity
            task.picker = picker
            task.started_at = task.started_at or now
            if task.picked_quantity >= task.quantity:
                task.status = PickTaskStatus.COMPLETED
                task.completed_at = now
            else:
                task.status = PickTaskStatus.IN_PROGRESS
            task.save(using=self.using)

            self._sync_item(task)
            order.progress = self._progress(order)
            order.save(update_fields=['progress', 'updated_at'])

            self.stock.record_pick(task.sku, task.target_bin, quantity, order.order_id, picker)

            task_completed = task.status == PickTaskStatus.COMPLETED
            payload = self._payload(order, pick_task_id=task.pick_task_id, picked_quantity=task.picked_quantity)
            self.events.broadcast('pick-updated', payload)
            if task_completed:
                self.events.broadcast('pick-completed', payload)

        logger.info(f"Picked {quantity} x {task.sku} for order {order_id} ({task.picked_quantity}/{task.quantity})")
        return {
            'success': True,
            'order': order,
            'pick_task': task,
            'message': (
                f"Pick task {task.pick_task_id} completed" if task_completed
                else f"Picked {task.picked_quantity} of {task.quantity}"
            ),
        }

    def undo_pick(self, pick_task_id: str, quantity: int, reason: str, user) -> Dict[str, Any]:
        """
        Reverse part or all of a confirmed pick.

        Over-sized undos are rejected rather than clamped.
        """
        with transaction.atomic(using=self.using):
            task = self._get_task(pick_task_id)
            order = self._orders().select_for_update().get(pk=task.order_id)
            task = self._get_task(pick_task_id, lock=True)

            if order.status != OrderStatus.PICKING:
                raise ValidationException(f"Order {order.order_id} is not being picked")
            if task.status == PickTaskStatus.SKIPPED:
                raise ValidationException(f"Pick task {task.pick_task_id} was skipped")
            if not _is_positive_int(quantity):
                raise ValidationException("Quantity must be at least 1")
            if quantity > task.picked_quantity:
                raise ValidationException(
                    f"Cannot undo {quantity}; only {task.picked_quantity} picked",
                    {"picked": task.picked_quantity, "requested": quantity}
                )

            task.picked_quantity -= quantity
            if task.picked_quantity < task.quantity and task.status == PickTaskStatus.COMPLETED:
                task.status = PickTaskStatus.IN_PROGRESS
                task.completed_at = None
            task.save(using=self.using)

            self._sync_item(task)
            order.progress = self._progress(order)
            order.save(update_fields=['progress', 'updated_at'])

            self.stock.record_pick(
                task.sku, task.target_bin, -quantity, order.order_id, user,
                reason=f"Pick undone: {reason}" if reason else "Pick undone"
            )
            self.events.broadcast(
                'pick-updated',
                self._payload(order, pick_task_id=task.pick_task_id, picked_quantity=task.picked_quantity)
            )

        logger.info(f"Undid {quantity} x {task.sku} on {pick_task_id} by {user}: {reason}")
        return {'success': True, 'order': order, 'pick_task': task}

    def skip_pick_task(self, order_id: str, pick_task_id: str, reason: str, picker) -> PickTask:
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.status != OrderStatus.PICKING:
                raise ValidationException(f"Order {order_id} is not being picked")
            if order.picker_id != picker.pk:
                raise ValidationException(f"Order {order_id} is not assigned to you")

            task = self._get_task(pick_task_id, lock=True)
            if task.order_id != order.pk:
                raise ValidationException("Pick task does not belong to this order")
            if task.status == PickTaskStatus.COMPLETED:
                raise ConflictException(f"Pick task {pick_task_id} is already completed")

            task.status = PickTaskStatus.SKIPPED
            task.skipped_at = timezone.now()
            task.skip_reason = reason or ''
            task.save(using=self.using)

            item = task.order_item
            item.status = OrderItemStatus.SKIPPED
            item.skip_reason = reason or ''
            item.save(update_fields=['status', 'skip_reason'])

            order.progress = self._progress(order)
            order.save(update_fields=['progress', 'updated_at'])
            self.events.broadcast('pick-updated', self._payload(order, pick_task_id=task.pick_task_id))

        logger.info(f"Pick task {pick_task_id} skipped by {picker}: {reason}")
        return task

    def unclaim_order(self, order_id: str, user, reason: str = '') -> Order:
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.status != OrderStatus.PICKING:
                raise ValidationException(f"Order {order_id} is not being picked")
            if order.picker_id != user.pk:
                raise ValidationException(f"Order {order_id} is not assigned to you")

            order.items.update(picked_quantity=0, status=OrderItemStatus.PENDING, skip_reason='')
            PickTask.objects.using(self.using).filter(order=order).delete()

            self._transition(order, OrderStatus.PENDING, user, reason)
            order.picker = None
            order.claimed_at = None
            order.progress = 0
            order.save(update_fields=['status', 'picker', 'claimed_at', 'progress', 'updated_at'])

        logger.info(f"Order {order_id} unclaimed by {user}: {reason}")
        return order

    def complete_order(self, order_id: str, picker) -> Order:
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            self._transition(order, OrderStatus.PICKED, picker)
            if order.picker_id != picker.pk:
                raise ValidationException(f"Order {order_id} is not assigned to you")

            open_tasks = order.pick_tasks.exclude(status__in=[PickTaskStatus.COMPLETED, PickTaskStatus.SKIPPED])
            if open_tasks.exists():
                raise ConflictException(
                    f"Order {order_id} still has {open_tasks.count()} unfinished pick tasks",
                    {"open_tasks": list(open_tasks.values_list('pick_task_id', flat=True))},
                    code="PICKING_INCOMPLETE"
                )

            order.picked_at = timezone.now()
            order.save(update_fields=['status', 'picked_at', 'updated_at'])

            self.events.broadcast('order-completed', self._payload(order))
            self.events.notify(
                picker, NotificationType.ORDER_COMPLETED,
                "Order ready for packing", f"Order {order.order_id} is picked and ready for packing",
                data={'order_id': order.order_id},
            )

        logger.info(f"Order {order_id} picked by {picker}")
        return order

    def cancel_order(self, order_id: str, user, reason: str = '') -> Order:
        """
        Cancel an order and release its stock reservations.

        Cancelling an already cancelled order returns it unchanged.
        """
        with transaction.atomic(using=self.using):
            order = self._get_order(order_id, lock=True)
            if order.status == OrderStatus.CANCELLED:
                return order

            self._transition(order, OrderStatus.CANCELLED, user, reason)
            for item in order.items.all():
                self.stock.release_reservation(
                    item.sku, item.bin_location, item.quantity, order.order_id, user,
                    reason=f"Order cancelled: {reason}" if reason else "Order cancelled"
                )

            order.cancel_reason = reason or ''
            order.cancelled_at = timezone.now()
            order.save(update_fields=['status', 'cancel_reason', 'cancelled_at', 'updated_at'])

            self.events.broadcast('order-cancelled', self._payload(order, reason=order.cancel_reason))
            self.events.notify(
                user, NotificationType.ORDER_CANCELLED,
                "Order cancelled", f"Order {order.order_id} was cancelled",
                data={'order_id': order.order_id, 'reason': order.cancel_reason},
            )

        logger.info(f"Order {order_id} cancelled by {user}: {reason}")
        return order

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_task(self, pick_task_id, lock=False) -> PickTask:
        tasks = PickTask.objects.using(self.using)
        if lock:
            tasks = tasks.select_for_update()
        task = tasks.filter(pick_task_id=pick_task_id).first() if pick_task_id else None
        if task is None:
            raise NotFoundException("Pick task", pick_task_id)
        return task

    def _sync_item(self, task: PickTask) -> OrderItem:
        item = task.order_item
        item.picked_quantity = task.picked_quantity
        item.status = item.pick_status()
        item.save(update_fields=['picked_quantity', 'status'])
        return item

    def _progress(self, order: Order) -> int:
        tasks = PickTask.objects.using(self.using).filter(order=order)
        total = tasks.count()
        if total == 0:
            return 0
        completed = tasks.filter(status=PickTaskStatus.COMPLETED).count()
        return int(math.floor(completed / total * 100 + 0.5))
