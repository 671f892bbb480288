"""
Exception Service for Order Fulfillment.

Records problems found while fulfilling an order (short picks, damage,
wrong items, ...) and applies the supervisor's resolution.
"""

import logging
from typing import Dict, Any
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from notifications.models import NotificationType
from products.models import Sku

from ..models import (
    ExceptionResolution, ExceptionStatus, ExceptionType, OrderException
)
from ..exceptions import ConflictException, NotFoundException, ValidationException
from .base import FulfillmentService
from .order_service import OrderService

logger = logging.getLogger(__name__)


class ExceptionService(FulfillmentService):
    """Service class for logging and resolving order exceptions."""

    def __init__(self, using="default", events=None, stock=None, orders=None):
        super().__init__(using=using, events=events, stock=stock)
        self.orders = orders or OrderService(using=using, events=self.events, stock=self.stock)

    def _exceptions(self):
        return OrderException.objects.using(self.using).select_related(
            'order', 'order_item', 'reported_by', 'resolved_by'
        )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def log_exception(self, data: Dict[str, Any], user) -> OrderException:
        """
        Record a problem against one line of an order.

        Args:
            data: ``order_id``, ``sku``, ``type``, ``quantity_expected``,
                ``quantity_actual``, ``reason`` and optional ``substitute_sku``
            user: Reporting user

        Raises:
            NotFoundException: Unknown order
            ValidationException: The SKU is not on the order
        """
        with transaction.atomic(using=self.using):
            order = self._get_order(data['order_id'])
            item = order.items.filter(sku=data['sku']).first()
            if item is None:
                raise ValidationException(
                    f"SKU {data['sku']} is not on order {order.order_id}", {'sku': data['sku']}
                )

            expected = data.get('quantity_expected', item.quantity)
            actual = data.get('quantity_actual', 0)
            if actual > expected:
                raise ValidationException(
                    "quantity_actual cannot exceed quantity_expected",
                    {'quantity_expected': expected, 'quantity_actual': actual},
                )
            initial_status = (
                ExceptionStatus.REVIEWING
                if data['type'] == ExceptionType.SHORT_PICK_BACKORDER
                else ExceptionStatus.OPEN
            )

            exception = OrderException.objects.using(self.using).create(
                order=order,
                order_item=item,
                sku=item.sku,
                type=data['type'],
                status=initial_status,
                quantity_expected=expected,
                quantity_actual=actual,
                quantity_short=expected - actual,
                reason=data['reason'],
                substitute_sku=data.get('substitute_sku') or '',
                reported_by=user,
            )

            self.events.broadcast('exception-reported', self._exception_payload(exception))

        logger.info(f"Exception {exception.exception_id} ({exception.type}) logged on {order.order_id} by {user}")
        return exception

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_exception(self, exception_id: str) -> OrderException:
        exception = self._exceptions().filter(exception_id=exception_id).first()
        if exception is None:
            raise NotFoundException("Exception", exception_id)
        return exception

    def get_exceptions(self, status=None, order_id=None, sku=None, exception_type=None):
        exceptions = self._exceptions()
        if status:
            exceptions = exceptions.filter(status=status)
        if order_id:
            exceptions = exceptions.filter(order__order_id=order_id)
        if sku:
            exceptions = exceptions.filter(sku=sku)
        if exception_type:
            exceptions = exceptions.filter(type=exception_type)
        return exceptions.order_by('-reported_at', '-id')

    def get_open_exceptions(self, order_id=None, sku=None, exception_type=None):
        """Exceptions still awaiting a resolution."""
        return self.get_exceptions(order_id=order_id, sku=sku, exception_type=exception_type).exclude(
            status=ExceptionStatus.RESOLVED
        )

    def get_summary(self) -> Dict[str, Any]:
        exceptions = OrderException.objects.using(self.using)
        totals = exceptions.aggregate(
            total=Count('id'),
            open=Count('id', filter=Q(status=ExceptionStatus.OPEN)),
            reviewing=Count('id', filter=Q(status=ExceptionStatus.REVIEWING)),
            resolved=Count('id', filter=Q(status=ExceptionStatus.RESOLVED)),
        )
        by_type = exceptions.order_by().values('type').annotate(count=Count('id'))
        totals['by_type'] = {row['type']: row['count'] for row in by_type}
        return totals

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_exception(self, exception_id: str, data: Dict[str, Any], user) -> OrderException:
        """
        Close an exception with a resolution.

        CANCEL_ORDER cancels the order, WRITE_OFF removes the short
        quantity from the line's bin, SUBSTITUTE records a catalog SKU to
        ship instead. Other resolutions are recorded as decided.

        Raises:
            NotFoundException: Unknown exception or substitute SKU
            ConflictException: The exception is already resolved
            ValidationException: SUBSTITUTE without a substitute SKU
        """
        resolution = data['resolution']
        notes = data.get('notes') or ''

        with transaction.atomic(using=self.using):
            exception = OrderException.objects.using(self.using).select_for_update().filter(
                exception_id=exception_id
            ).first()
            if exception is None:
                raise NotFoundException("Exception", exception_id)
            if exception.is_resolved:
                raise ConflictException(
                    f"Exception {exception_id} is already resolved",
                    {'resolution': exception.resolution},
                    code='EXCEPTION_RESOLVED',
                )

            if resolution == ExceptionResolution.SUBSTITUTE:
                substitute = data.get('substitute_sku') or exception.substitute_sku
                if not substitute:
                    raise ValidationException(
                        "A substitute SKU is required", {'substitute_sku': 'required'}
                    )
                if not Sku.objects.using(self.using).filter(sku=substitute).exists():
                    raise NotFoundException("SKU", substitute)
                exception.substitute_sku = substitute

            elif resolution == ExceptionResolution.CANCEL_ORDER:
                reason = f"Exception {exception_id}: {notes}" if notes else f"Exception {exception_id}"
                self.orders.cancel_order(exception.order.order_id, user, reason=reason)

            elif resolution == ExceptionResolution.WRITE_OFF and exception.quantity_short > 0:
                if exception.order_item is None:
                    raise ValidationException("Exception has no order line to write off")
                self.stock.adjust_inventory(
                    exception.sku,
                    exception.order_item.bin_location,
                    -exception.quantity_short,
                    f"Write-off for exception {exception_id}",
                    user,
                )

            exception.status = ExceptionStatus.RESOLVED
            exception.resolution = resolution
            exception.resolution_notes = notes
            exception.resolved_by = user
            exception.resolved_at = timezone.now()
            exception.save()

            self.events.broadcast('exception-resolved', self._exception_payload(exception))
            self.events.notify(
                exception.reported_by, NotificationType.EXCEPTION_RESOLVED,
                "Exception resolved",
                f"Exception {exception_id} on order {exception.order.order_id} resolved: {resolution}",
                data={'exception_id': exception_id, 'resolution': resolution},
            )

        logger.info(f"Exception {exception_id} resolved by {user}: {resolution}")
        return exception

    def _exception_payload(self, exception):
        return {
            'exception_id': exception.exception_id,
            'order_id': exception.order.order_id,
            'sku': exception.sku,
            'type': exception.type,
            'status': exception.status,
        }
