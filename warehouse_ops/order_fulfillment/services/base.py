"""
Shared plumbing for the order fulfillment services.
"""

from django.db.models import Case, IntegerField, Value, When

from notifications.events import EventPublisher
from warehouse.services.stock_control_service import StockControlService

from ..exceptions import NotFoundException
from ..models import Order, OrderStateChange, PRIORITY_RANK
from .workflow import validate_order_workflow


def priority_rank():
    """Annotation ranking URGENT highest, for queue ordering."""
    return Case(
        *[When(priority=priority, then=Value(rank)) for priority, rank in PRIORITY_RANK.items()],
        default=Value(0),
        output_field=IntegerField(),
    )


class FulfillmentService:
    """
    Base for services that mutate orders.

    Collaborators are injected so tests can swap the event publisher or
    point the service at another database alias.
    """

    def __init__(self, using="default", events=None, stock=None):
        self.using = using
        self.events = events or EventPublisher(using=using)
        self.stock = stock or StockControlService(using=using)

    def _orders(self):
        return Order.objects.using(self.using)

    def _get_order(self, order_id, lock=False):
        orders = self._orders().select_for_update() if lock else self._orders()
        order = orders.filter(order_id=order_id).first()
        if order is None:
            raise NotFoundException("Order", order_id)
        return order

    def _transition(self, order, new_status, user=None, reason=""):
        """Validate and apply a status change, recording it in the audit trail."""
        validate_order_workflow(order, new_status)
        previous = order.status
        order.status = new_status
        OrderStateChange.record(order, previous, new_status, user=user, reason=reason, using=self.using)
        return previous

    def _payload(self, order, **extra):
        data = {
            "order_id": order.order_id,
            "status": order.status,
            "progress": order.progress,
            "picker": order.picker.username if order.picker_id else None,
            "packer": order.packer.username if order.packer_id else None,
        }
        data.update(extra)
        return data
