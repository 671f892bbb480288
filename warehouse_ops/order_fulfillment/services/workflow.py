"""
Workflow rules for Order Fulfillment.

Holds the allowed order status transitions and the guard used by every
service before it changes an order's status.
"""

from ..exceptions import InvalidTransitionException
from ..models import Order, OrderStatus


class OrderWorkflow:
    """Workflow rules for Order state transitions."""

    ALLOWED_TRANSITIONS = {
        OrderStatus.PENDING: [OrderStatus.PICKING, OrderStatus.CANCELLED],
        OrderStatus.PICKING: [OrderStatus.PICKED, OrderStatus.PENDING, OrderStatus.CANCELLED],
        OrderStatus.PICKED: [OrderStatus.PACKING, OrderStatus.CANCELLED],
        OrderStatus.PACKING: [OrderStatus.PACKED, OrderStatus.PICKED],
        OrderStatus.PACKED: [OrderStatus.SHIPPED],
        OrderStatus.SHIPPED: [],  # Final state
        OrderStatus.CANCELLED: [],  # Final state
    }

    @classmethod
    def validate_transition(cls, order: Order, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Args:
            order: Order instance
            new_status: New status to transition to

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = order.status
        allowed_transitions = cls.ALLOWED_TRANSITIONS.get(current_status, [])

        if new_status not in allowed_transitions:
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type="Order"
            )

    @classmethod
    def can_transition_to(cls, order: Order, new_status: str) -> bool:
        try:
            cls.validate_transition(order, new_status)
            return True
        except InvalidTransitionException:
            return False


def validate_order_workflow(order: Order, new_status: str) -> None:
    """Raise InvalidTransitionException unless ``order`` may move to ``new_status``."""
    OrderWorkflow.validate_transition(order, new_status)
