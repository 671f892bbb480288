"""
Order Fulfillment Models
"""

from .order import Order, OrderStatus, OrderPriority, PRIORITY_RANK
from .order_item import OrderItem, OrderItemStatus
from .picking import PickTask, PickTaskStatus
from .audit import OrderStateChange
from .exception import OrderException, ExceptionType, ExceptionStatus, ExceptionResolution

__all__ = [
    'Order', 'OrderStatus', 'OrderPriority', 'PRIORITY_RANK',
    'OrderItem', 'OrderItemStatus',
    'PickTask', 'PickTaskStatus',
    'OrderStateChange',
    'OrderException', 'ExceptionType', 'ExceptionStatus', 'ExceptionResolution',
]
