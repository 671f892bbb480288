"""
Order Fulfillment Services
"""

from .workflow import validate_order_workflow
from .order_service import OrderService
from .packing_service import PackingService
from .exception_service import ExceptionService

__all__ = [
    # Workflow validators
    'validate_order_workflow',

    # Services
    'OrderService', 'PackingService', 'ExceptionService',
]
