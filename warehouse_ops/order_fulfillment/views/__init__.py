"""
Order Fulfillment Views
"""

from .order_views import OrderViewSet
from .exception_views import OrderExceptionViewSet

__all__ = [
    'OrderViewSet',
    'OrderExceptionViewSet',
]
