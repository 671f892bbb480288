"""
URL configuration for Order Fulfillment.

Provides API endpoints for the order picking, packing and shipping workflow.
"""

from rest_framework.routers import DefaultRouter

from .views import OrderExceptionViewSet, OrderViewSet

router = DefaultRouter(trailing_slash=False)
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'exceptions', OrderExceptionViewSet, basename='order-exception')

urlpatterns = router.urls
