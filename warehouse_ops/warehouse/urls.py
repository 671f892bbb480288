from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import StockControlViewSet, VarianceSeverityViewSet, ZoneAssignmentViewSet

router = DefaultRouter(trailing_slash=False)
router.register(r"stock-control", StockControlViewSet, basename="stock-control")
router.register(r"zone-assignments", ZoneAssignmentViewSet, basename="zone-assignment")
router.register(r"variance-severity", VarianceSeverityViewSet, basename="variance-severity")

urlpatterns = [
    path("", include(router.urls)),
]
