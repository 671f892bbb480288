from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import InspectionViewSet

router = DefaultRouter(trailing_slash=False)
router.register(r"quality-control/inspections", InspectionViewSet, basename="inspection")

urlpatterns = [
    path("", include(router.urls)),
]
