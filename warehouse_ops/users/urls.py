from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from . import api_views

router = DefaultRouter(trailing_slash=False)
router.register(r"role-assignments", api_views.RoleAssignmentViewSet, basename="role-assignment")

urlpatterns = [
    path("auth/token", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh", TokenRefreshView.as_view(), name="token_refresh"),
    path("auth/me", api_views.me, name="auth-me"),
    path("auth/active-role", api_views.set_active_role, name="auth-active-role"),
] + router.urls
