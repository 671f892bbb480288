from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import RoleAssignment
from .permissions import HasResourcePermission
from .serializers import ActiveRoleSerializer, RoleAssignmentSerializer, UserSerializer


class RoleAssignmentViewSet(mixins.CreateModelMixin, mixins.ListModelMixin,
                            mixins.RetrieveModelMixin, mixins.DestroyModelMixin,
                            viewsets.GenericViewSet):
    """Grants and revokes additional roles. Revoking keeps the row for audit."""

    queryset = RoleAssignment.objects.select_related("user", "granted_by").all()
    serializer_class = RoleAssignmentSerializer
    permission_classes = [HasResourcePermission]
    policy_resource = "role_assignments"
    filterset_fields = ["user", "role", "is_active"]

    def perform_create(self, serializer):
        serializer.save(granted_by=self.request.user)

    def perform_destroy(self, instance):
        instance.is_active = False
        instance.revoked_at = timezone.now()
        instance.save(update_fields=["is_active", "revoked_at"])

        user = instance.user
        if user.active_role == instance.role:
            user.active_role = None
            user.save(update_fields=["active_role"])


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me(request):
    data = UserSerializer(request.user).data
    data["available_roles"] = request.user.available_roles()
    return Response(data)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def set_active_role(request):
    serializer = ActiveRoleSerializer(data=request.data, context={"request": request})
    serializer.is_valid(raise_exception=True)

    user = request.user
    role = serializer.validated_data["role"]
    user.active_role = None if role == user.role else role
    user.save(update_fields=["active_role"])
    return Response(UserSerializer(user).data, status=status.HTTP_200_OK)
