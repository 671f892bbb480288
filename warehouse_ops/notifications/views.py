from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.permissions import HasResourcePermission
from .serializers import NotificationSerializer
from .services.notification_service import NotificationService


class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    permission_classes = [HasResourcePermission]
    policy_resource = "notifications"
    policy_actions = {"mark_read": "read"}
    lookup_value_regex = r"\d+"
    service_class = NotificationService

    def get_service(self):
        return self.service_class()

    def get_queryset(self):
        unread = self.request.query_params.get("unread", "").lower() in ("1", "true", "yes")
        return self.get_service().for_user(self.request.user, unread_only=unread)

    @action(detail=True, methods=["post"], url_path="read")
    def mark_read(self, request, pk=None):
        notification = self.get_service().mark_read(pk, request.user)
        return Response(NotificationSerializer(notification).data)
