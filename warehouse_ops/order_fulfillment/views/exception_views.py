"""
Exception views for Order Fulfillment.
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.permissions import HasResourcePermission

from ..services import ExceptionService
from ..serializers.exception_serializers import (
    LogExceptionSerializer, OrderExceptionSerializer, ResolveExceptionSerializer
)


class OrderExceptionViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for order exceptions.

    Anyone on the floor can report one; supervisors resolve them.
    """

    permission_classes = [HasResourcePermission]
    policy_resource = 'order_exceptions'
    lookup_field = 'exception_id'
    serializer_class = OrderExceptionSerializer

    exception_service_class = ExceptionService

    def get_exception_service(self):
        return self.exception_service_class()

    def _filters(self):
        params = self.request.query_params
        return {
            'order_id': params.get('order_id'),
            'sku': params.get('sku'),
            'exception_type': params.get('type'),
        }

    def get_queryset(self):
        return self.get_exception_service().get_exceptions(
            status=self.request.query_params.get('status'), **self._filters()
        )

    def get_object(self):
        return self.get_exception_service().get_exception(self.kwargs['exception_id'])

    def create(self, request, *args, **kwargs):
        serializer = LogExceptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        exception = self.get_exception_service().log_exception(serializer.validated_data, request.user)
        return Response(OrderExceptionSerializer(exception).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def open(self, request):
        exceptions = self.get_exception_service().get_open_exceptions(**self._filters())
        page = self.paginate_queryset(exceptions)
        if page is not None:
            return self.get_paginated_response(OrderExceptionSerializer(page, many=True).data)
        return Response(OrderExceptionSerializer(exceptions, many=True).data)

    @action(detail=False, methods=['get'])
    def summary(self, request):
        return Response(self.get_exception_service().get_summary())

    @action(detail=True, methods=['post'])
    def resolve(self, request, exception_id=None):
        serializer = ResolveExceptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        exception = self.get_exception_service().resolve_exception(
            exception_id, serializer.validated_data, request.user
        )
        return Response(OrderExceptionSerializer(exception).data)
