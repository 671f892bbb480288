"""
Order views for Order Fulfillment.
"""

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.permissions import HasResourcePermission

from ..exceptions import ValidationException
from ..services import OrderService, PackingService
from ..serializers.order_serializers import (
    OrderCreateSerializer, OrderDetailSerializer, OrderItemSerializer,
    OrderListSerializer, ReasonSerializer
)
from ..serializers.packing_serializers import PackingItemSerializer
from ..serializers.picking_serializers import (
    PickSerializer, PickTaskSerializer, SkipTaskSerializer, UndoPickSerializer
)


class OrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for orders and their picking/packing workflow.

    Every workflow action delegates to OrderService or PackingService;
    business errors propagate to the project exception handler.
    """

    permission_classes = [HasResourcePermission]
    policy_resource = 'orders'
    lookup_field = 'order_id'
    filter_backends = [filters.SearchFilter]
    search_fields = ['order_id', 'customer_name', 'customer_id']

    order_service_class = OrderService
    packing_service_class = PackingService

    def get_order_service(self):
        return self.order_service_class()

    def get_packing_service(self):
        return self.packing_service_class()

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'create':
            return OrderCreateSerializer
        elif self.action in ['list', 'my_orders', 'packing_queue']:
            return OrderListSerializer
        return OrderDetailSerializer

    def get_queryset(self):
        params = self.request.query_params
        picker = params.get('picker')
        if picker and not picker.isdigit():
            raise ValidationException('picker must be a user id', {'picker': picker})
        return self.get_order_service().get_order_queue(
            status=params.get('status'),
            priority=params.get('priority'),
            picker=picker,
        )

    def _data(self, order, code=status.HTTP_200_OK):
        return Response({
            'success': True,
            'data': OrderDetailSerializer(order).data
        }, status=code)

    def _input(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def create(self, request, *args, **kwargs):
        data = self._input(OrderCreateSerializer)
        order = self.get_order_service().create_order(data, request.user)
        return self._data(order, status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='my-orders')
    def my_orders(self, request):
        """Orders the caller is currently picking or packing."""
        orders = self.get_order_service().get_user_orders(request.user)
        return Response(OrderListSerializer(orders, many=True).data)

    @action(detail=False, methods=['get'], url_path='packing-queue')
    def packing_queue(self, request):
        orders = self.get_packing_service().get_packing_queue()
        page = self.paginate_queryset(orders)
        if page is not None:
            return self.get_paginated_response(OrderListSerializer(page, many=True).data)
        return Response(OrderListSerializer(orders, many=True).data)

    # Picking

    @action(detail=True, methods=['post'])
    def claim(self, request, order_id=None):
        order = self.get_order_service().claim_order(order_id, request.user)
        return self._data(order)

    @action(detail=True, methods=['post'], url_path='continue')
    def continue_order(self, request, order_id=None):
        return Response(self.get_order_service().continue_order(order_id, request.user))

    @action(detail=True, methods=['get'], url_path='next-task')
    def next_task(self, request, order_id=None):
        task = self.get_order_service().get_next_pick_task(order_id)
        return Response({
            'success': True,
            'data': PickTaskSerializer(task).data if task else None
        })

    @action(detail=True, methods=['get'])
    def progress(self, request, order_id=None):
        return Response(self.get_order_service().get_order_progress(order_id))

    @action(detail=True, methods=['post'])
    def pick(self, request, order_id=None):
        """Confirm a scanned pick against one of the order's tasks."""
        result = self.get_order_service().pick_item(order_id, self._input(PickSerializer), request.user)
        return Response({
            'success': result['success'],
            'order': OrderDetailSerializer(result['order']).data,
            'pick_task': PickTaskSerializer(result['pick_task']).data,
            'message': result['message'],
        })

    @action(detail=True, methods=['post'], url_path='undo-pick')
    def undo_pick(self, request, order_id=None):
        data = self._input(UndoPickSerializer)
        result = self.get_order_service().undo_pick(
            data['pick_task_id'], data['quantity'], data['reason'], request.user
        )
        return Response({
            'success': result['success'],
            'order': OrderDetailSerializer(result['order']).data,
            'pick_task': PickTaskSerializer(result['pick_task']).data,
        })

    @action(detail=True, methods=['post'], url_path='skip-task')
    def skip_task(self, request, order_id=None):
        data = self._input(SkipTaskSerializer)
        task = self.get_order_service().skip_pick_task(order_id, data['pick_task_id'], data['reason'], request.user)
        return Response({
            'success': True,
            'data': PickTaskSerializer(task).data
        })

    @action(detail=True, methods=['post'])
    def unclaim(self, request, order_id=None):
        data = self._input(ReasonSerializer)
        order = self.get_order_service().unclaim_order(order_id, request.user, data['reason'])
        return self._data(order)

    @action(detail=True, methods=['post'])
    def complete(self, request, order_id=None):
        order = self.get_order_service().complete_order(order_id, request.user)
        return self._data(order)

    @action(detail=True, methods=['post'])
    def cancel(self, request, order_id=None):
        data = self._input(ReasonSerializer)
        order = self.get_order_service().cancel_order(order_id, request.user, data['reason'])
        return self._data(order)

    # Packing

    @action(detail=True, methods=['post'], url_path='claim-for-packing')
    def claim_for_packing(self, request, order_id=None):
        order = self.get_packing_service().claim_order_for_packing(order_id, request.user)
        return self._data(order)

    @action(detail=True, methods=['post'], url_path='verify-packing')
    def verify_packing(self, request, order_id=None):
        data = self._input(PackingItemSerializer)
        item = self.get_packing_service().verify_packing_item(
            order_id, data['order_item_id'], data['quantity'], packer=request.user
        )
        return Response({'success': True, 'data': OrderItemSerializer(item).data})

    @action(detail=True, methods=['post'], url_path='skip-packing-item')
    def skip_packing_item(self, request, order_id=None):
        data = self._input(PackingItemSerializer)
        item = self.get_packing_service().skip_packing_item(
            order_id, data['order_item_id'], data['reason'], packer=request.user
        )
        return Response({'success': True, 'data': OrderItemSerializer(item).data})

    @action(detail=True, methods=['post'], url_path='undo-packing-verification')
    def undo_packing_verification(self, request, order_id=None):
        data = self._input(PackingItemSerializer)
        item = self.get_packing_service().undo_packing_verification(
            order_id, data['order_item_id'], data['quantity'], data['reason'], packer=request.user
        )
        return Response({'success': True, 'data': OrderItemSerializer(item).data})

    @action(detail=True, methods=['post'], url_path='complete-packing')
    def complete_packing(self, request, order_id=None):
        order = self.get_packing_service().complete_packing(order_id, request.user)
        return self._data(order)

    @action(detail=True, methods=['post'], url_path='unclaim-packing')
    def unclaim_packing(self, request, order_id=None):
        data = self._input(ReasonSerializer)
        order = self.get_packing_service().unclaim_packing_order(order_id, request.user, data['reason'])
        return self._data(order)

    @action(detail=True, methods=['post'])
    def ship(self, request, order_id=None):
        order = self.get_packing_service().ship_order(order_id, request.user)
        return self._data(order)
