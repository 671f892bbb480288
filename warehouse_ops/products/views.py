from rest_framework import filters, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.exceptions import NotFoundException
from users.permissions import HasResourcePermission
from .models import ProductCategory, Sku
from .serializers import ProductCategorySerializer, SkuListSerializer, SkuSerializer


class ProductCategoryViewSet(viewsets.ModelViewSet):
    queryset = ProductCategory.objects.all()
    serializer_class = ProductCategorySerializer
    permission_classes = [IsAuthenticated]
    policy_resource = "stock_control"
    policy_actions = {"create": "write", "update": "write", "partial_update": "write", "destroy": "write"}
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "created_at"]
    ordering = ["name"]

    def get_permissions(self):
        if self.action in ["create", "update", "partial_update", "destroy"]:
            return [HasResourcePermission()]
        return [IsAuthenticated()]


class SkuViewSet(viewsets.ModelViewSet):
    queryset = Sku.objects.select_related("category").all()
    lookup_field = "sku"
    lookup_value_regex = "[^/]+"
    permission_classes = [IsAuthenticated]
    policy_resource = "stock_control"
    policy_actions = {"create": "write", "update": "write", "partial_update": "write", "destroy": "write"}
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["name", "sku", "barcode", "description"]
    filterset_fields = ["category", "is_active", "unit"]
    ordering_fields = ["name", "sku", "created_at"]
    ordering = ["sku"]

    def get_serializer_class(self):
        if self.action == "list":
            return SkuListSerializer
        return SkuSerializer

    def get_permissions(self):
        if self.action in ["create", "update", "partial_update", "destroy"]:
            return [HasResourcePermission()]
        return [IsAuthenticated()]

    @action(detail=False, methods=["get"], url_path="barcode/(?P<barcode>[^/]+)")
    def by_barcode(self, request, barcode=None):
        """Look up an active SKU by its barcode."""
        sku = Sku.objects.active().filter(barcode=barcode).first()
        if sku is None:
            raise NotFoundException("Barcode", barcode)
        return Response(SkuSerializer(sku).data)
