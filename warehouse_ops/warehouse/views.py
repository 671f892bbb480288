from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from users.permissions import HasResourcePermission
from warehouse.services.stock_control_service import StockControlService
from warehouse.services.variance_service import VarianceSeverityService
from warehouse.services.zone_service import ZoneAssignmentService
from .serializers import (
    AdjustmentSerializer,
    AssignZoneSerializer,
    BinLocationSerializer,
    ClassifyVarianceSerializer,
    DashboardSerializer,
    DateRangeSerializer,
    InventoryTransactionSerializer,
    InventoryUnitSerializer,
    ReconcileSerializer,
    StockCountCreateSerializer,
    StockCountSerializer,
    StockCountSubmitSerializer,
    TransferSerializer,
    VarianceSeverityConfigSerializer,
    ZoneAssignmentSerializer,
)
from products.serializers import SkuSerializer


def _as_bool(value):
    if value is None:
        return None
    return str(value).lower() in ("1", "true", "yes")


class StockControlViewSet(viewsets.GenericViewSet):
    """
    Stock control endpoints: dashboard, inventory browsing, counts,
    transfers, adjustments, reconciliation and reports.
    """

    permission_classes = [HasResourcePermission]
    policy_resource = "stock_control"
    policy_actions = {
        "dashboard": "read",
        "inventory": "read",
        "sku_inventory": "read",
        "stock_counts": "read",
        "transactions": "read",
        "low_stock_report": "read",
        "movement_report": "read",
        "bins": "read",
        "create_stock_count": "write",
        "submit_stock_count": "write",
        "transfer": "write",
        "adjust": "write",
        "reconcile": "reconcile",
    }
    service_class = StockControlService

    def get_service(self):
        return self.service_class()

    def _date_range(self, request):
        serializer = DateRangeSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _paginated(self, queryset, serializer_class):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(serializer_class(page, many=True).data)
        return Response(serializer_class(queryset, many=True).data)

    @action(detail=False, methods=["get"])
    def dashboard(self, request):
        data = self.get_service().get_dashboard()
        return Response(DashboardSerializer(data).data)

    @action(detail=False, methods=["get"])
    def inventory(self, request):
        params = request.query_params
        units = self.get_service().get_inventory_list(
            search=params.get("search"),
            bin_location=params.get("bin_location"),
            zone=params.get("zone"),
            low_stock=_as_bool(params.get("low_stock")) or False,
        )
        return self._paginated(units, InventoryUnitSerializer)

    @action(detail=False, methods=["get"], url_path=r"inventory/(?P<sku>[^/]+)")
    def sku_inventory(self, request, sku=None):
        detail = self.get_service().get_sku_inventory_detail(sku)
        return Response(
            {
                "sku": SkuSerializer(detail["sku"]).data,
                "inventory": InventoryUnitSerializer(detail["inventory"], many=True).data,
                "total_quantity": detail["total_quantity"],
                "total_reserved": detail["total_reserved"],
                "total_available": detail["total_available"],
                "recent_transactions": InventoryTransactionSerializer(detail["recent_transactions"], many=True).data,
            }
        )

    @action(detail=False, methods=["get"], url_path="stock-counts")
    def stock_counts(self, request):
        counts = self.get_service().get_stock_counts(status=request.query_params.get("status"))
        return self._paginated(counts, StockCountSerializer)

    @action(detail=False, methods=["post"], url_path="stock-count")
    def create_stock_count(self, request):
        serializer = StockCountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        count = self.get_service().create_stock_count(
            serializer.validated_data["bin_location"], serializer.validated_data["type"], request.user
        )
        return Response(StockCountSerializer(count).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path=r"stock-count/(?P<count_id>[^/]+)/submit")
    def submit_stock_count(self, request, count_id=None):
        serializer = StockCountSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().submit_stock_count(count_id, serializer.validated_data["items"], request.user)
        return Response(result)

    @action(detail=False, methods=["post"])
    def transfer(self, request):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().transfer_stock(
            data["sku"], data["from_bin"], data["to_bin"], data["quantity"], data["reason"], request.user
        )
        return Response(result, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def adjust(self, request):
        serializer = AdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self.get_service().adjust_inventory(
            data["sku"], data["bin_location"], data["quantity"], data["reason"], request.user
        )
        return Response(result, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def reconcile(self, request):
        serializer = ReconcileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().reconcile_discrepancies(serializer.validated_data["discrepancies"], request.user)
        return Response(result)

    @action(detail=False, methods=["get"])
    def transactions(self, request):
        params = request.query_params
        dates = self._date_range(request)
        txns = self.get_service().get_transaction_history(
            sku=params.get("sku"),
            txn_type=params.get("type"),
            order_id=params.get("order_id"),
            bin_location=params.get("bin_location"),
            start_date=dates.get("start_date"),
            end_date=dates.get("end_date"),
        )
        return self._paginated(txns, InventoryTransactionSerializer)

    @action(detail=False, methods=["get"], url_path="reports/low-stock")
    def low_stock_report(self, request):
        threshold = request.query_params.get("threshold")
        if threshold is not None:
            try:
                threshold = int(threshold)
            except ValueError:
                return Response(
                    {"error": "threshold must be an integer", "code": "VALIDATION_ERROR"},
                    status=status.HTTP_400_BAD_REQUEST,
                )
        return Response(self.get_service().get_low_stock_report(threshold))

    @action(detail=False, methods=["get"], url_path="reports/movements")
    def movement_report(self, request):
        dates = self._date_range(request)
        return Response(
            self.get_service().get_movement_report(
                start_date=dates.get("start_date"),
                end_date=dates.get("end_date"),
                sku=request.query_params.get("sku"),
            )
        )

    @action(detail=False, methods=["get"])
    def bins(self, request):
        bins = self.get_service().get_bin_locations(
            zone=request.query_params.get("zone"),
            active=_as_bool(request.query_params.get("active")),
        )
        return Response(BinLocationSerializer(bins, many=True).data)


class ZoneAssignmentViewSet(viewsets.GenericViewSet):
    """Supervisors put pickers on zones and take them off again."""

    permission_classes = [HasResourcePermission]
    policy_resource = "zone_assignments"
    service_class = ZoneAssignmentService

    def get_service(self):
        return self.service_class()

    def list(self, request):
        assignments = self.get_service().get_assignments(
            zone=request.query_params.get("zone"),
            active_only=_as_bool(request.query_params.get("active")) is not False,
        )
        return Response(ZoneAssignmentSerializer(assignments, many=True).data)

    def create(self, request):
        serializer = AssignZoneSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        assignment = self.get_service().assign_picker(data["picker_id"], data["zone"], request.user)
        return Response(ZoneAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path=r"release/(?P<picker_id>\d+)")
    def release(self, request, picker_id=None):
        assignment = self.get_service().release_picker(int(picker_id), request.user)
        return Response(ZoneAssignmentSerializer(assignment).data)

    @action(detail=False, methods=["get"])
    def summary(self, request):
        return Response(self.get_service().get_zone_summary())


class VarianceSeverityViewSet(viewsets.GenericViewSet):
    """Severity bands used to classify stock count variances."""

    permission_classes = [HasResourcePermission]
    policy_resource = "variance_severity"
    lookup_field = "config_id"
    service_class = VarianceSeverityService

    def get_service(self):
        return self.service_class()

    def list(self, request):
        configs = self.get_service().get_configs(
            include_inactive=bool(_as_bool(request.query_params.get("include_inactive")))
        )
        return Response(VarianceSeverityConfigSerializer(configs, many=True).data)

    def create(self, request):
        serializer = VarianceSeverityConfigSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = self.get_service().create_config(serializer.validated_data, request.user)
        return Response(VarianceSeverityConfigSerializer(config).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, config_id=None):
        service = self.get_service()
        serializer = VarianceSeverityConfigSerializer(service.get_config(config_id), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        config = service.update_config(config_id, serializer.validated_data, request.user)
        return Response(VarianceSeverityConfigSerializer(config).data)

    def destroy(self, request, config_id=None):
        self.get_service().deactivate_config(config_id, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def classify(self, request):
        serializer = ClassifyVarianceSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return Response(self.get_service().classify(serializer.validated_data["variance_percent"]))

    @action(detail=False, methods=["post"])
    def reset(self, request):
        configs = self.get_service().reset_to_defaults(request.user)
        return Response(VarianceSeverityConfigSerializer(configs, many=True).data)
