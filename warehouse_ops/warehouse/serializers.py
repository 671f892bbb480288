from rest_framework import serializers

from .models import (
    BinLocation,
    InventoryTransaction,
    InventoryUnit,
    StockCount,
    StockCountItem,
    VarianceSeverityConfig,
    ZoneAssignment,
)


class BinLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = BinLocation
        fields = ["id", "bin_id", "zone", "aisle", "shelf", "bin_type", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class InventoryUnitSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="sku.name", read_only=True)
    available = serializers.IntegerField(read_only=True)

    class Meta:
        model = InventoryUnit
        fields = ["id", "sku", "name", "bin_location", "quantity", "reserved", "available", "last_updated"]
        read_only_fields = fields


class InventoryTransactionSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source="user.username", read_only=True, default=None)

    class Meta:
        model = InventoryTransaction
        fields = [
            "transaction_id",
            "type",
            "sku",
            "quantity",
            "bin_location",
            "order_id",
            "user",
            "user_name",
            "reason",
            "timestamp",
        ]
        read_only_fields = fields


class StockCountItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockCountItem
        fields = [
            "id", "sku", "expected_quantity", "counted_quantity",
            "variance", "variance_percent", "severity", "notes",
        ]
        read_only_fields = fields


class StockCountSerializer(serializers.ModelSerializer):
    items = StockCountItemSerializer(many=True, read_only=True)
    created_by_name = serializers.CharField(source="created_by.username", read_only=True, default=None)

    class Meta:
        model = StockCount
        fields = [
            "count_id",
            "bin_location",
            "type",
            "status",
            "created_by",
            "created_by_name",
            "created_at",
            "completed_at",
            "items",
        ]
        read_only_fields = fields


class DashboardSerializer(serializers.Serializer):
    total_skus = serializers.IntegerField()
    total_bins = serializers.IntegerField()
    low_stock_items = serializers.IntegerField()
    out_of_stock_items = serializers.IntegerField()
    pending_stock_counts = serializers.IntegerField()
    total_inventory_value = serializers.DecimalField(max_digits=16, decimal_places=2)
    recent_transactions = InventoryTransactionSerializer(many=True)


class StockCountCreateSerializer(serializers.Serializer):
    bin_location = serializers.CharField(max_length=50)
    type = serializers.ChoiceField(choices=StockCount.Type.choices, default=StockCount.Type.CYCLIC)


class CountedItemSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    counted_quantity = serializers.IntegerField(min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class StockCountSubmitSerializer(serializers.Serializer):
    items = CountedItemSerializer(many=True, allow_empty=False)


class TransferSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    from_bin = serializers.CharField(max_length=50)
    to_bin = serializers.CharField(max_length=50)
    quantity = serializers.IntegerField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class AdjustmentSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    bin_location = serializers.CharField(max_length=50)
    quantity = serializers.IntegerField()
    reason = serializers.CharField(max_length=255)


class DiscrepancySerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    bin_location = serializers.CharField(max_length=50)
    system_quantity = serializers.IntegerField(min_value=0)
    actual_quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ReconcileSerializer(serializers.Serializer):
    discrepancies = DiscrepancySerializer(many=True, allow_empty=False)


class ZoneAssignmentSerializer(serializers.ModelSerializer):
    picker_name = serializers.CharField(source="picker.username", read_only=True)
    assigned_by_name = serializers.CharField(source="assigned_by.username", read_only=True, default=None)

    class Meta:
        model = ZoneAssignment
        fields = [
            "id", "picker", "picker_name", "zone", "status",
            "assigned_by", "assigned_by_name", "assigned_at", "released_at",
        ]
        read_only_fields = fields


class AssignZoneSerializer(serializers.Serializer):
    picker_id = serializers.IntegerField()
    zone = serializers.CharField(max_length=20)


class DateRangeSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)

    def validate(self, data):
        start, end = data.get("start_date"), data.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must be before end_date")
        return data


class VarianceSeverityConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = VarianceSeverityConfig
        fields = [
            "config_id",
            "severity_level",
            "min_variance_percent",
            "max_variance_percent",
            "requires_approval",
            "requires_manager_approval",
            "auto_adjust",
            "color_code",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["config_id", "is_active", "created_at", "updated_at"]

    def validate(self, data):
        low = data.get("min_variance_percent", getattr(self.instance, "min_variance_percent", None))
        high = data.get("max_variance_percent", getattr(self.instance, "max_variance_percent", None))
        if low is not None and high is not None and low > high:
            raise serializers.ValidationError("min_variance_percent must not exceed max_variance_percent")
        return data


class ClassifyVarianceSerializer(serializers.Serializer):
    variance_percent = serializers.DecimalField(max_digits=9, decimal_places=2)
