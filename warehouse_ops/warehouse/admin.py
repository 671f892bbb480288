from django.contrib import admin
from .models import (
    BinLocation,
    InventoryTransaction,
    InventoryUnit,
    StockCount,
    StockCountItem,
    VarianceSeverityConfig,
    ZoneAssignment,
)


@admin.register(BinLocation)
class BinLocationAdmin(admin.ModelAdmin):
    list_display = ["bin_id", "zone", "aisle", "shelf", "bin_type", "is_active"]
    list_filter = ["zone", "bin_type", "is_active"]
    search_fields = ["bin_id"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(InventoryUnit)
class InventoryUnitAdmin(admin.ModelAdmin):
    list_display = ["sku", "bin_location", "quantity", "reserved", "last_updated"]
    list_filter = ["bin_location__zone"]
    search_fields = ["sku__sku", "sku__name", "bin_location__bin_id"]
    readonly_fields = ["created_at", "last_updated"]


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ["transaction_id", "type", "sku", "quantity", "bin_location", "order_id", "user", "timestamp"]
    list_filter = ["type", "timestamp"]
    search_fields = ["transaction_id", "sku", "order_id", "reason"]
    date_hierarchy = "timestamp"

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StockCountItemInline(admin.TabularInline):
    model = StockCountItem
    extra = 0
    readonly_fields = [
        "sku", "expected_quantity", "counted_quantity", "variance", "variance_percent", "severity", "notes",
    ]


@admin.register(StockCount)
class StockCountAdmin(admin.ModelAdmin):
    list_display = ["count_id", "bin_location", "type", "status", "created_by", "created_at", "completed_at"]
    list_filter = ["type", "status", "created_at"]
    search_fields = ["count_id", "bin_location__bin_id"]
    inlines = [StockCountItemInline]


@admin.register(ZoneAssignment)
class ZoneAssignmentAdmin(admin.ModelAdmin):
    list_display = ["picker", "zone", "status", "assigned_by", "assigned_at", "released_at"]
    list_filter = ["zone", "status"]
    search_fields = ["picker__username", "zone"]


@admin.register(VarianceSeverityConfig)
class VarianceSeverityConfigAdmin(admin.ModelAdmin):
    list_display = [
        "config_id", "severity_level", "min_variance_percent", "max_variance_percent",
        "requires_approval", "auto_adjust", "is_active",
    ]
    list_filter = ["severity_level", "is_active"]
    readonly_fields = ["config_id", "created_at", "updated_at"]
