"""
Django admin configuration for Order Fulfillment.
"""

from django.contrib import admin
from .models import Order, OrderException, OrderItem, OrderStateChange, PickTask


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['id', 'line_total']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'customer_name', 'status', 'priority', 'picker', 'packer', 'progress', 'created_at']
    list_filter = ['status', 'priority', 'created_at']
    search_fields = ['order_id', 'customer_name', 'customer_id', 'picker__username']
    readonly_fields = ['id', 'order_id', 'created_at', 'updated_at']
    inlines = [OrderItemInline]


@admin.register(PickTask)
class PickTaskAdmin(admin.ModelAdmin):
    list_display = ['pick_task_id', 'order', 'sku', 'target_bin', 'quantity', 'picked_quantity', 'status', 'picker']
    list_filter = ['status']
    search_fields = ['pick_task_id', 'order__order_id', 'sku', 'picker__username']
    readonly_fields = ['id', 'pick_task_id', 'created_at']


@admin.register(OrderStateChange)
class OrderStateChangeAdmin(admin.ModelAdmin):
    list_display = ['change_id', 'order', 'from_status', 'to_status', 'user', 'timestamp']
    list_filter = ['from_status', 'to_status', 'timestamp']
    search_fields = ['change_id', 'order__order_id', 'reason']
    readonly_fields = ['change_id', 'timestamp']


@admin.register(OrderException)
class OrderExceptionAdmin(admin.ModelAdmin):
    list_display = ['exception_id', 'order', 'sku', 'type', 'status', 'quantity_short', 'reported_by', 'reported_at']
    list_filter = ['type', 'status', 'resolution']
    search_fields = ['exception_id', 'order__order_id', 'sku', 'reason']
    readonly_fields = ['exception_id', 'reported_at', 'resolved_at']
