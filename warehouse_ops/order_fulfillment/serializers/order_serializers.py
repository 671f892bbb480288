"""
Order serializers for Order Fulfillment.
"""

from rest_framework import serializers

from ..models import Order, OrderItem, OrderPriority
from .picking_serializers import PickTaskSerializer


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem model."""

    class Meta:
        model = OrderItem
        fields = [
            'id', 'sku', 'name', 'bin_location', 'quantity', 'picked_quantity',
            'verified_quantity', 'status', 'skip_reason', 'unit_price', 'line_total'
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Serializer for order listing (minimal fields)."""

    picker_name = serializers.CharField(source='picker.username', read_only=True, default=None)
    packer_name = serializers.CharField(source='packer.username', read_only=True, default=None)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'order_id', 'customer_id', 'customer_name', 'status', 'priority',
            'picker', 'picker_name', 'packer', 'packer_name', 'progress',
            'item_count', 'total_amount', 'created_at', 'claimed_at'
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())


class OrderDetailSerializer(serializers.ModelSerializer):
    """Serializer for order details with items and pick tasks."""

    picker_name = serializers.CharField(source='picker.username', read_only=True, default=None)
    packer_name = serializers.CharField(source='packer.username', read_only=True, default=None)
    items = OrderItemSerializer(many=True, read_only=True)
    pick_tasks = PickTaskSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            'order_id', 'customer_id', 'customer_name', 'status', 'priority',
            'picker', 'picker_name', 'packer', 'packer_name', 'progress',
            'subtotal', 'tax_amount', 'shipping_amount', 'total_amount',
            'notes', 'cancel_reason', 'created_by', 'created_at', 'updated_at',
            'claimed_at', 'picked_at', 'packed_at', 'shipped_at', 'cancelled_at',
            'items', 'pick_tasks'
        ]
        read_only_fields = fields


class OrderItemCreateSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    """Serializer for order creation."""

    customer_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    customer_name = serializers.CharField(max_length=255)
    priority = serializers.ChoiceField(choices=OrderPriority.choices, default=OrderPriority.NORMAL)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = OrderItemCreateSerializer(many=True, allow_empty=False)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
