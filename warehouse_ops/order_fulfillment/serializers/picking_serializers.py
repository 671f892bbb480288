"""
Picking serializers for Order Fulfillment.
"""

from rest_framework import serializers

from ..models import PickTask


class PickTaskSerializer(serializers.ModelSerializer):
    """Serializer for PickTask model."""

    order_id = serializers.CharField(source='order.order_id', read_only=True)
    order_item_id = serializers.UUIDField(source='order_item.id', read_only=True)
    remaining_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = PickTask
        fields = [
            'pick_task_id', 'order_id', 'order_item_id', 'sku', 'name', 'target_bin',
            'quantity', 'picked_quantity', 'remaining_quantity', 'status', 'picker',
            'started_at', 'completed_at', 'skipped_at', 'skip_reason'
        ]
        read_only_fields = fields


class PickSerializer(serializers.Serializer):
    """Scan submitted by a picker."""

    pick_task_id = serializers.CharField(max_length=20)
    sku = serializers.CharField(max_length=100, help_text="Scanned SKU code or barcode")
    bin_location = serializers.CharField(max_length=50)
    quantity = serializers.IntegerField(default=1)


class UndoPickSerializer(serializers.Serializer):
    pick_task_id = serializers.CharField(max_length=20)
    quantity = serializers.IntegerField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class SkipTaskSerializer(serializers.Serializer):
    pick_task_id = serializers.CharField(max_length=20)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
