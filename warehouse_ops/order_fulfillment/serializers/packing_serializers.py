"""
Packing serializers for Order Fulfillment.
"""

from rest_framework import serializers


class PackingItemSerializer(serializers.Serializer):
    """Item action at the packing station."""

    order_item_id = serializers.CharField()
    quantity = serializers.IntegerField(default=1)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
