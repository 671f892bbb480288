"""
Exception serializers for Order Fulfillment.
"""

from rest_framework import serializers

from ..models import ExceptionResolution, ExceptionType, OrderException


class OrderExceptionSerializer(serializers.ModelSerializer):
    order_id = serializers.CharField(source='order.order_id', read_only=True)
    reported_by_name = serializers.CharField(source='reported_by.username', read_only=True, default=None)
    resolved_by_name = serializers.CharField(source='resolved_by.username', read_only=True, default=None)

    class Meta:
        model = OrderException
        fields = [
            'exception_id', 'order_id', 'sku', 'type', 'status',
            'quantity_expected', 'quantity_actual', 'quantity_short',
            'reason', 'substitute_sku',
            'reported_by', 'reported_by_name', 'reported_at',
            'resolution', 'resolution_notes', 'resolved_by', 'resolved_by_name', 'resolved_at',
        ]
        read_only_fields = fields


class LogExceptionSerializer(serializers.Serializer):
    """Input for reporting an exception; quantities default from the order line."""

    order_id = serializers.CharField(max_length=20)
    sku = serializers.CharField(max_length=100)
    type = serializers.ChoiceField(choices=ExceptionType.choices)
    quantity_expected = serializers.IntegerField(min_value=0, required=False)
    quantity_actual = serializers.IntegerField(min_value=0, required=False)
    reason = serializers.CharField()
    substitute_sku = serializers.CharField(max_length=100, required=False, allow_blank=True)


class ResolveExceptionSerializer(serializers.Serializer):
    resolution = serializers.ChoiceField(choices=ExceptionResolution.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    substitute_sku = serializers.CharField(max_length=100, required=False, allow_blank=True)
