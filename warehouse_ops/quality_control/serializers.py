from rest_framework import serializers

from .models import (
    DefectType,
    DispositionAction,
    InspectionResult,
    InspectionStatus,
    InspectionType,
    QualityInspection,
    ReferenceType,
)


class QualityInspectionSerializer(serializers.ModelSerializer):
    inspector_name = serializers.CharField(source="inspector.username", read_only=True, default=None)
    approved_by_name = serializers.CharField(source="approved_by.username", read_only=True, default=None)

    class Meta:
        model = QualityInspection
        fields = [
            "inspection_id", "inspection_type", "status", "reference_type", "reference_id",
            "sku", "location", "lot_number", "expiration_date",
            "quantity_inspected", "quantity_passed", "quantity_failed",
            "defect_type", "defect_description", "disposition_action", "disposition_notes", "notes",
            "inspector", "inspector_name", "approved_by", "approved_by_name",
            "created_at", "started_at", "completed_at",
        ]
        read_only_fields = fields


class CreateInspectionSerializer(serializers.Serializer):
    inspection_type = serializers.ChoiceField(choices=InspectionType.choices)
    reference_type = serializers.ChoiceField(choices=ReferenceType.choices)
    reference_id = serializers.CharField(max_length=50)
    sku = serializers.CharField(max_length=100)
    quantity_inspected = serializers.IntegerField(min_value=1)
    location = serializers.CharField(max_length=50, required=False, allow_blank=True)
    lot_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    expiration_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class CompleteInspectionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            InspectionStatus.PASSED,
            InspectionStatus.FAILED,
            InspectionStatus.CONDITIONAL_PASSED,
            InspectionStatus.CANCELLED,
        ]
    )
    quantity_passed = serializers.IntegerField(min_value=0, required=False)
    quantity_failed = serializers.IntegerField(min_value=0, required=False)
    defect_type = serializers.ChoiceField(choices=DefectType.choices, required=False)
    defect_description = serializers.CharField(required=False, allow_blank=True)
    disposition_action = serializers.ChoiceField(choices=DispositionAction.choices, required=False)
    disposition_notes = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class InspectionResultSerializer(serializers.ModelSerializer):
    recorded_by_name = serializers.CharField(source="recorded_by.username", read_only=True, default=None)

    class Meta:
        model = InspectionResult
        fields = ["id", "check_name", "passed", "notes", "recorded_by", "recorded_by_name", "recorded_at"]
        read_only_fields = ["id", "recorded_by", "recorded_by_name", "recorded_at"]
