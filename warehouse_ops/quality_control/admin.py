from django.contrib import admin
from .models import InspectionResult, QualityInspection


class InspectionResultInline(admin.TabularInline):
    model = InspectionResult
    extra = 0
    readonly_fields = ["check_name", "passed", "notes", "recorded_by", "recorded_at"]


@admin.register(QualityInspection)
class QualityInspectionAdmin(admin.ModelAdmin):
    list_display = ["inspection_id", "inspection_type", "sku", "status", "quantity_inspected", "inspector", "created_at"]
    list_filter = ["inspection_type", "status", "reference_type"]
    search_fields = ["inspection_id", "sku", "reference_id", "lot_number"]
    readonly_fields = ["inspection_id", "created_at", "updated_at", "started_at", "completed_at"]
    inlines = [InspectionResultInline]
