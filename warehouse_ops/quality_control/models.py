import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q


class InspectionType(models.TextChoices):
    INCOMING = "INCOMING", "Incoming"
    OUTGOING = "OUTGOING", "Outgoing"
    INVENTORY = "INVENTORY", "Inventory"
    QUALITY_HOLD = "QUALITY_HOLD", "Quality Hold"
    RETURN = "RETURN", "Return"
    DAMAGE = "DAMAGE", "Damage"
    EXPIRATION = "EXPIRATION", "Expiration"
    SPECIAL = "SPECIAL", "Special"


class InspectionStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    IN_PROGRESS = "IN_PROGRESS", "In Progress"
    PASSED = "PASSED", "Passed"
    FAILED = "FAILED", "Failed"
    CONDITIONAL_PASSED = "CONDITIONAL_PASSED", "Conditionally Passed"
    CANCELLED = "CANCELLED", "Cancelled"


OPEN_STATUSES = (InspectionStatus.PENDING, InspectionStatus.IN_PROGRESS)


class ReferenceType(models.TextChoices):
    ASN = "ASN", "ASN"
    RECEIPT = "RECEIPT", "Receipt"
    ORDER = "ORDER", "Order"
    INVENTORY = "INVENTORY", "Inventory"
    RETURN = "RETURN", "Return"


class DefectType(models.TextChoices):
    DAMAGED = "DAMAGED", "Damaged"
    DEFECTIVE = "DEFECTIVE", "Defective"
    MISSING_PARTS = "MISSING_PARTS", "Missing Parts"
    WRONG_ITEM = "WRONG_ITEM", "Wrong Item"
    EXPIRED = "EXPIRED", "Expired"
    NEAR_EXPIRY = "NEAR_EXPIRY", "Near Expiry"
    MISLABELED = "MISLABELED", "Mislabeled"
    PACKAGING = "PACKAGING", "Packaging"
    CONTAMINATED = "CONTAMINATED", "Contaminated"
    OTHER = "OTHER", "Other"


class DispositionAction(models.TextChoices):
    RETURN_TO_VENDOR = "RETURN_TO_VENDOR", "Return to Vendor"
    SCRAP = "SCRAP", "Scrap"
    REWORK = "REWORK", "Rework"
    QUARANTINE = "QUARANTINE", "Quarantine"
    SELL_AS_IS = "SELL_AS_IS", "Sell As Is"
    DISCOUNT = "DISCOUNT", "Discount"
    DONATE = "DONATE", "Donate"
    OTHER = "OTHER", "Other"


class QualityInspection(models.Model):
    """
    Inspection of a quantity of one SKU against a source document.

    PENDING -> IN_PROGRESS -> PASSED / FAILED / CONDITIONAL_PASSED;
    an open inspection may also be CANCELLED.
    """

    inspection_id = models.CharField(max_length=20, unique=True, editable=False)
    inspection_type = models.CharField(max_length=20, choices=InspectionType.choices)
    status = models.CharField(
        max_length=20, choices=InspectionStatus.choices, default=InspectionStatus.PENDING, db_index=True
    )
    reference_type = models.CharField(max_length=20, choices=ReferenceType.choices)
    reference_id = models.CharField(max_length=50)
    sku = models.CharField(max_length=100, db_index=True)
    location = models.CharField(max_length=50, blank=True, default="", help_text="Bin holding the inspected stock")
    lot_number = models.CharField(max_length=50, blank=True, default="")
    expiration_date = models.DateField(null=True, blank=True)

    quantity_inspected = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    quantity_passed = models.PositiveIntegerField(default=0)
    quantity_failed = models.PositiveIntegerField(default=0)

    defect_type = models.CharField(max_length=20, choices=DefectType.choices, blank=True, default="")
    defect_description = models.TextField(blank=True)
    disposition_action = models.CharField(max_length=20, choices=DispositionAction.choices, blank=True, default="")
    disposition_notes = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    inspector = models.ForeignKey(
        "users.User", on_delete=models.PROTECT, related_name="inspections", null=True, blank=True
    )
    approved_by = models.ForeignKey(
        "users.User", on_delete=models.SET_NULL, related_name="approved_inspections", null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "quality_inspections"
        verbose_name = "Quality Inspection"
        verbose_name_plural = "Quality Inspections"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["reference_type", "reference_id"]),
            models.Index(fields=["inspection_type", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_passed__lte=F("quantity_inspected") - F("quantity_failed")),
                name="inspection_quantities_within_inspected",
            ),
        ]

    def __str__(self):
        return f"{self.inspection_id} {self.sku} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.inspection_id:
            self.inspection_id = f"QI-{uuid.uuid4().hex[:10].upper()}"
        super().save(*args, **kwargs)

    @property
    def is_open(self):
        return self.status in OPEN_STATUSES


class InspectionResult(models.Model):
    """Outcome of one checklist point of an inspection."""

    inspection = models.ForeignKey(QualityInspection, on_delete=models.CASCADE, related_name="results")
    check_name = models.CharField(max_length=100)
    passed = models.BooleanField()
    notes = models.TextField(blank=True)
    recorded_by = models.ForeignKey(
        "users.User", on_delete=models.SET_NULL, related_name="inspection_results", null=True, blank=True
    )
    recorded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "inspection_results"
        ordering = ["recorded_at", "id"]

    def __str__(self):
        return f"{self.inspection.inspection_id} {self.check_name}: {'pass' if self.passed else 'fail'}"
