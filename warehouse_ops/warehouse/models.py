import uuid

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from products.models import Sku


class BinLocation(models.Model):
    BIN_TYPE_CHOICES = [
        ("shelf", "Shelf"),
        ("floor", "Floor"),
        ("rack", "Rack"),
        ("pallet", "Pallet"),
    ]

    bin_id = models.CharField(max_length=50, unique=True, db_index=True, help_text="e.g. A-01-01")
    zone = models.CharField(max_length=20)
    aisle = models.CharField(max_length=20)
    shelf = models.CharField(max_length=20)
    bin_type = models.CharField(max_length=20, choices=BIN_TYPE_CHOICES, default="shelf")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "bin_locations"
        verbose_name = "Bin Location"
        verbose_name_plural = "Bin Locations"
        ordering = ["bin_id"]
        indexes = [
            models.Index(fields=["zone"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return self.bin_id


class InventoryUnit(models.Model):
    sku = models.ForeignKey(Sku, to_field="sku", on_delete=models.PROTECT, related_name="inventory_units")
    bin_location = models.ForeignKey(
        BinLocation, to_field="bin_id", on_delete=models.PROTECT, related_name="inventory_units"
    )
    quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    reserved = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    last_updated = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "inventory_units"
        verbose_name = "Inventory Unit"
        verbose_name_plural = "Inventory Units"
        ordering = ["sku_id", "bin_location_id"]
        constraints = [
            models.UniqueConstraint(fields=["sku", "bin_location"], name="unique_sku_per_bin"),
            models.CheckConstraint(condition=Q(quantity__gte=0), name="inventory_quantity_non_negative"),
            models.CheckConstraint(
                condition=Q(reserved__gte=0) & Q(reserved__lte=F("quantity")),
                name="inventory_reserved_within_quantity",
            ),
        ]
        indexes = [
            models.Index(fields=["sku"]),
            models.Index(fields=["bin_location"]),
        ]

    def __str__(self):
        return f"{self.sku_id} at {self.bin_location_id} - {self.quantity}"

    @property
    def available(self):
        return self.quantity - self.reserved


class InventoryTransaction(models.Model):
    """
    Append-only audit row for every inventory change.

    SKU and bin are stored as plain codes so history survives catalog edits.
    """

    class Type(models.TextChoices):
        RECEIPT = "RECEIPT", "Receipt"
        DEDUCTION = "DEDUCTION", "Deduction"
        ADJUSTMENT = "ADJUSTMENT", "Adjustment"
        RESERVATION = "RESERVATION", "Reservation"
        CANCELLATION = "CANCELLATION", "Cancellation"

    transaction_id = models.CharField(max_length=40, unique=True, editable=False)
    type = models.CharField(max_length=20, choices=Type.choices)
    sku = models.CharField(max_length=100, db_index=True)
    quantity = models.IntegerField(help_text="Signed quantity change")
    bin_location = models.CharField(max_length=50, blank=True, default="")
    order_id = models.CharField(max_length=40, blank=True, default="", db_index=True)
    user = models.ForeignKey(
        "users.User", on_delete=models.PROTECT, related_name="inventory_transactions", null=True, blank=True
    )
    reason = models.CharField(max_length=255, blank=True, default="")
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "inventory_transactions"
        verbose_name = "Inventory Transaction"
        verbose_name_plural = "Inventory Transactions"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(fields=["type"]),
            models.Index(fields=["sku", "-timestamp"]),
        ]

    def __str__(self):
        return f"{self.transaction_id} {self.type} {self.sku} {self.quantity:+d}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValidationError("Inventory transactions are append-only")
        if not self.transaction_id:
            self.transaction_id = f"TXN-{uuid.uuid4().hex[:12].upper()}"
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Inventory transactions are append-only")


class StockCount(models.Model):
    class Type(models.TextChoices):
        FULL = "FULL", "Full"
        CYCLIC = "CYCLIC", "Cyclic"
        SPOT = "SPOT", "Spot"

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    count_id = models.CharField(max_length=40, unique=True, editable=False)
    bin_location = models.ForeignKey(
        BinLocation, to_field="bin_id", on_delete=models.PROTECT, related_name="stock_counts"
    )
    type = models.CharField(max_length=10, choices=Type.choices, default=Type.CYCLIC)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    created_by = models.ForeignKey(
        "users.User", on_delete=models.PROTECT, related_name="stock_counts", null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "stock_counts"
        verbose_name = "Stock Count"
        verbose_name_plural = "Stock Counts"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.count_id} ({self.bin_location_id}) - {self.status}"

    def save(self, *args, **kwargs):
        if not self.count_id:
            self.count_id = f"SC-{uuid.uuid4().hex[:10].upper()}"
        super().save(*args, **kwargs)


class StockCountItem(models.Model):
    stock_count = models.ForeignKey(StockCount, on_delete=models.CASCADE, related_name="items")
    sku = models.CharField(max_length=100)
    expected_quantity = models.IntegerField(default=0)
    counted_quantity = models.IntegerField(validators=[MinValueValidator(0)])
    variance = models.IntegerField(default=0)
    variance_percent = models.DecimalField(max_digits=9, decimal_places=2, default=0)
    severity = models.CharField(max_length=10, blank=True, default="")
    notes = models.TextField(blank=True)

    class Meta:
        db_table = "stock_count_items"
        verbose_name = "Stock Count Item"
        verbose_name_plural = "Stock Count Items"
        ordering = ["id"]

    def __str__(self):
        return f"{self.stock_count.count_id} {self.sku}: {self.counted_quantity} ({self.variance:+d})"


class ZoneAssignment(models.Model):
    """A picker working one warehouse zone. A picker holds at most one active zone."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        RELEASED = "RELEASED", "Released"

    picker = models.ForeignKey("users.User", on_delete=models.CASCADE, related_name="zone_assignments")
    zone = models.CharField(max_length=20, db_index=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    assigned_by = models.ForeignKey(
        "users.User", on_delete=models.SET_NULL, related_name="zones_assigned", null=True, blank=True
    )
    assigned_at = models.DateTimeField(auto_now_add=True)
    released_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "zone_assignments"
        verbose_name = "Zone Assignment"
        verbose_name_plural = "Zone Assignments"
        ordering = ["-assigned_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["picker"], condition=Q(status="ACTIVE"), name="uniq_active_zone_per_picker"
            ),
        ]

    def __str__(self):
        return f"{self.picker} -> zone {self.zone} ({self.status})"


class VarianceSeverity(models.TextChoices):
    LOW = "LOW", "Low"
    MEDIUM = "MEDIUM", "Medium"
    HIGH = "HIGH", "High"
    CRITICAL = "CRITICAL", "Critical"


class VarianceSeverityConfig(models.Model):
    """
    Severity band for stock count variances.

    A variance percentage falls in the band where
    ``min_variance_percent <= pct <= max_variance_percent``; active bands
    must not overlap.
    """

    config_id = models.CharField(max_length=40, unique=True, editable=False)
    severity_level = models.CharField(max_length=10, choices=VarianceSeverity.choices)
    min_variance_percent = models.DecimalField(max_digits=9, decimal_places=2, validators=[MinValueValidator(0)])
    max_variance_percent = models.DecimalField(max_digits=9, decimal_places=2, validators=[MinValueValidator(0)])
    requires_approval = models.BooleanField(default=True)
    requires_manager_approval = models.BooleanField(default=False)
    auto_adjust = models.BooleanField(default=False)
    color_code = models.CharField(max_length=7, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "variance_severity_configs"
        verbose_name = "Variance Severity Config"
        verbose_name_plural = "Variance Severity Configs"
        ordering = ["min_variance_percent"]
        constraints = [
            models.CheckConstraint(
                condition=Q(min_variance_percent__lte=F("max_variance_percent")),
                name="variance_band_ordered",
            ),
        ]

    def __str__(self):
        return f"{self.severity_level} {self.min_variance_percent}-{self.max_variance_percent}%"

    def save(self, *args, **kwargs):
        if not self.config_id:
            self.config_id = f"VSC-{uuid.uuid4().hex[:10].upper()}"
        super().save(*args, **kwargs)
