from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class ProductCategory(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "product_categories"
        verbose_name = "Product Category"
        verbose_name_plural = "Product Categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class SkuQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def resolve_code(self, code):
        """
        Return the SKU code for a scanned value.

        A scan matching an active barcode resolves to that barcode's SKU;
        anything else is returned unchanged so it can be compared as a SKU.
        """
        match = self.active().filter(barcode=code).values_list("sku", flat=True).first()
        return match or code


class Sku(models.Model):
    UNIT_CHOICES = [
        ("piece", "Piece"),
        ("kg", "Kilogram"),
        ("box", "Box"),
        ("pallet", "Pallet"),
    ]

    sku = models.CharField(max_length=100, unique=True, db_index=True)
    name = models.CharField(max_length=200)
    barcode = models.CharField(max_length=64, unique=True, null=True, blank=True)
    category = models.ForeignKey(
        ProductCategory, on_delete=models.PROTECT, related_name="skus", null=True, blank=True
    )
    unit = models.CharField(max_length=20, choices=UNIT_CHOICES, default="piece")
    unit_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00"), validators=[MinValueValidator(0)]
    )
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SkuQuerySet.as_manager()

    class Meta:
        db_table = "skus"
        verbose_name = "SKU"
        verbose_name_plural = "SKUs"
        ordering = ["sku"]
        indexes = [
            models.Index(fields=["barcode"]),
            models.Index(fields=["category"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"
