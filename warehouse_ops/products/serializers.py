from rest_framework import serializers
from .models import ProductCategory, Sku


class ProductCategorySerializer(serializers.ModelSerializer):
    sku_count = serializers.IntegerField(source="skus.count", read_only=True)

    class Meta:
        model = ProductCategory
        fields = ["id", "name", "description", "sku_count", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class SkuSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)
    barcode = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = Sku
        fields = [
            "id", "sku", "name", "barcode", "category", "category_name",
            "unit", "unit_price", "description", "is_active", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_sku(self, value):
        value = value.strip()
        if self.instance is not None and value != self.instance.sku:
            raise serializers.ValidationError("SKU codes cannot be changed once created")
        return value

    def validate_barcode(self, value):
        # Blank barcodes are stored as NULL so the unique index ignores them
        value = (value or "").strip() or None
        if value is None:
            return None
        clash = Sku.objects.filter(barcode=value)
        if self.instance is not None:
            clash = clash.exclude(pk=self.instance.pk)
        if clash.exists():
            raise serializers.ValidationError("Barcode is already used by another SKU")
        if Sku.objects.filter(sku=value).exists():
            raise serializers.ValidationError("Barcode matches an existing SKU code")
        return value


class SkuListSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Sku
        fields = ["id", "sku", "name", "barcode", "category_name", "unit_price", "is_active"]
