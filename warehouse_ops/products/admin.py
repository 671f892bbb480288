from django.contrib import admin
from .models import ProductCategory, Sku


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "created_at"]
    search_fields = ["name", "description"]
    list_filter = ["created_at"]


@admin.register(Sku)
class SkuAdmin(admin.ModelAdmin):
    list_display = ["sku", "name", "barcode", "category", "unit_price", "is_active"]
    list_filter = ["category", "unit", "is_active"]
    search_fields = ["sku", "name", "barcode", "description"]
    readonly_fields = ["created_at", "updated_at"]
