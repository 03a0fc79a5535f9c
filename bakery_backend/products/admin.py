# products/admin.py
"""
PATH: products/admin.py

Menu management in Django admin.
Prices are live menu prices; past orders keep their own snapshots.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "is_available", "updated_at")
    list_filter = ("is_available",)
    list_editable = ("is_available",)
    search_fields = ("name", "description")
    ordering = ("name",)
    readonly_fields = ("created_at", "updated_at")
