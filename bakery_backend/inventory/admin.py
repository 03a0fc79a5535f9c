# inventory/admin.py
"""
PATH: inventory/admin.py

Ingredients are editable except for current_stock (ledger-owned).
Ledger rows are view-only; new movements go through the API.
"""

from __future__ import annotations

from django.contrib import admin

from inventory.models import Ingredient, InventoryTransaction
from inventory.services.stock_status import get_stock_status


@admin.register(Ingredient)
class IngredientAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "current_stock",
        "unit",
        "minimum_stock",
        "cost_per_unit",
        "expiry_date",
        "stock_status",
    )
    search_fields = ("name",)
    ordering = ("name",)
    readonly_fields = ("current_stock", "created_at", "updated_at")

    @admin.display(description="Status")
    def stock_status(self, obj):
        return get_stock_status(obj.current_stock, obj.minimum_stock)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.transactions.exists():
            return False
        return super().has_delete_permission(request, obj)


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ("created_at", "ingredient", "quantity", "transaction_type", "performed_by")
    list_filter = ("transaction_type", "created_at")
    search_fields = ("ingredient__name", "notes")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
