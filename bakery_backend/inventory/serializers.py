# inventory/serializers.py

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from inventory.models import Ingredient, InventoryTransaction
from inventory.services.stock_status import get_stock_status, is_expired, is_expiring_soon


class IngredientSerializer(serializers.ModelSerializer):
    """
    current_stock is read-only: stock only moves through the ledger.
    opening_stock (create only) is booked as a manual_addition.
    """

    opening_stock = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        write_only=True,
    )
    stock_status = serializers.SerializerMethodField()
    is_expired = serializers.SerializerMethodField()
    is_expiring_soon = serializers.SerializerMethodField()

    class Meta:
        model = Ingredient
        fields = [
            "id",
            "name",
            "unit",
            "current_stock",
            "minimum_stock",
            "cost_per_unit",
            "expiry_date",
            "opening_stock",
            "stock_status",
            "is_expired",
            "is_expiring_soon",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "current_stock", "created_at", "updated_at"]

    def validate_name(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value

    def validate_unit(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Unit is required")
        return value

    def validate_minimum_stock(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Minimum stock cannot be negative")
        return value

    def validate_cost_per_unit(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Cost per unit cannot be negative")
        return value

    def get_stock_status(self, obj):
        return get_stock_status(obj.current_stock, obj.minimum_stock)

    def get_is_expired(self, obj):
        return is_expired(obj.expiry_date)

    def get_is_expiring_soon(self, obj):
        return is_expiring_soon(obj.expiry_date)


class InventoryTransactionSerializer(serializers.ModelSerializer):
    ingredient_name = serializers.CharField(source="ingredient.name", read_only=True)
    unit = serializers.CharField(source="ingredient.unit", read_only=True)
    performed_by_email = serializers.SerializerMethodField()

    class Meta:
        model = InventoryTransaction
        fields = [
            "id",
            "ingredient",
            "ingredient_name",
            "unit",
            "quantity",
            "transaction_type",
            "notes",
            "performed_by_email",
            "created_at",
        ]
        read_only_fields = fields

    def get_performed_by_email(self, obj):
        return getattr(obj.performed_by, "email", None)


class RecordTransactionSerializer(serializers.Serializer):
    ingredient = serializers.PrimaryKeyRelatedField(queryset=Ingredient.objects.all())
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    transaction_type = serializers.ChoiceField(choices=InventoryTransaction.TransactionType.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError("Quantity must be non-zero")
        return value
