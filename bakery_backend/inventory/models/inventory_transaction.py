# inventory/models/inventory_transaction.py

"""
INGREDIENT LEDGER ENTRY

GUARANTEES:
- Append-only (no updates, no deletes)
- quantity is the SIGNED delta actually applied to current_stock
- sign matches type: order_usage < 0, restock/manual_addition > 0
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .ingredient import Ingredient


class InventoryTransaction(models.Model):
    class TransactionType(models.TextChoices):
        ORDER_USAGE = "order_usage", "Order Usage"
        RESTOCK = "restock", "Restock"
        MANUAL_ADDITION = "manual_addition", "Manual Addition"

    NEGATIVE_TYPES = {TransactionType.ORDER_USAGE}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    ingredient = models.ForeignKey(
        Ingredient,
        on_delete=models.PROTECT,
        related_name="transactions",
    )

    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    transaction_type = models.CharField(max_length=32, choices=TransactionType.choices)
    notes = models.TextField(blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_transactions",
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["ingredient", "created_at"], name="invtx_ingredient_created_idx"),
            models.Index(fields=["transaction_type"], name="invtx_type_idx"),
        ]

    def clean(self):
        if self.quantity is None or Decimal(self.quantity) == 0:
            raise ValidationError("quantity must be non-zero")

        negative = self.transaction_type in self.NEGATIVE_TYPES
        if negative and Decimal(self.quantity) > 0:
            raise ValidationError(f"{self.transaction_type} must carry a negative quantity")
        if not negative and Decimal(self.quantity) < 0:
            raise ValidationError(f"{self.transaction_type} must carry a positive quantity")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("InventoryTransaction records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("InventoryTransaction records are immutable and cannot be deleted")

    def __str__(self):
        return f"{getattr(self.ingredient, 'name', 'Ingredient')} | {self.transaction_type} | {self.quantity}"
