# inventory/models/ingredient.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Ingredient(models.Model):
    """
    A bakery ingredient tracked in a unit of its own (kg, l, dozen...).

    STOCK MODEL (IMPORTANT):
    - current_stock is a materialized cache of the ledger:
          current_stock == sum(InventoryTransaction.quantity)
    - It is only written by inventory.services.ledger (same DB transaction
      as the ledger row). Admin CRUD never touches it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, unique=True)
    unit = models.CharField(max_length=32)

    current_stock = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    minimum_stock = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    cost_per_unit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    expiry_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError("name is required")
        if not (self.unit or "").strip():
            raise ValidationError("unit is required")
        if self.minimum_stock is not None and Decimal(self.minimum_stock) < 0:
            raise ValidationError("minimum_stock cannot be negative")
        if self.cost_per_unit is not None and Decimal(self.cost_per_unit) < 0:
            raise ValidationError("cost_per_unit cannot be negative")

    def __str__(self):
        return f"{self.name} ({self.current_stock} {self.unit})"
