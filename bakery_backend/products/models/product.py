# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    A cake/pastry on the storefront menu.

    PRICING MODEL (IMPORTANT):
    - `price` is the live menu price.
    - Carts snapshot it when an item is added; orders snapshot it again as
      OrderItem.price_at_time. Neither is ever recomputed from this row.
    - Product has no stock of its own; ingredients are tracked in inventory.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")

    price = models.DecimalField(max_digits=10, decimal_places=2)

    image_url = models.URLField(max_length=500, blank=True, default="")

    is_available = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="product_price_gt_0",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.price})"

    def clean(self):
        if self.price is None or Decimal(self.price) <= 0:
            raise ValidationError("Price must be greater than zero")
