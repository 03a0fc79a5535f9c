# orders/models/order_item.py

"""
ORDER ITEM (IMMUTABLE)

- price_at_time is the price the customer saw in their cart, never
  recomputed from the live product.
- Created together with its Order; never edited or deleted on its own.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from products.models import Product

from .order import Order


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="order_items")

    quantity = models.PositiveIntegerField()
    price_at_time = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_item_quantity_gte_1",
            ),
            models.CheckConstraint(
                condition=models.Q(price_at_time__gt=0),
                name="order_item_price_gt_0",
            ),
        ]

    def clean(self):
        if not self.quantity or int(self.quantity) < 1:
            raise ValidationError("quantity must be at least 1")
        if self.price_at_time is None or Decimal(self.price_at_time) <= 0:
            raise ValidationError("price_at_time must be greater than zero")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("OrderItem records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("OrderItem records are immutable and cannot be deleted")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price_at_time) * int(self.quantity)

    def __str__(self):
        return f"{self.quantity} x {getattr(self.product, 'name', 'Product')} @ {self.price_at_time}"
