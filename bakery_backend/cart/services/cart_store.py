"""
PATH: cart/services/cart_store.py

PER-USER CART STORE

Storage:
- Django cache alias "carts" (DatabaseCache, no expiry)
- key:   cart_<user_id>
- value: JSON array of {product_id, name, price, image_url, quantity}
         (price is a decimal string so nothing is lost to float)

Rules:
- Every mutation loads, edits and writes back the FULL list.
- Quantities are always >= 1 (update_quantity clamps, never removes).
- At most one entry per product_id.
- Last write wins; there is no cross-device merge.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List

from django.core.cache import caches

logger = logging.getLogger(__name__)

CART_CACHE_ALIAS = "carts"
TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    price: Decimal
    image_url: str = ""
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return _money(self.price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": str(_money(self.price)),
            "image_url": self.image_url or "",
            "quantity": int(self.quantity),
        }

    @classmethod
    def from_dict(cls, raw: dict) -> "CartItem":
        return cls(
            product_id=str(raw["product_id"]),
            name=str(raw.get("name") or ""),
            price=_money(raw["price"]),
            image_url=str(raw.get("image_url") or ""),
            quantity=max(1, int(raw.get("quantity") or 1)),
        )


def cart_key(user_id) -> str:
    return f"cart_{user_id}"


class CartStore:
    """
    Thin persistence wrapper. Instances hold no state besides the cache alias.
    """

    def __init__(self, alias: str = CART_CACHE_ALIAS):
        self.alias = alias

    @property
    def _cache(self):
        return caches[self.alias]

    # -----------------------------
    # raw load/save
    # -----------------------------
    def load(self, user_id) -> List[CartItem]:
        raw = self._cache.get(cart_key(user_id))
        if not raw:
            return []

        try:
            rows = json.loads(raw)
            return [CartItem.from_dict(r) for r in rows]
        except (ValueError, TypeError, KeyError, InvalidOperation):
            # A corrupt entry is dropped rather than blocking the user's cart.
            logger.warning(
                "Discarding unreadable cart entry",
                extra={"user_id": str(user_id)},
            )
            self._cache.delete(cart_key(user_id))
            return []

    def save(self, user_id, items: Iterable[CartItem]) -> List[CartItem]:
        items = list(items)
        payload = json.dumps([i.to_dict() for i in items])
        self._cache.set(cart_key(user_id), payload, timeout=None)
        return items

    def clear(self, user_id) -> None:
        self._cache.delete(cart_key(user_id))

    # -----------------------------
    # mutations
    # -----------------------------
    def add_or_increment(self, user_id, item: CartItem) -> List[CartItem]:
        items = self.load(user_id)
        pid = str(item.product_id)

        for idx, existing in enumerate(items):
            if existing.product_id == pid:
                items[idx] = replace(existing, quantity=existing.quantity + 1)
                return self.save(user_id, items)

        items.append(replace(item, product_id=pid, quantity=1))
        return self.save(user_id, items)

    def update_quantity(self, user_id, product_id, delta: int) -> List[CartItem]:
        pid = str(product_id)
        items = [
            replace(i, quantity=max(1, i.quantity + int(delta))) if i.product_id == pid else i
            for i in self.load(user_id)
        ]
        return self.save(user_id, items)

    def remove(self, user_id, product_id) -> List[CartItem]:
        pid = str(product_id)
        return self.save(user_id, [i for i in self.load(user_id) if i.product_id != pid])

    # -----------------------------
    # derived
    # -----------------------------
    @staticmethod
    def total(items: Iterable[CartItem]) -> Decimal:
        return _money(sum((i.price * i.quantity for i in items), Decimal("0")))


cart_store = CartStore()
