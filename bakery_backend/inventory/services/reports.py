# inventory/services/reports.py

"""
INVENTORY READ MODELS

- history_queryset(): newest-first ledger with filters
- inventory_health(): expired / low / healthy counts + stock value
- usage_analytics(): top ingredients by absolute movement + type distribution
- write_transactions_csv(): CSV export of a history queryset
"""

from __future__ import annotations

import csv
import uuid
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Count, Sum
from django.db.models.functions import Abs
from django.utils import timezone

from inventory.models import Ingredient, InventoryTransaction
from inventory.services.stock_status import IN_STOCK, get_stock_status, is_expired

TWOPLACES = Decimal("0.01")

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500

PERIOD_DAYS = {
    "today": 1,
    "week": 7,
    "month": 30,
    "year": 365,
    "all": None,
}

CSV_COLUMNS = ["Date", "Ingredient", "Quantity", "Type", "Notes"]


def _money(x) -> str:
    return f"{Decimal(str(x or 0)).quantize(TWOPLACES, rounding=ROUND_HALF_UP):.2f}"


# -----------------------------
# history
# -----------------------------
def history_queryset(*, period: str = "all", ingredient_id=None, transaction_type: str = "", now=None):
    if period not in PERIOD_DAYS:
        raise ValueError(f"period must be one of {', '.join(PERIOD_DAYS)}")

    qs = InventoryTransaction.objects.select_related("ingredient", "performed_by").order_by(
        "-created_at"
    )

    days = PERIOD_DAYS[period]
    if days is not None:
        qs = qs.filter(created_at__gte=(now or timezone.now()) - timedelta(days=days))

    if ingredient_id:
        try:
            ingredient_id = uuid.UUID(str(ingredient_id))
        except ValueError as exc:
            raise ValueError("ingredient must be a valid id") from exc
        qs = qs.filter(ingredient_id=ingredient_id)

    if transaction_type:
        if transaction_type not in InventoryTransaction.TransactionType.values:
            raise ValueError(f"Unknown transaction_type: {transaction_type}")
        qs = qs.filter(transaction_type=transaction_type)

    return qs


def clamp_limit(raw, default: int = DEFAULT_HISTORY_LIMIT) -> int:
    if raw in (None, ""):
        return default
    value = int(raw)
    if value < 1:
        raise ValueError("limit must be a positive integer")
    return min(value, MAX_HISTORY_LIMIT)


# -----------------------------
# health
# -----------------------------
def inventory_health(*, now=None) -> dict:
    expired = low = healthy = 0
    total_value = Decimal("0.00")

    for ing in Ingredient.objects.all().only(
        "current_stock", "minimum_stock", "cost_per_unit", "expiry_date"
    ):
        stock = Decimal(ing.current_stock or 0)
        total_value += max(stock, Decimal("0")) * Decimal(ing.cost_per_unit or 0)

        if is_expired(ing.expiry_date, now=now):
            expired += 1
        elif get_stock_status(stock, ing.minimum_stock) != IN_STOCK:
            low += 1
        else:
            healthy += 1

    return {
        "expired": expired,
        "low_stock": low,
        "healthy": healthy,
        "total_value": _money(total_value),
    }


# -----------------------------
# analytics
# -----------------------------
def usage_analytics(*, top: int = 5) -> dict:
    top_rows = (
        InventoryTransaction.objects.values("ingredient_id", "ingredient__name", "ingredient__unit")
        .annotate(total=Sum(Abs("quantity")))
        .order_by("-total", "ingredient__name")[:top]
    )

    labels = dict(InventoryTransaction.TransactionType.choices)
    dist_rows = (
        InventoryTransaction.objects.values("transaction_type")
        .annotate(count=Count("id"))
        .order_by("transaction_type")
    )

    return {
        "top_ingredients": [
            {
                "ingredient_id": str(r["ingredient_id"]),
                "name": r["ingredient__name"],
                "unit": r["ingredient__unit"],
                "total_quantity": _money(r["total"]),
            }
            for r in top_rows
        ],
        "type_distribution": [
            {
                "transaction_type": r["transaction_type"],
                "label": labels.get(r["transaction_type"], r["transaction_type"]),
                "count": int(r["count"]),
            }
            for r in dist_rows
        ],
    }


# -----------------------------
# CSV
# -----------------------------
def export_filename(period: str, *, today=None) -> str:
    today = today or timezone.localdate()
    return f"inventory-transactions-{period}-{today.isoformat()}.csv"


def write_transactions_csv(stream, transactions) -> int:
    labels = dict(InventoryTransaction.TransactionType.choices)
    writer = csv.writer(stream)
    writer.writerow(CSV_COLUMNS)

    rows = 0
    for tx in transactions:
        writer.writerow(
            [
                timezone.localtime(tx.created_at).strftime("%Y-%m-%d %H:%M"),
                tx.ingredient.name,
                f"{_money(tx.quantity)} {tx.ingredient.unit}",
                labels.get(tx.transaction_type, tx.transaction_type),
                tx.notes or "",
            ]
        )
        rows += 1
    return rows
