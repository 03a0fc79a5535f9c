# inventory/services/ledger.py

"""
INGREDIENT LEDGER (WRITE PATH)

Single entry point for stock changes: record_transaction().

Sign convention:
- callers pass a MAGNITUDE; its sign is ignored
- the stored quantity carries the sign for the type:
      order_usage                -> negative
      restock / manual_addition  -> positive
- current_stock moves by exactly the stored signed quantity

Atomicity:
- ingredient row locked (select_for_update)
- ledger row insert + current_stock update in ONE transaction
  => current_stock == sum(transactions.quantity) always holds

Stock may go negative (usage recorded before a restock is logged); that is
logged as a warning, not rejected.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.db import transaction
from django.db.models import F, Sum

from inventory.models import Ingredient, InventoryTransaction
from inventory.services.exceptions import InvalidTransactionError, LedgerDriftError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
TxType = InventoryTransaction.TransactionType


def _qty(v) -> Decimal:
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidTransactionError("quantity must be a valid decimal") from exc


def signed_quantity(quantity, transaction_type: str) -> Decimal:
    if transaction_type not in TxType.values:
        raise InvalidTransactionError(f"Unknown transaction_type: {transaction_type}")

    magnitude = abs(_qty(quantity))
    if magnitude == 0:
        raise InvalidTransactionError("quantity must be non-zero")

    if transaction_type in InventoryTransaction.NEGATIVE_TYPES:
        return -magnitude
    return magnitude


@transaction.atomic
def record_transaction(
    *,
    ingredient,
    quantity,
    transaction_type: str,
    notes: str = "",
    user=None,
) -> InventoryTransaction:
    delta = signed_quantity(quantity, transaction_type)

    ingredient_id = getattr(ingredient, "pk", ingredient)
    locked = Ingredient.objects.select_for_update().get(pk=ingredient_id)

    tx = InventoryTransaction.objects.create(
        ingredient=locked,
        quantity=delta,
        transaction_type=transaction_type,
        notes=(notes or "").strip(),
        performed_by=user if getattr(user, "is_authenticated", False) else None,
    )

    Ingredient.objects.filter(pk=locked.pk).update(current_stock=F("current_stock") + delta)
    locked.refresh_from_db(fields=["current_stock", "updated_at"])

    if locked.current_stock < 0:
        logger.warning(
            "Ingredient stock below zero",
            extra={"ingredient_id": str(locked.pk), "current_stock": str(locked.current_stock)},
        )

    logger.info(
        "Inventory transaction recorded",
        extra={
            "ingredient_id": str(locked.pk),
            "transaction_type": transaction_type,
            "quantity": str(delta),
        },
    )

    if isinstance(ingredient, Ingredient):
        ingredient.current_stock = locked.current_stock

    return tx


@transaction.atomic
def create_ingredient(*, opening_stock=None, user=None, **fields) -> Ingredient:
    """
    New ingredients start at zero; a non-zero opening stock is booked as a
    manual_addition so the ledger explains every unit from day one.
    """
    fields.pop("current_stock", None)
    ingredient = Ingredient(**fields)
    ingredient.full_clean()
    ingredient.save()

    if opening_stock not in (None, ""):
        opening = _qty(opening_stock)
        if opening < 0:
            raise InvalidTransactionError("opening_stock cannot be negative")
        if opening > 0:
            record_transaction(
                ingredient=ingredient,
                quantity=opening,
                transaction_type=TxType.MANUAL_ADDITION,
                notes="Opening stock",
                user=user,
            )

    return ingredient


def ledger_balance(ingredient) -> Decimal:
    ingredient_id = getattr(ingredient, "pk", ingredient)
    total = (
        InventoryTransaction.objects.filter(ingredient_id=ingredient_id)
        .aggregate(total=Sum("quantity"))
        .get("total")
    )
    return _qty(total or 0)


def check_ledger(ingredient) -> None:
    ingredient_id = getattr(ingredient, "pk", ingredient)
    cached = _qty(
        Ingredient.objects.filter(pk=ingredient_id).values_list("current_stock", flat=True).get()
    )
    ledger = ledger_balance(ingredient_id)
    if cached != ledger:
        raise LedgerDriftError(ingredient_id, cached, ledger)


@transaction.atomic
def recompute_stock(ingredient) -> Decimal:
    """
    Reset current_stock to the ledger sum. Returns the correction applied.
    """
    ingredient_id = getattr(ingredient, "pk", ingredient)
    locked = Ingredient.objects.select_for_update().get(pk=ingredient_id)

    ledger = ledger_balance(locked.pk)
    correction = ledger - _qty(locked.current_stock)

    if correction:
        Ingredient.objects.filter(pk=locked.pk).update(current_stock=ledger)
        logger.warning(
            "Ingredient stock recomputed from ledger",
            extra={
                "ingredient_id": str(locked.pk),
                "was": str(locked.current_stock),
                "now": str(ledger),
            },
        )

    if isinstance(ingredient, Ingredient):
        ingredient.current_stock = ledger

    return correction
