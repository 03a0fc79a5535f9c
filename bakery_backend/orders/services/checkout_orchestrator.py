# orders/services/checkout_orchestrator.py

"""
CHECKOUT ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Turn a submitted cart snapshot into a pending Order + OrderItems and a
  Stripe payment intent the browser can confirm.

Steps:
1) total = sum(price * quantity) at 2dp; amount = total in minor units (half-up)
2) Order(pending) + one OrderItem per line (price_at_time = submitted price)
3) Stripe payment intent for `amount` (metadata: user_id, order_id)
4) stamp payment_intent_id on the Order

Hard rules:
- Steps 2-4 run inside ONE DB transaction. The intent is created after the
  rows exist, so a Stripe failure rolls the rows back (no orphaned order).
- If the DB fails after the intent exists, the intent is cancelled as a
  compensating action before the error propagates (no orphaned intent).
- Not idempotent: every call is a new attempt. Nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from django.conf import settings
from django.db import DatabaseError, transaction

from orders.models import Order, OrderItem, OrderStatus
from orders.services.exceptions import (
    CheckoutForbiddenError,
    CheckoutPersistenceError,
    CheckoutValidationError,
)
from payments.services import stripe
from payments.services.exceptions import PaymentProviderError
from products.models import Product

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CheckoutLine:
    product_id: str
    name: str
    price: Decimal
    quantity: int
    image_url: str = ""


@dataclass(frozen=True)
class CheckoutResult:
    client_secret: str
    order_id: str
    return_url: str
    total: Decimal
    amount_minor: int


def compute_total(lines: Iterable[CheckoutLine]) -> Decimal:
    return _money(sum((_money(l.price) * int(l.quantity) for l in lines), Decimal("0")))


def build_return_url(order_id) -> str:
    base = ""
    payments = getattr(settings, "PAYMENTS", {}) or {}
    if isinstance(payments, dict):
        base = ((payments.get("STRIPE") or {}).get("RETURN_URL_BASE") or "").strip()
    if not base:
        base = (getattr(settings, "FRONTEND_BASE_URL", "") or "").strip()
    return f"{base.rstrip('/')}/order-confirmation/{order_id}"


def normalize_lines(items) -> list[CheckoutLine]:
    """
    Validate the raw cart snapshot. Raises CheckoutValidationError.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise CheckoutValidationError("Cart is empty")

    lines: list[CheckoutLine] = []
    seen: set[str] = set()

    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise CheckoutValidationError(f"Item {idx} is not an object")

        pid = str(raw.get("product_id") or raw.get("id") or "").strip()
        if not pid:
            raise CheckoutValidationError(f"Item {idx} is missing product_id")
        if pid in seen:
            raise CheckoutValidationError(f"Item {idx} repeats product {pid}")
        seen.add(pid)

        try:
            price = _money(raw.get("price"))
        except (InvalidOperation, ValueError, TypeError):
            raise CheckoutValidationError(f"Item {idx} has an invalid price")
        if price <= Decimal("0.00"):
            raise CheckoutValidationError(f"Item {idx} price must be greater than zero")

        qty = raw.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
            raise CheckoutValidationError(f"Item {idx} quantity must be a whole number >= 1")

        lines.append(
            CheckoutLine(
                product_id=pid,
                name=str(raw.get("name") or "").strip(),
                price=price,
                quantity=qty,
                image_url=str(raw.get("image_url") or "").strip(),
            )
        )

    known = {
        str(p)
        for p in Product.objects.filter(id__in=[l.product_id for l in lines]).values_list(
            "id", flat=True
        )
    }
    missing = [l.product_id for l in lines if l.product_id not in known]
    if missing:
        raise CheckoutValidationError(f"Unknown product(s): {', '.join(missing)}")

    return lines


def _cancel_intent_quietly(intent_id: str, *, order_id: str) -> None:
    try:
        stripe.cancel_payment_intent(intent_id)
    except PaymentProviderError:
        logger.exception(
            "Compensating cancel of payment intent failed",
            extra={"intent_id": intent_id, "order_id": order_id},
        )
    else:
        logger.warning(
            "Payment intent cancelled after order persistence failure",
            extra={"intent_id": intent_id, "order_id": order_id},
        )


def checkout(*, session, items, user_id=None) -> CheckoutResult:
    """
    session: users.session.SessionContext of the caller.
    user_id: the id the client claims to check out for; must match the session.
    """
    if user_id is not None and str(user_id).strip() != session.user_id:
        raise CheckoutForbiddenError("Cannot check out on behalf of another user")

    lines = normalize_lines(items)
    total = compute_total(lines)
    amount_minor = stripe.to_minor_units(total)
    currency = stripe.get_currency()

    intent_id = ""
    order_id = ""

    try:
        with transaction.atomic():
            order = Order.objects.create(
                user_id=session.user_id,
                total_amount=total,
                status=OrderStatus.PENDING,
            )
            order_id = str(order.id)

            OrderItem.objects.bulk_create(
                [
                    OrderItem(
                        order=order,
                        product_id=l.product_id,
                        quantity=l.quantity,
                        price_at_time=l.price,
                    )
                    for l in lines
                ]
            )

            intent = stripe.create_payment_intent(
                amount_minor=amount_minor,
                currency=currency,
                metadata={"user_id": session.user_id, "order_id": order_id},
            )
            intent_id = intent["id"]

            order.payment_intent_id = intent_id
            order.save(update_fields=["payment_intent_id", "updated_at"])
    except PaymentProviderError:
        logger.exception(
            "Checkout failed creating payment intent",
            extra={"user_id": session.user_id, "amount_minor": amount_minor},
        )
        raise
    except DatabaseError as exc:
        logger.exception(
            "Checkout failed persisting order",
            extra={"user_id": session.user_id, "order_id": order_id},
        )
        if intent_id:
            _cancel_intent_quietly(intent_id, order_id=order_id)
        raise CheckoutPersistenceError("Could not save your order. You have not been charged.") from exc

    logger.info(
        "Checkout created pending order",
        extra={
            "user_id": session.user_id,
            "order_id": order_id,
            "amount_minor": amount_minor,
            "lines": len(lines),
        },
    )

    return CheckoutResult(
        client_secret=intent["client_secret"],
        order_id=order_id,
        return_url=build_return_url(order_id),
        total=total,
        amount_minor=amount_minor,
    )
