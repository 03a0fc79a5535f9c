# orders/services/order_status.py

"""
ORDER STATUS TRANSITIONS

Legal predecessor table (the only source of truth):

    confirmed  <- pending
    preparing  <- confirmed
    ready      <- preparing
    delivered  <- ready
    cancelled  <- pending | confirmed | preparing | ready

delivered and cancelled are terminal.

set_status() is the single mutation boundary for Order.status.
`force=True` bypasses the table (admin override) and is always logged.
"""

from __future__ import annotations

import logging

from django.db import transaction

from orders.models import Order, OrderStatus
from orders.services.exceptions import InvalidStatusTransition

logger = logging.getLogger(__name__)

ALLOWED_PREDECESSORS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset(),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PENDING}),
    OrderStatus.PREPARING: frozenset({OrderStatus.CONFIRMED}),
    OrderStatus.READY: frozenset({OrderStatus.PREPARING}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.READY}),
    OrderStatus.CANCELLED: frozenset(
        {
            OrderStatus.PENDING,
            OrderStatus.CONFIRMED,
            OrderStatus.PREPARING,
            OrderStatus.READY,
        }
    ),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def can_transition(current: str, new_status: str) -> bool:
    return current in ALLOWED_PREDECESSORS.get(new_status, frozenset())


def next_statuses(current: str) -> list[str]:
    return [s for s in OrderStatus.values if can_transition(current, s)]


@transaction.atomic
def set_status(order: Order, new_status: str, *, actor=None, force: bool = False) -> Order:
    """
    Move an order to `new_status`.

    - Unknown status -> ValueError
    - Same status    -> no-op (webhook redelivery)
    - Illegal move   -> InvalidStatusTransition (unless force=True)
    """
    if new_status not in OrderStatus.values:
        raise ValueError(f"Unknown order status: {new_status}")

    locked = Order.objects.select_for_update().get(pk=order.pk)
    current = locked.status

    if current == new_status:
        return locked

    if not can_transition(current, new_status):
        if not force:
            raise InvalidStatusTransition(current, new_status)

        logger.warning(
            "Order status forced outside transition table",
            extra={
                "order_id": str(locked.id),
                "from": current,
                "to": new_status,
                "actor": str(getattr(actor, "pk", actor) or ""),
            },
        )

    locked.status = new_status
    locked.save(update_fields=["status", "updated_at"])

    logger.info(
        "Order status changed",
        extra={
            "order_id": str(locked.id),
            "from": current,
            "to": new_status,
            "actor": str(getattr(actor, "pk", actor) or ""),
        },
    )

    order.status = locked.status
    order.updated_at = locked.updated_at
    return locked
