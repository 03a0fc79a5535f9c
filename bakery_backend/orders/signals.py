# orders/signals.py

"""
Feeds ORM writes on Order into the in-process change feed (table "orders").
"""

from __future__ import annotations

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from orders.models import Order
from orders.services.change_feed import ORDERS_TABLE, publish


def _record(order: Order) -> dict:
    return {
        "id": str(order.pk),
        "user_id": str(order.user_id) if order.user_id else None,
        "status": order.status,
    }


@receiver(post_save, sender=Order)
def publish_order_saved(sender, instance, created, **kwargs):
    publish(ORDERS_TABLE, "insert" if created else "update", _record(instance))


@receiver(post_delete, sender=Order)
def publish_order_deleted(sender, instance, **kwargs):
    publish(ORDERS_TABLE, "delete", _record(instance))
