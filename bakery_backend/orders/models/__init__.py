"""
PATH: orders/models/__init__.py
"""

from .feedback import OrderFeedback
from .order import Order, OrderStatus
from .order_item import OrderItem

__all__ = [
    "Order",
    "OrderStatus",
    "OrderItem",
    "OrderFeedback",
]
