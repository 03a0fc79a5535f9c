# inventory/services/stock_status.py

"""
Pure helpers used by the API, admin and reports. No DB access.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from django.utils import timezone

OUT_OF_STOCK = "Out of Stock"
LOW_STOCK = "Low Stock"
IN_STOCK = "In Stock"

EXPIRING_SOON_DAYS = 7


def get_stock_status(current_stock, minimum_stock) -> str:
    stock = Decimal(str(current_stock or 0))
    minimum = Decimal(str(minimum_stock or 0))

    if stock <= 0:
        return OUT_OF_STOCK
    if stock <= minimum:
        return LOW_STOCK
    return IN_STOCK


def is_expiring_soon(expiry_date: date | None, *, today: date | None = None) -> bool:
    """
    True when the expiry is 1..7 calendar days away. Already-expired and
    same-day dates are handled by is_expired().
    """
    if expiry_date is None:
        return False
    today = today or timezone.localdate()
    days = (expiry_date - today).days
    return 0 < days <= EXPIRING_SOON_DAYS


def is_expired(expiry_date: date | None, *, now: datetime | None = None) -> bool:
    """
    The expiry date is read as the start of that local day; an ingredient
    is expired once that instant has passed.
    """
    if expiry_date is None:
        return False
    now = now or timezone.now()
    start = timezone.make_aware(datetime.combine(expiry_date, time.min), timezone.get_current_timezone())
    return start < now
