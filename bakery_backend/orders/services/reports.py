# orders/services/reports.py

"""
BACK-OFFICE ORDER REPORTS

- dashboard_summary(): recent orders + headline counters
- revenue_series(period): revenue/order-count buckets
    week  -> last 7 days, one bucket per day
    month -> last 12 months, one bucket per month
    year  -> every year with orders, one bucket per year (+ growth %)
- product_performance(): top products by units sold

Dashboard revenue excludes cancelled orders only. Revenue series count
confirmed-onward orders (payment captured).
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Avg, Count, DecimalField, ExpressionWrapper, F, Sum
from django.db.models.functions import TruncDate, TruncMonth, TruncYear
from django.utils import timezone

from orders.models import Order, OrderFeedback, OrderItem, OrderStatus

TWOPLACES = Decimal("0.01")

REVENUE_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
)

PERIODS = ("week", "month", "year")


def _money(x) -> str:
    if x is None:
        return "0.00"
    return f"{Decimal(str(x)).quantize(TWOPLACES, rounding=ROUND_HALF_UP):.2f}"


def _display_name(email: str | None, first_name: str | None, last_name: str | None) -> str:
    full = f"{(first_name or '').strip()} {(last_name or '').strip()}".strip()
    if full:
        return full
    if email:
        return email
    return "Unknown"


def _local_start(d):
    return timezone.make_aware(datetime.combine(d, time.min), timezone.get_current_timezone())


# -----------------------------
# dashboard
# -----------------------------
def dashboard_summary(*, recent_limit: int = 10) -> dict:
    recent = (
        Order.objects.select_related("user")
        .order_by("-created_at")[:recent_limit]
    )

    revenue = (
        Order.objects.exclude(status=OrderStatus.CANCELLED)
        .aggregate(total=Sum("total_amount"))
        .get("total")
    )

    return {
        "total_orders": Order.objects.count(),
        "total_revenue": _money(revenue),
        "pending_orders": Order.objects.filter(status=OrderStatus.PENDING).count(),
        "recent_orders": [
            {
                "id": str(o.id),
                "customer_name": _display_name(o.user.email, o.user.first_name, o.user.last_name),
                "total_amount": _money(o.total_amount),
                "status": o.status,
                "created_at": o.created_at.isoformat(),
            }
            for o in recent
        ],
    }


# -----------------------------
# revenue
# -----------------------------
def revenue_series(period: str, *, today=None) -> list[dict]:
    if period not in PERIODS:
        raise ValueError(f"period must be one of {', '.join(PERIODS)}")

    today = today or timezone.localdate()
    qs = Order.objects.filter(status__in=REVENUE_STATUSES)

    if period == "week":
        start = today - timedelta(days=6)
        rows = (
            qs.filter(created_at__gte=_local_start(start))
            .annotate(bucket=TruncDate("created_at"))
            .values("bucket")
            .annotate(revenue=Sum("total_amount"), orders=Count("id"))
        )
        by_day = {r["bucket"]: r for r in rows}
        out = []
        for i in range(7):
            d = start + timedelta(days=i)
            r = by_day.get(d) or {}
            out.append(
                {
                    "day": d.strftime("%a"),
                    "date": d.isoformat(),
                    "revenue": _money(r.get("revenue")),
                    "orders": int(r.get("orders") or 0),
                }
            )
        return out

    if period == "month":
        first = today.replace(day=1)
        months = []
        y, m = first.year, first.month
        for _ in range(12):
            months.append((y, m))
            m -= 1
            if m == 0:
                y, m = y - 1, 12
        months.reverse()

        start = first.replace(year=months[0][0], month=months[0][1])
        rows = (
            qs.filter(created_at__gte=_local_start(start))
            .annotate(bucket=TruncMonth("created_at"))
            .values("bucket")
            .annotate(revenue=Sum("total_amount"), orders=Count("id"))
        )
        by_month = {(r["bucket"].year, r["bucket"].month): r for r in rows}
        return [
            {
                "month": datetime(y, m, 1).strftime("%b %Y"),
                "revenue": _money((by_month.get((y, m)) or {}).get("revenue")),
                "orders": int((by_month.get((y, m)) or {}).get("orders") or 0),
            }
            for y, m in months
        ]

    rows = (
        qs.annotate(bucket=TruncYear("created_at"))
        .values("bucket")
        .annotate(revenue=Sum("total_amount"), orders=Count("id"))
        .order_by("bucket")
    )
    out = []
    prev = None
    for r in rows:
        revenue = Decimal(str(r["revenue"] or 0))
        growth = None
        if prev:
            growth = float(((revenue - prev) / prev * 100).quantize(Decimal("0.1")))
        out.append(
            {
                "year": str(r["bucket"].year),
                "revenue": _money(revenue),
                "orders": int(r["orders"] or 0),
                "growth": growth,
            }
        )
        prev = revenue
    return out


# -----------------------------
# products
# -----------------------------
def product_performance(*, limit: int = 5) -> list[dict]:
    line_total = ExpressionWrapper(
        F("quantity") * F("price_at_time"),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )

    rows = (
        OrderItem.objects.exclude(order__status=OrderStatus.CANCELLED)
        .values("product_id", "product__name")
        .annotate(
            sales=Sum("quantity"),
            revenue=Sum(line_total),
            buyers=Count("order__user", distinct=True),
            orders=Count("order", distinct=True),
        )
        .order_by("-sales", "product__name")[:limit]
    )
    rows = list(rows)

    product_ids = [r["product_id"] for r in rows]
    ratings = {
        r["order__items__product_id"]: r["avg"]
        for r in OrderFeedback.objects.filter(order__items__product_id__in=product_ids)
        .values("order__items__product_id")
        .annotate(avg=Avg("rating"))
    }

    out = []
    for r in rows:
        buyers = int(r["buyers"] or 0)
        orders = int(r["orders"] or 0)
        repeat = orders - buyers
        avg = ratings.get(r["product_id"])
        out.append(
            {
                "product_id": str(r["product_id"]),
                "name": r["product__name"],
                "sales": int(r["sales"] or 0),
                "revenue": _money(r["revenue"]),
                "rating": round(float(avg), 1) if avg is not None else None,
                "reorder_rate": round(repeat / orders * 100, 1) if orders else 0.0,
            }
        )
    return out
