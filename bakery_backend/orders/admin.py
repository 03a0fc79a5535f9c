# orders/admin.py
"""
PATH: orders/admin.py

Orders in Django admin are read-mostly:
- items and feedback are shown inline, never editable
- status changes go through the admin action below, which uses set_status()
  so the transition table and the change feed apply here too
"""

from __future__ import annotations

from django.contrib import admin, messages

from orders.models import Order, OrderFeedback, OrderItem, OrderStatus
from orders.services.exceptions import InvalidStatusTransition
from orders.services.order_status import set_status


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ("product", "quantity", "price_at_time")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


class OrderFeedbackInline(admin.TabularInline):
    model = OrderFeedback
    extra = 0
    can_delete = False
    fields = ("user", "rating", "comment", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


def _status_action(target: str):
    def action(modeladmin, request, queryset):
        moved = 0
        for order in queryset:
            try:
                set_status(order, target, actor=request.user)
                moved += 1
            except InvalidStatusTransition as exc:
                modeladmin.message_user(request, str(exc), level=messages.WARNING)
        if moved:
            modeladmin.message_user(request, f"{moved} order(s) marked {target}.")

    action.__name__ = f"mark_{target}"
    action.short_description = f"Mark selected orders as {target}"
    return action


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "total_amount", "status", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("id", "user__email", "payment_intent_id")
    ordering = ("-created_at",)
    readonly_fields = (
        "user",
        "total_amount",
        "status",
        "payment_intent_id",
        "created_at",
        "updated_at",
    )
    inlines = [OrderItemInline, OrderFeedbackInline]
    actions = [_status_action(s) for s in OrderStatus.values if s != OrderStatus.PENDING]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
