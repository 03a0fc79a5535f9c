# users/admin.py

"""
USERS ADMIN

Back-office view of storefront accounts.
- Role is the only authorization switch (customer/admin).
- Promote/demote actions go through save() so the cached session role
  is dropped by users/signals.py.
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

User = get_user_model()


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("-created_at",)
    list_display = ("email", "first_name", "last_name", "role", "is_active", "created_at")
    list_filter = ("role", "is_active")
    search_fields = ("email", "first_name", "last_name")
    readonly_fields = ("created_at", "updated_at", "last_login")
    actions = ("make_admin", "make_customer")

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Profile", {"fields": ("first_name", "last_name")}),
        ("Access", {"fields": ("role", "is_active", "is_staff", "is_superuser")}),
        ("Dates", {"fields": ("last_login", "created_at", "updated_at")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2", "role"),
            },
        ),
    )

    @admin.action(description="Grant admin role")
    def make_admin(self, request, queryset):
        for user in queryset:
            user.role = User.ROLE_ADMIN
            user.save(update_fields=["role", "updated_at"])

    @admin.action(description="Revoke admin role")
    def make_customer(self, request, queryset):
        for user in queryset:
            user.role = User.ROLE_CUSTOMER
            user.save(update_fields=["role", "updated_at"])
