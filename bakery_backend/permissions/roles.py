# permissions/roles.py

from __future__ import annotations

from rest_framework.permissions import BasePermission

from users.session import ROLE_ADMIN, ROLE_CUSTOMER, get_session_context


# =========================================================
# ROLE CONSTANTS
# =========================================================
# Storefront has exactly two roles:
# - customer: browses the menu, owns a cart, places and tracks orders
# - admin:    back-office (orders, inventory, reports)
ALL_ROLES = {ROLE_CUSTOMER, ROLE_ADMIN}


# =========================================================
# Base Role Permission (Internal Use)
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Role-based access control resolved through the session context.

    Subclasses must define:
    - allowed_roles (set)

    The role comes from users.session (cached), never from request payloads.
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = getattr(request, "user", None)

        if not user or not user.is_authenticated:
            return False

        ctx = get_session_context(request)
        return ctx.role in self.allowed_roles


class IsAdmin(BaseRolePermission):
    allowed_roles = {ROLE_ADMIN}


class IsCustomerOrAdmin(BaseRolePermission):
    allowed_roles = ALL_ROLES
