"""
PATH: users/session.py

SESSION CONTEXT

Every authenticated request resolves to a small immutable context:
    SessionContext(user_id, email, role)

Rules:
- Anonymous requests never get a context (NotAuthenticated -> 401).
- The role is read from the user row once and cached under
  "session-role:<user_id>" in the shared cache alias (DatabaseCache),
  so every worker sees the same entry and the same invalidation.
- Role changes, login and logout drop the cached role (see users/signals.py),
  so the next request re-reads it. No stale admin rights survive a demotion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import caches
from rest_framework.exceptions import NotAuthenticated

logger = logging.getLogger(__name__)

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class SessionContext:
    user_id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _role_cache_key(user_id) -> str:
    return f"session-role:{user_id}"


def _role_timeout() -> int:
    return int(getattr(settings, "SESSION_ROLE_CACHE_TIMEOUT", 60 * 60))


def _role_cache():
    return caches[getattr(settings, "SHARED_CACHE_ALIAS", "shared")]


def resolve_role(user) -> str:
    """
    Cached role lookup for an authenticated user.
    Unknown/blank roles collapse to customer (least privilege).
    """
    key = _role_cache_key(user.pk)
    role = _role_cache().get(key)
    if role is None:
        role = getattr(user, "role", None) or ROLE_CUSTOMER
        if role not in (ROLE_CUSTOMER, ROLE_ADMIN):
            logger.warning(
                "Unknown role on user; treating as customer",
                extra={"user_id": str(user.pk), "role": role},
            )
            role = ROLE_CUSTOMER
        _role_cache().set(key, role, timeout=_role_timeout())
    return role


def invalidate_session_role(user_id) -> None:
    _role_cache().delete(_role_cache_key(user_id))


def get_session_context(request) -> SessionContext:
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    return SessionContext(
        user_id=str(user.pk),
        email=user.email,
        role=resolve_role(user),
    )
