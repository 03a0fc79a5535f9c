from django.contrib.auth import get_user_model
from django.core.cache import cache, caches
from django.core.cache.backends.db import DatabaseCache
from django.test import TestCase
from rest_framework.exceptions import NotAuthenticated
from rest_framework.test import APIClient, APIRequestFactory

from permissions.roles import IsAdmin, IsCustomerOrAdmin
from users.session import SessionContext, get_session_context, invalidate_session_role

User = get_user_model()


class SessionContextTests(TestCase):
    """
    Session context tests.

    GUARANTEES:
    - Authenticated requests resolve to (user_id, email, role)
    - Anonymous requests are rejected
    - Role changes are visible on the next request (no stale cache)
    - The cached role and its invalidation are shared by every worker
    """

    def setUp(self):
        cache.clear()
        self.factory = APIRequestFactory()
        self.customer = User.objects.create_user(
            email="customer@example.com",
            password="pass1234",
        )
        self.admin = User.objects.create_user(
            email="admin@example.com",
            password="pass1234",
            role="admin",
        )

    def _request_for(self, user=None):
        request = self.factory.get("/")
        request.user = user
        return request

    def test_context_for_customer(self):
        ctx = get_session_context(self._request_for(self.customer))

        self.assertIsInstance(ctx, SessionContext)
        self.assertEqual(ctx.user_id, str(self.customer.id))
        self.assertEqual(ctx.email, "customer@example.com")
        self.assertEqual(ctx.role, "customer")
        self.assertFalse(ctx.is_admin)

    def test_context_for_admin(self):
        ctx = get_session_context(self._request_for(self.admin))
        self.assertTrue(ctx.is_admin)

    def test_anonymous_is_rejected(self):
        from django.contrib.auth.models import AnonymousUser

        with self.assertRaises(NotAuthenticated):
            get_session_context(self._request_for(AnonymousUser()))

    def test_role_change_invalidates_cached_role(self):
        request = self._request_for(self.customer)
        self.assertEqual(get_session_context(request).role, "customer")

        self.customer.role = "admin"
        self.customer.save()

        self.assertEqual(get_session_context(request).role, "admin")

    def test_cached_role_is_visible_to_other_workers(self):
        self.assertIsInstance(caches["shared"], DatabaseCache)
        key = f"session-role:{self.customer.id}"

        get_session_context(self._request_for(self.customer))

        # a separate backend instance stands in for another worker process
        other_worker = caches.create_connection("shared")
        self.assertEqual(other_worker.get(key), "customer")

        invalidate_session_role(self.customer.id)
        self.assertIsNone(other_worker.get(key))


class RolePermissionTests(TestCase):
    """
    GUARANTEES:
    - Admin-only endpoints reject customers
    - Anonymous users denied everywhere
    """

    def setUp(self):
        cache.clear()
        self.factory = APIRequestFactory()
        self.customer = User.objects.create_user(email="c@example.com", password="pass1234")
        self.admin = User.objects.create_user(
            email="a@example.com", password="pass1234", role="admin"
        )

    def _request_for(self, user=None):
        request = self.factory.get("/")
        request.user = user
        return request

    def test_admin_permissions(self):
        request = self._request_for(self.admin)

        self.assertTrue(IsAdmin().has_permission(request, None))
        self.assertTrue(IsCustomerOrAdmin().has_permission(request, None))

    def test_customer_permissions(self):
        request = self._request_for(self.customer)

        self.assertFalse(IsAdmin().has_permission(request, None))
        self.assertTrue(IsCustomerOrAdmin().has_permission(request, None))

    def test_anonymous_denied(self):
        request = self._request_for(None)

        self.assertFalse(IsAdmin().has_permission(request, None))
        self.assertFalse(IsCustomerOrAdmin().has_permission(request, None))


class AuthEndpointTests(TestCase):
    """
    GUARANTEES:
    - Public registration always yields a customer
    - JWT login works with email/password
    - Logout blacklists the refresh token
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_register_creates_customer_even_if_role_sent(self):
        res = self.client.post(
            "/api/auth/register/",
            {"email": "new@example.com", "password": "longpassword", "role": "admin"},
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(User.objects.get(email="new@example.com").role, "customer")

    def test_register_rejects_duplicate_email(self):
        User.objects.create_user(email="dup@example.com", password="longpassword")

        res = self.client.post(
            "/api/auth/register/",
            {"email": "dup@example.com", "password": "longpassword"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_login_me_logout_flow(self):
        User.objects.create_user(email="flow@example.com", password="longpassword")

        res = self.client.post(
            "/api/auth/jwt/create/",
            {"email": "flow@example.com", "password": "longpassword"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        access, refresh = res.data["access"], res.data["refresh"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        me = self.client.get("/api/auth/me/")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data["role"], "customer")
        self.assertFalse(me.data["is_admin"])

        out = self.client.post("/api/auth/logout/", {"refresh": refresh}, format="json")
        self.assertEqual(out.status_code, 205)

        again = self.client.post(
            "/api/auth/jwt/refresh/", {"refresh": refresh}, format="json"
        )
        self.assertEqual(again.status_code, 401)

    def test_me_requires_auth(self):
        self.assertEqual(self.client.get("/api/auth/me/").status_code, 401)
