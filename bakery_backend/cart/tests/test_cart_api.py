# cart/tests/test_cart_api.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient

from cart.views import CartItemDetailView, CartItemsView, CartView
from orders.views import CheckoutView, OrderFeedbackView
from permissions.roles import IsCustomerOrAdmin
from products.models import Product

User = get_user_model()


class CartApiTests(TestCase):
    """
    GUARANTEES:
    - Cart endpoints require sign-in
    - Prices are snapshotted from the menu at add time
    - Quantity changes are clamped at 1
    - Shopping endpoints are gated by the customer-or-admin role check
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(email="c@example.com", password="pass1234")
        self.cake = Product.objects.create(name="Classic Chocolate", price=Decimal("45.00"))

    def test_anonymous_gets_sign_in_prompt(self):
        res = self.client.get("/api/cart/")

        self.assertEqual(res.status_code, 401)
        self.assertIn("sign in", str(res.data["detail"]).lower())

    def test_add_update_remove_flow(self):
        self.client.force_authenticate(self.user)

        res = self.client.post("/api/cart/items/", {"product_id": str(self.cake.id)}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["items"][0]["quantity"], 1)
        self.assertEqual(res.data["total"], "45.00")

        self.client.post("/api/cart/items/", {"product_id": str(self.cake.id)}, format="json")

        res = self.client.patch(
            f"/api/cart/items/{self.cake.id}/", {"delta": -5}, format="json"
        )
        self.assertEqual(res.data["items"][0]["quantity"], 1)

        res = self.client.delete(f"/api/cart/items/{self.cake.id}/")
        self.assertEqual(res.data["items"], [])
        self.assertEqual(res.data["total"], "0.00")

    def test_price_snapshot_survives_menu_change(self):
        self.client.force_authenticate(self.user)
        self.client.post("/api/cart/items/", {"product_id": str(self.cake.id)}, format="json")

        self.cake.price = Decimal("99.00")
        self.cake.save()

        res = self.client.get("/api/cart/")
        self.assertEqual(res.data["items"][0]["price"], "45.00")

    def test_unavailable_product_cannot_be_added(self):
        self.cake.is_available = False
        self.cake.save()
        self.client.force_authenticate(self.user)

        res = self.client.post("/api/cart/items/", {"product_id": str(self.cake.id)}, format="json")
        self.assertEqual(res.status_code, 404)

    def test_clear_cart(self):
        self.client.force_authenticate(self.user)
        self.client.post("/api/cart/items/", {"product_id": str(self.cake.id)}, format="json")

        res = self.client.delete("/api/cart/")
        self.assertEqual(res.data["item_count"], 0)
        self.assertEqual(self.client.get("/api/cart/").data["items"], [])

    def test_shopping_endpoints_check_role(self):
        for view in (CartView, CartItemsView, CartItemDetailView, CheckoutView, OrderFeedbackView):
            self.assertIn(IsCustomerOrAdmin, view.permission_classes, view.__name__)

    def test_admin_can_use_cart(self):
        admin = User.objects.create_user(email="a@example.com", password="pass1234", role="admin")
        self.client.force_authenticate(admin)

        res = self.client.post("/api/cart/items/", {"product_id": str(self.cake.id)}, format="json")
        self.assertEqual(res.status_code, 200)

    def test_unrecognised_role_is_treated_as_customer(self):
        User.objects.filter(id=self.user.id).update(role="supplier")
        self.user.refresh_from_db()
        self.client.force_authenticate(self.user)

        res = self.client.get("/api/cart/")
        self.assertEqual(res.status_code, 200)
