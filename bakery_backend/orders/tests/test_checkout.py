# orders/tests/test_checkout.py

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from orders.models import Order, OrderItem, OrderStatus
from payments.services.exceptions import PaymentProviderError
from products.models import Product

User = get_user_model()

STRIPE_SETTINGS = {
    "STRIPE": {
        "SECRET_KEY": "sk_test_x",
        "PUBLISHABLE_KEY": "pk_test_x",
        "WEBHOOK_SECRET": "whsec_x",
        "CURRENCY": "usd",
        "RETURN_URL_BASE": "https://shop.example.com",
    }
}

INTENT = {"id": "pi_123", "client_secret": "pi_123_secret_abc"}


@override_settings(PAYMENTS=STRIPE_SETTINGS)
class CheckoutTests(TestCase):
    """
    GUARANTEES:
    - amount sent to Stripe = sum(price * quantity) in minor units
    - one pending Order + one OrderItem per line, stamped with the intent id
    - a Stripe failure leaves no order behind
    - a DB failure after the intent exists cancels the intent
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(email="c@example.com", password="pass1234")
        self.other = User.objects.create_user(email="o@example.com", password="pass1234")
        self.client.force_authenticate(self.user)

        self.chocolate = Product.objects.create(name="Classic Chocolate", price=Decimal("45.00"))
        self.cupcake = Product.objects.create(name="Cupcake", price=Decimal("12.50"))
        self.cookie = Product.objects.create(name="Cookie", price=Decimal("10.50"))

    def _line(self, product, quantity=1, price=None):
        return {
            "product_id": str(product.id),
            "name": product.name,
            "price": str(price or product.price),
            "quantity": quantity,
        }

    @mock.patch("payments.services.stripe.create_payment_intent", return_value=INTENT)
    def test_single_item_checkout(self, create_intent):
        res = self.client.post(
            "/api/orders/checkout/",
            {"items": [self._line(self.chocolate)], "userId": str(self.user.id)},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["clientSecret"], "pi_123_secret_abc")

        order = Order.objects.get()
        self.assertEqual(res.data["orderId"], str(order.id))
        self.assertEqual(
            res.data["returnUrl"], f"https://shop.example.com/order-confirmation/{order.id}"
        )
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal("45.00"))
        self.assertEqual(order.payment_intent_id, "pi_123")

        kwargs = create_intent.call_args.kwargs
        self.assertEqual(kwargs["amount_minor"], 4500)
        self.assertEqual(kwargs["currency"], "usd")
        self.assertEqual(kwargs["metadata"]["order_id"], str(order.id))
        self.assertEqual(kwargs["metadata"]["user_id"], str(self.user.id))

    @mock.patch("payments.services.stripe.create_payment_intent", return_value=INTENT)
    def test_multi_line_total_and_items(self, create_intent):
        res = self.client.post(
            "/api/orders/checkout/",
            {"items": [self._line(self.cupcake, 2), self._line(self.cookie, 1)]},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        order = Order.objects.get()
        self.assertEqual(order.total_amount, Decimal("35.50"))
        self.assertEqual(create_intent.call_args.kwargs["amount_minor"], 3550)

        items = {i.product_id: i for i in OrderItem.objects.filter(order=order)}
        self.assertEqual(len(items), 2)
        self.assertEqual(items[self.cupcake.id].quantity, 2)
        self.assertEqual(items[self.cupcake.id].price_at_time, Decimal("12.50"))

    @mock.patch("payments.services.stripe.create_payment_intent", return_value=INTENT)
    def test_submitted_price_is_snapshotted(self, create_intent):
        self.client.post(
            "/api/orders/checkout/",
            {"items": [self._line(self.chocolate, price="40.00")]},
            format="json",
        )

        item = OrderItem.objects.get()
        self.assertEqual(item.price_at_time, Decimal("40.00"))
        self.assertEqual(create_intent.call_args.kwargs["amount_minor"], 4000)

    @mock.patch(
        "payments.services.stripe.create_payment_intent",
        side_effect=PaymentProviderError("Your card was declined", status_code=402),
    )
    def test_stripe_failure_leaves_no_order(self, create_intent):
        res = self.client.post(
            "/api/orders/checkout/", {"items": [self._line(self.chocolate)]}, format="json"
        )

        self.assertEqual(res.status_code, 502)
        self.assertEqual(res.data["error"], "Your card was declined")
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)

    @mock.patch("payments.services.stripe.cancel_payment_intent")
    @mock.patch("payments.services.stripe.create_payment_intent", return_value=INTENT)
    def test_db_failure_after_intent_cancels_it(self, create_intent, cancel_intent):
        original_save = Order.save

        def failing_save(order, *args, **kwargs):
            if "payment_intent_id" in (kwargs.get("update_fields") or []):
                raise DatabaseError("disk full")
            return original_save(order, *args, **kwargs)

        with mock.patch.object(Order, "save", failing_save):
            res = self.client.post(
                "/api/orders/checkout/", {"items": [self._line(self.chocolate)]}, format="json"
            )

        self.assertEqual(res.status_code, 500)
        cancel_intent.assert_called_once_with("pi_123")
        self.assertEqual(Order.objects.count(), 0)

    @mock.patch("payments.services.stripe.create_payment_intent", return_value=INTENT)
    def test_checkout_for_another_user_forbidden(self, create_intent):
        res = self.client.post(
            "/api/orders/checkout/",
            {"items": [self._line(self.chocolate)], "userId": str(self.other.id)},
            format="json",
        )

        self.assertEqual(res.status_code, 403)
        create_intent.assert_not_called()
        self.assertEqual(Order.objects.count(), 0)

    @mock.patch("payments.services.stripe.create_payment_intent", return_value=INTENT)
    def test_invalid_carts_rejected(self, create_intent):
        res = self.client.post("/api/orders/checkout/", {"items": []}, format="json")
        self.assertEqual(res.status_code, 400)

        res = self.client.post(
            "/api/orders/checkout/",
            {"items": [self._line(self.chocolate, quantity=0)]},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

        res = self.client.post(
            "/api/orders/checkout/",
            {"items": [self._line(self.chocolate), self._line(self.chocolate)]},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

        ghost = {
            "product_id": "00000000-0000-0000-0000-000000000000",
            "price": "5.00",
            "quantity": 1,
        }
        res = self.client.post("/api/orders/checkout/", {"items": [ghost]}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("Unknown product", res.data["error"])

        create_intent.assert_not_called()

    def test_anonymous_rejected(self):
        self.client.force_authenticate(None)

        res = self.client.post(
            "/api/orders/checkout/", {"items": [self._line(self.chocolate)]}, format="json"
        )
        self.assertEqual(res.status_code, 401)

    @override_settings(PAYMENTS={"STRIPE": {"SECRET_KEY": "", "CURRENCY": "usd"}})
    @mock.patch.dict("os.environ", {"STRIPE_SECRET_KEY": ""})
    def test_unconfigured_stripe_is_503(self):
        res = self.client.post(
            "/api/orders/checkout/", {"items": [self._line(self.chocolate)]}, format="json"
        )

        self.assertEqual(res.status_code, 503)
        self.assertEqual(Order.objects.count(), 0)
