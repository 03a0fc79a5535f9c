# payments/tests/test_stripe.py

import json
import time
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from orders.models import Order, OrderItem, OrderStatus
from payments.services import stripe
from payments.services.exceptions import WebhookSignatureError
from products.models import Product

User = get_user_model()

SECRET = "whsec_test"

STRIPE_SETTINGS = {
    "STRIPE": {
        "SECRET_KEY": "sk_test_x",
        "PUBLISHABLE_KEY": "pk_test_123",
        "WEBHOOK_SECRET": SECRET,
        "CURRENCY": "usd",
        "RETURN_URL_BASE": "https://shop.example.com",
    }
}


def signed_header(payload: bytes, *, secret=SECRET, timestamp=None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},v1={stripe.compute_webhook_signature(payload, ts, secret)}"


class MinorUnitsTests(SimpleTestCase):
    def test_conversion(self):
        self.assertEqual(stripe.to_minor_units(Decimal("45.00")), 4500)
        self.assertEqual(stripe.to_minor_units("35.50"), 3550)
        self.assertEqual(stripe.to_minor_units("10.005"), 1001)

    def test_invalid(self):
        with self.assertRaises(ValueError):
            stripe.to_minor_units("abc")

    def test_form_flattening(self):
        form = stripe._flatten_form(
            {"amount": 4500, "metadata": {"order_id": "o1"}, "automatic_payment_methods": {"enabled": True}}
        )
        self.assertIn(("metadata[order_id]", "o1"), form)
        self.assertIn(("automatic_payment_methods[enabled]", "true"), form)


@override_settings(PAYMENTS=STRIPE_SETTINGS)
class SignatureTests(SimpleTestCase):
    def test_valid_signature_returns_event(self):
        payload = json.dumps({"id": "evt_1", "type": "ping"}).encode()

        event = stripe.verify_webhook_signature(payload, signed_header(payload))

        self.assertEqual(event["id"], "evt_1")

    def test_rejects_bad_signature_and_stale_timestamp(self):
        payload = b'{"id": "evt_1"}'

        with self.assertRaises(WebhookSignatureError):
            stripe.verify_webhook_signature(payload, signed_header(payload, secret="whsec_other"))

        with self.assertRaises(WebhookSignatureError):
            stripe.verify_webhook_signature(
                payload, signed_header(payload, timestamp=int(time.time()) - 3600)
            )

        with self.assertRaises(WebhookSignatureError):
            stripe.verify_webhook_signature(payload, None)

        with self.assertRaises(WebhookSignatureError):
            stripe.verify_webhook_signature(payload, "garbage")


@override_settings(PAYMENTS=STRIPE_SETTINGS)
class PublishableKeyTests(TestCase):
    def test_returns_key(self):
        res = APIClient().get("/api/payments/publishable-key/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"secrets": {"publishableKey": "pk_test_123"}})

    @mock.patch.dict("os.environ", {"STRIPE_PUBLISHABLE_KEY": ""})
    def test_missing_key_is_400(self):
        with override_settings(PAYMENTS={"STRIPE": {"PUBLISHABLE_KEY": ""}}):
            res = APIClient().get("/api/payments/publishable-key/")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Stripe publishable key not found")


@override_settings(PAYMENTS=STRIPE_SETTINGS)
class WebhookTests(TestCase):
    """
    GUARANTEES:
    - Unsigned / mis-signed events are rejected with 400
    - payment_intent.succeeded confirms a pending order (amount must match)
    - payment_intent.canceled cancels it
    - Redeliveries and unknown events are acknowledged without changes
    - A metadata order_id that is not a UUID falls back to the intent id
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        user = User.objects.create_user(email="c@example.com", password="pass1234")
        cake = Product.objects.create(name="Classic Chocolate", price=Decimal("45.00"))
        self.order = Order.objects.create(
            user=user, total_amount=Decimal("45.00"), payment_intent_id="pi_123"
        )
        OrderItem.objects.create(order=self.order, product=cake, quantity=1, price_at_time=cake.price)

    def _event(self, event_type, *, amount=4500, metadata=True):
        intent = {"id": "pi_123", "amount": amount, "amount_received": amount}
        if metadata:
            intent["metadata"] = {"order_id": str(self.order.id)}
        return {"id": "evt_1", "type": event_type, "data": {"object": intent}}

    def _send(self, event, *, header=None):
        payload = json.dumps(event).encode()
        return self.client.post(
            "/api/payments/stripe/webhook/",
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=header if header is not None else signed_header(payload),
        )

    def test_invalid_signature(self):
        res = self._send(self._event("payment_intent.succeeded"), header="t=1,v1=deadbeef")

        self.assertEqual(res.status_code, 400)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_succeeded_confirms_order(self):
        res = self._send(self._event("payment_intent.succeeded"))

        self.assertEqual(res.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CONFIRMED)

        res = self._send(self._event("payment_intent.succeeded"))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["detail"], "Already processed")

    def test_lookup_by_intent_id_without_metadata(self):
        self._send(self._event("payment_intent.succeeded", metadata=False))

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CONFIRMED)

    def test_non_uuid_order_reference_falls_back_to_intent_id(self):
        event = self._event("payment_intent.succeeded")
        event["data"]["object"]["metadata"] = {"order_id": "ord_legacy_42"}

        res = self._send(event)

        self.assertEqual(res.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CONFIRMED)

    def test_amount_mismatch_leaves_order_pending(self):
        res = self._send(self._event("payment_intent.succeeded", amount=100))

        self.assertEqual(res.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_canceled_cancels_order(self):
        self._send(self._event("payment_intent.canceled"))

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CANCELLED)

    def test_failed_payment_keeps_order_pending(self):
        res = self._send(self._event("payment_intent.payment_failed"))

        self.assertEqual(res.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_unknown_event_acknowledged(self):
        res = self._send({"id": "evt_2", "type": "charge.refunded", "data": {"object": {}}})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["detail"], "Ignored event type")
