# payments/views/stripe_webhook.py
"""
POST /api/payments/stripe/webhook/

Stripe -> us. Signature-checked (Stripe-Signature header); anything that
fails verification gets 400. Everything else is acknowledged with 200 so
Stripe stops retrying, including unknown events and duplicates.

Event handling:
- payment_intent.succeeded       pending -> confirmed (amount must match)
- payment_intent.canceled        pending -> cancelled
- payment_intent.payment_failed  logged; order stays pending so the customer can retry
"""

from __future__ import annotations

import logging
import uuid

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from orders.models import Order, OrderStatus
from orders.services.exceptions import InvalidStatusTransition
from orders.services.order_status import set_status
from payments.services.exceptions import PaymentConfigurationError, WebhookSignatureError
from payments.services.stripe import to_minor_units, verify_webhook_signature

logger = logging.getLogger(__name__)

EVENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_CANCELED = "payment_intent.canceled"
EVENT_FAILED = "payment_intent.payment_failed"


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


def _ack(detail: str) -> Response:
    return Response({"ok": True, "detail": detail}, status=status.HTTP_200_OK)


def _find_order(intent: dict) -> Order | None:
    metadata = intent.get("metadata") or {}
    order_id = str(metadata.get("order_id") or "").strip()

    if order_id:
        try:
            order_uuid = uuid.UUID(order_id)
        except ValueError:
            # foreign or legacy reference; fall back to the intent id
            logger.info(
                "Webhook metadata order_id is not one of ours",
                extra={"order_id": order_id, "intent_id": intent.get("id")},
            )
        else:
            order = Order.objects.filter(id=order_uuid).first()
            if order is not None:
                return order

    intent_id = str(intent.get("id") or "").strip()
    if intent_id:
        return Order.objects.filter(payment_intent_id=intent_id).first()

    return None


class StripeWebhookView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    def post(self, request, *args, **kwargs):
        raw_body = request.body or b""
        signature = request.headers.get("Stripe-Signature")

        try:
            event = verify_webhook_signature(raw_body, signature)
        except WebhookSignatureError as exc:
            logger.warning("Invalid Stripe webhook signature", extra={"reason": str(exc)})
            return Response({"ok": False, "detail": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentConfigurationError:
            logger.error("Stripe webhook received but no webhook secret is configured")
            return Response({"ok": False, "detail": "Webhook not configured"}, status=status.HTTP_400_BAD_REQUEST)

        event_type = str(event.get("type") or "")
        intent = ((event.get("data") or {}).get("object")) or {}

        logger.info(
            "Stripe webhook received",
            extra={"event_id": event.get("id"), "event_type": event_type, "intent_id": intent.get("id")},
        )

        if event_type not in (EVENT_SUCCEEDED, EVENT_CANCELED, EVENT_FAILED):
            return _ack("Ignored event type")

        order = _find_order(intent)
        if order is None:
            logger.warning("Webhook for unknown order", extra={"intent_id": intent.get("id")})
            return _ack("Unknown order")

        if event_type == EVENT_FAILED:
            error = (intent.get("last_payment_error") or {}).get("message") or ""
            logger.warning(
                "Payment failed for order",
                extra={"order_id": str(order.id), "intent_id": intent.get("id"), "error": error},
            )
            return _ack("Payment failure recorded")

        if event_type == EVENT_SUCCEEDED:
            expected = to_minor_units(order.total_amount)
            received = intent.get("amount_received", intent.get("amount"))
            if received is not None and int(received) != expected:
                logger.error(
                    "Payment amount mismatch",
                    extra={"order_id": str(order.id), "expected": expected, "received": received},
                )
                return _ack("Amount mismatch")
            target = OrderStatus.CONFIRMED
        else:
            target = OrderStatus.CANCELLED

        if order.status != OrderStatus.PENDING:
            logger.info(
                "Duplicate or late webhook ignored",
                extra={"order_id": str(order.id), "status": order.status, "event_type": event_type},
            )
            return _ack("Already processed")

        try:
            set_status(order, target, actor="stripe-webhook")
        except InvalidStatusTransition:
            logger.info("Order moved concurrently; webhook ignored", extra={"order_id": str(order.id)})
            return _ack("Already processed")

        return _ack("Processed")
