# payments/services/stripe.py
"""
STRIPE CLIENT (HTTPS, form-encoded)

Only the calls the storefront needs:
- create_payment_intent(amount_minor, currency, metadata) -> {id, client_secret, ...}
- cancel_payment_intent(intent_id)
- verify_webhook_signature(payload, header)

Config priority:
1) settings.PAYMENTS["STRIPE"]
2) env STRIPE_SECRET_KEY / STRIPE_PUBLISHABLE_KEY / STRIPE_WEBHOOK_SECRET

No retries. The socket timeout is the only timeout applied.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from django.conf import settings

from payments.services.exceptions import (
    PaymentConfigurationError,
    PaymentProviderError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

STRIPE_BASE = "https://api.stripe.com/v1"
REQUEST_TIMEOUT = 25
WEBHOOK_TOLERANCE_SECONDS = 300


# -----------------------------
# config
# -----------------------------
def _stripe_cfg() -> dict:
    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = payments.get("STRIPE") if isinstance(payments, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def _cfg_value(key: str, env_name: str) -> str:
    value = (_stripe_cfg().get(key) or "").strip()
    if not value:
        value = (os.environ.get(env_name) or "").strip()
    return value


def get_secret_key() -> str:
    sk = _cfg_value("SECRET_KEY", "STRIPE_SECRET_KEY")
    if not sk:
        raise PaymentConfigurationError(
            "Stripe secret key is not configured. "
            "Expected settings.PAYMENTS['STRIPE']['SECRET_KEY'] or env STRIPE_SECRET_KEY."
        )
    return sk


def get_publishable_key() -> str:
    pk = _cfg_value("PUBLISHABLE_KEY", "STRIPE_PUBLISHABLE_KEY")
    if not pk:
        raise PaymentConfigurationError("Stripe publishable key not found")
    return pk


def get_webhook_secret() -> str:
    wh = _cfg_value("WEBHOOK_SECRET", "STRIPE_WEBHOOK_SECRET")
    if not wh:
        raise PaymentConfigurationError("Stripe webhook secret is not configured.")
    return wh


def get_currency() -> str:
    return (_stripe_cfg().get("CURRENCY") or "usd").strip().lower()


# -----------------------------
# money
# -----------------------------
def to_minor_units(amount) -> int:
    """
    45.00 -> 4500. Half-up at the cent boundary (10.005 -> 1001).
    """
    try:
        major = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError("amount must be a valid Decimal") from exc
    minor = (major * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


# -----------------------------
# HTTP
# -----------------------------
def _flatten_form(data: dict, prefix: str = "") -> list[tuple[str, str]]:
    """
    Stripe's form encoding: nested dicts become key[sub]=value.
    """
    out: list[tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, dict):
            out.extend(_flatten_form(value, name))
        elif value is None:
            continue
        elif isinstance(value, bool):
            out.append((name, "true" if value else "false"))
        else:
            out.append((name, str(value)))
    return out


def _request(method: str, path: str, *, form: dict | None = None) -> dict[str, Any]:
    sk = get_secret_key()
    data = urlencode(_flatten_form(form)).encode("utf-8") if form is not None else None

    req = Request(
        f"{STRIPE_BASE}{path}",
        data=data,
        headers={
            "Authorization": f"Bearer {sk}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        },
        method=method,
    )

    try:
        with urlopen(req, timeout=REQUEST_TIMEOUT) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        raw = ""
        try:
            raw = e.read().decode("utf-8", errors="replace")
        except OSError:
            raw = ""

        message, code = "Stripe rejected request", ""
        try:
            err = (json.loads(raw) or {}).get("error") or {}
            message = err.get("message") or message
            code = err.get("code") or err.get("type") or ""
        except ValueError:
            pass

        logger.warning(
            "Stripe HTTP error",
            extra={"path": path, "status": e.code, "code": code},
        )
        raise PaymentProviderError(message, status_code=e.code, code=code) from e
    except URLError as e:
        logger.warning("Stripe unreachable", extra={"path": path, "error": str(e)})
        raise PaymentProviderError(f"Stripe unreachable: {e.reason}") from e

    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise PaymentProviderError("Stripe returned non-JSON response") from e

    if not isinstance(parsed, dict):
        raise PaymentProviderError("Stripe returned an unexpected payload")

    return parsed


# -----------------------------
# public API
# -----------------------------
def create_payment_intent(*, amount_minor: int, currency: str, metadata: dict | None = None) -> dict:
    if int(amount_minor) <= 0:
        raise ValueError("amount_minor must be > 0")

    form: dict = {
        "amount": int(amount_minor),
        "currency": (currency or "usd").lower(),
        "automatic_payment_methods": {"enabled": True},
    }
    if metadata:
        form["metadata"] = {str(k): str(v) for k, v in metadata.items()}

    intent = _request("POST", "/payment_intents", form=form)

    if not intent.get("id") or not intent.get("client_secret"):
        raise PaymentProviderError("Stripe payment intent is missing id/client_secret")

    return intent


def cancel_payment_intent(intent_id: str) -> dict:
    intent_id = (intent_id or "").strip()
    if not intent_id:
        raise ValueError("intent_id is required")
    return _request("POST", f"/payment_intents/{intent_id}/cancel", form={})


def _parse_signature_header(header: str) -> tuple[int, list[str]]:
    timestamp = None
    signatures: list[str] = []

    for part in (header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                timestamp = None
        elif key == "v1" and value:
            signatures.append(value)

    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed Stripe-Signature header")

    return timestamp, signatures


def compute_webhook_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + (payload or b"")
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    payload: bytes,
    header: str | None,
    *,
    tolerance: int = WEBHOOK_TOLERANCE_SECONDS,
    now: float | None = None,
) -> dict:
    """
    Verify a Stripe webhook and return the decoded event.
    Raises WebhookSignatureError on any mismatch.
    """
    if not header:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    timestamp, signatures = _parse_signature_header(header)
    expected = compute_webhook_signature(payload, timestamp, get_webhook_secret())

    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Signature mismatch")

    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Timestamp outside tolerance")

    try:
        event = json.loads((payload or b"").decode("utf-8"))
    except ValueError as e:
        raise WebhookSignatureError("Payload is not valid JSON") from e

    if not isinstance(event, dict):
        raise WebhookSignatureError("Payload is not a JSON object")

    return event
