"""
PATH: payments/services/exceptions.py

Payment-layer errors. Views map:
- PaymentConfigurationError -> 400 (key not configured)
- PaymentProviderError      -> 502 (processor rejected/unreachable)
- WebhookSignatureError     -> 400
"""


class PaymentError(Exception):
    """Base class for all payment errors."""


class PaymentConfigurationError(PaymentError):
    """A required Stripe key is missing from settings/env."""


class PaymentProviderError(PaymentError):
    """Stripe rejected the request, returned garbage, or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class WebhookSignatureError(PaymentError):
    """Stripe-Signature header missing, malformed, stale or not matching."""
