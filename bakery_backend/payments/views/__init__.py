from .publishable_key import PublishableKeyView
from .stripe_webhook import StripeWebhookView

__all__ = [
    "PublishableKeyView",
    "StripeWebhookView",
]
