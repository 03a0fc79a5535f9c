# payments/urls.py

from django.urls import path

from .views import PublishableKeyView, StripeWebhookView

app_name = "payments"

urlpatterns = [
    path("publishable-key/", PublishableKeyView.as_view(), name="publishable-key"),
    path("stripe/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
]
