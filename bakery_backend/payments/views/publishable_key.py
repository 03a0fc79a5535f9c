# payments/views/publishable_key.py
"""
GET /api/payments/publishable-key/

Public (AllowAny): the browser needs the Stripe publishable key before it can
render the card form. CORS preflight (OPTIONS) is answered by
django-cors-headers / DRF.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from payments.services.exceptions import PaymentConfigurationError
from payments.services.stripe import get_publishable_key

logger = logging.getLogger(__name__)


class PublicKeyThrottle(AnonRateThrottle):
    scope = "public_catalog"


class PublishableKeyView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicKeyThrottle]

    @extend_schema(
        tags=["Payments"],
        responses={
            200: OpenApiResponse(description='{"secrets": {"publishableKey": "pk_..."}}'),
            400: OpenApiResponse(description='{"error": "..."} when the key is not configured'),
        },
        description="Stripe publishable key for the browser card form.",
    )
    def get(self, request):
        try:
            key = get_publishable_key()
        except PaymentConfigurationError as exc:
            logger.error("Publishable key requested but not configured")
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({"secrets": {"publishableKey": key}}, status=status.HTTP_200_OK)
