"""
PATH: users/views/auth.py

Public auth endpoints:
- register: always creates a customer (roles are granted by admins only)
- logout:   blacklists the refresh token and drops the cached session role

Token issue/refresh is simplejwt's own views (wired in backend/urls.py).
"""

from __future__ import annotations

import logging

from django.contrib.auth import user_logged_out
from drf_spectacular.utils import extend_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from users.models import User
from users.session import invalidate_session_role

logger = logging.getLogger(__name__)


# ---------------------------
# SERIALIZERS (LOCAL, SIMPLE)
# ---------------------------


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    first_name = serializers.CharField(required=False, allow_blank=True)
    last_name = serializers.CharField(required=False, allow_blank=True)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value.strip()).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return value


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


# ---------------------------
# VIEWS
# ---------------------------


class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterSerializer

    @extend_schema(
        request=RegisterSerializer,
        responses={201: dict},
        description="Register a new customer account",
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data

        user = User.objects.create_user(
            email=data["email"],
            password=data["password"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role=User.ROLE_CUSTOMER,
        )

        logger.info("Customer registered", extra={"user_id": str(user.id)})

        return Response(
            {"message": "User registered successfully", "user_id": str(user.id)},
            status=status.HTTP_201_CREATED,
        )


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = LogoutSerializer

    @extend_schema(
        request=LogoutSerializer,
        responses={205: None},
        description="Blacklist the refresh token and end the session",
    )
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            RefreshToken(serializer.validated_data["refresh"]).blacklist()
        except TokenError:
            return Response(
                {"detail": "Invalid or expired refresh token."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        invalidate_session_role(request.user.pk)
        user_logged_out.send(sender=request.user.__class__, request=request, user=request.user)

        return Response(status=status.HTTP_205_RESET_CONTENT)
