# orders/views.py

"""
ORDERS API

Customer:
- POST  /api/orders/checkout/                  cart snapshot -> {clientSecret, orderId, returnUrl}
- GET   /api/orders/                           own orders, newest first
- GET   /api/orders/<id>/                      one order (owner or admin)
- GET   /api/orders/<id>/status/               lightweight status poll
- GET   /api/orders/<id>/confirmation/         summary after payment redirect; clears cart
- POST  /api/orders/<id>/feedback/             rating + comment (delivered only, once)
- GET   /api/orders/changes/?since=<n>         has my order list moved since version n?

Admin:
- GET   /api/orders/?scope=mine                admins see all orders unless scope=mine
- PATCH /api/orders/<id>/status/               {status, force?}
- GET   /api/orders/admin/dashboard/
- GET   /api/orders/admin/revenue/?period=week|month|year
- GET   /api/orders/admin/product-performance/

Errors are {"error": "..."} with 400/403/404/409/502 as appropriate.
"""

from __future__ import annotations

import logging

from django.db.models import Prefetch
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from cart.services.cart_store import cart_store
from orders.models import Order, OrderFeedback, OrderItem
from orders.serializers import (
    CheckoutInputSerializer,
    CheckoutResponseSerializer,
    FeedbackInputSerializer,
    OrderFeedbackReadSerializer,
    OrderReadSerializer,
    OrderStatusSerializer,
    SetStatusInputSerializer,
)
from orders.services import change_feed, reports
from orders.services.checkout_orchestrator import checkout
from orders.services.exceptions import (
    CheckoutForbiddenError,
    CheckoutPersistenceError,
    CheckoutValidationError,
    FeedbackAlreadyExists,
    FeedbackNotAllowed,
    InvalidStatusTransition,
)
from orders.services.feedback import submit_feedback
from orders.services.order_status import set_status
from payments.services.exceptions import PaymentConfigurationError, PaymentProviderError
from permissions.roles import IsAdmin, IsCustomerOrAdmin
from users.session import get_session_context

logger = logging.getLogger(__name__)


class CheckoutThrottle(UserRateThrottle):
    scope = "checkout"


class OrderPollThrottle(UserRateThrottle):
    scope = "order_poll"


def error_response(message: str, http_status: int, **extra):
    return Response({"error": message, **extra}, status=http_status)


def _orders_queryset():
    return (
        Order.objects.select_related("user")
        .prefetch_related(
            Prefetch("items", queryset=OrderItem.objects.select_related("product")),
            Prefetch("feedback", queryset=OrderFeedback.objects.all()),
        )
        .order_by("-created_at")
    )


def _get_visible_order(session, order_id):
    """
    Owner or admin; everyone else gets a 404 (no existence leak).
    """
    qs = _orders_queryset()
    if not session.is_admin:
        qs = qs.filter(user_id=session.user_id)
    return qs.filter(id=order_id).first()


# =====================================================
# CHECKOUT
# =====================================================


class CheckoutView(APIView):
    permission_classes = [IsAuthenticated, IsCustomerOrAdmin]
    throttle_classes = [CheckoutThrottle]
    serializer_class = CheckoutInputSerializer

    @extend_schema(
        tags=["Orders"],
        request=CheckoutInputSerializer,
        responses={
            200: CheckoutResponseSerializer,
            400: OpenApiResponse(description="Empty/malformed cart"),
            403: OpenApiResponse(description="userId does not match the session"),
            502: OpenApiResponse(description="Payment processor failure"),
        },
        description="Create a pending order and a payment intent from a cart snapshot.",
    )
    def post(self, request):
        session = get_session_context(request)

        serializer = CheckoutInputSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "Invalid checkout request", status.HTTP_400_BAD_REQUEST, details=serializer.errors
            )

        data = serializer.validated_data

        try:
            result = checkout(session=session, items=data["items"], user_id=data.get("userId"))
        except CheckoutValidationError as exc:
            return error_response(str(exc), status.HTTP_400_BAD_REQUEST)
        except CheckoutForbiddenError as exc:
            return error_response(str(exc), status.HTTP_403_FORBIDDEN)
        except PaymentConfigurationError as exc:
            logger.error("Checkout blocked: payments not configured", extra={"error": str(exc)})
            return error_response("Payments are not available right now", status.HTTP_503_SERVICE_UNAVAILABLE)
        except PaymentProviderError as exc:
            return error_response(str(exc), status.HTTP_502_BAD_GATEWAY)
        except CheckoutPersistenceError as exc:
            return error_response(str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(
            {
                "clientSecret": result.client_secret,
                "orderId": result.order_id,
                "returnUrl": result.return_url,
            },
            status=status.HTTP_200_OK,
        )


# =====================================================
# READ PATH
# =====================================================


class OrderListView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderReadSerializer

    @extend_schema(
        tags=["Orders"],
        parameters=[
            OpenApiParameter(
                name="scope",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Admins only: 'mine' restricts to own orders (default: all).",
            ),
            OpenApiParameter(
                name="status",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
            ),
        ],
        responses={200: OrderReadSerializer(many=True)},
        description="Orders newest-first with items and feedback.",
    )
    def get(self, request):
        session = get_session_context(request)
        qs = _orders_queryset()

        scope = (request.query_params.get("scope") or "").strip().lower()
        if not session.is_admin or scope == "mine":
            qs = qs.filter(user_id=session.user_id)

        status_filter = (request.query_params.get("status") or "").strip().lower()
        if status_filter:
            qs = qs.filter(status=status_filter)

        data = OrderReadSerializer(qs, many=True, context={"session": session}).data
        return Response(
            {
                "count": len(data),
                "version": change_feed.current_version(
                    user_id=None if (session.is_admin and scope != "mine") else session.user_id
                ),
                "results": data,
            }
        )


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderReadSerializer

    @extend_schema(tags=["Orders"], responses={200: OrderReadSerializer})
    def get(self, request, order_id):
        session = get_session_context(request)
        order = _get_visible_order(session, order_id)
        if order is None:
            return error_response("Order not found", status.HTTP_404_NOT_FOUND)
        return Response(OrderReadSerializer(order, context={"session": session}).data)


class OrderChangesView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [OrderPollThrottle]

    @extend_schema(
        tags=["Orders"],
        parameters=[
            OpenApiParameter(
                name="since",
                type=int,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Version the client last saw.",
            ),
        ],
        responses={200: dict},
        description="Cheap poll: has the caller's order list changed since `since`?",
    )
    def get(self, request):
        session = get_session_context(request)

        raw = (request.query_params.get("since") or "").strip()
        try:
            since = int(raw) if raw else None
        except ValueError:
            return error_response("since must be an integer", status.HTTP_400_BAD_REQUEST)

        version = change_feed.current_version(
            user_id=None if session.is_admin else session.user_id
        )
        return Response({"version": version, "changed": since is None or version != since})


class OrderStatusView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [OrderPollThrottle]
    serializer_class = OrderStatusSerializer

    @extend_schema(tags=["Orders"], responses={200: OrderStatusSerializer})
    def get(self, request, order_id):
        session = get_session_context(request)
        order = _get_visible_order(session, order_id)
        if order is None:
            return error_response("Order not found", status.HTTP_404_NOT_FOUND)
        return Response(OrderStatusSerializer(order).data)

    @extend_schema(
        tags=["Orders"],
        request=SetStatusInputSerializer,
        responses={
            200: OrderStatusSerializer,
            409: OpenApiResponse(description="Illegal status transition"),
        },
        description=(
            "Admin: move an order along its lifecycle. Only the next step is accepted: "
            "pending -> confirmed -> preparing -> ready -> delivered, or cancelled from "
            "any status before delivered. Skipping ahead (e.g. pending -> delivered) "
            "returns 409 unless the request sends force=true, which overwrites the "
            "status regardless of the lifecycle."
        ),
    )
    def patch(self, request, order_id):
        session = get_session_context(request)
        if not session.is_admin:
            return error_response("Only admins can change order status", status.HTTP_403_FORBIDDEN)

        serializer = SetStatusInputSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "Invalid status", status.HTTP_400_BAD_REQUEST, details=serializer.errors
            )

        order = Order.objects.filter(id=order_id).first()
        if order is None:
            return error_response("Order not found", status.HTTP_404_NOT_FOUND)

        try:
            order = set_status(
                order,
                serializer.validated_data["status"],
                actor=request.user,
                force=serializer.validated_data["force"],
            )
        except InvalidStatusTransition as exc:
            return error_response(
                str(exc),
                status.HTTP_409_CONFLICT,
                current=exc.current,
                requested=exc.requested,
            )

        return Response(OrderStatusSerializer(order).data)


class OrderConfirmationView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderReadSerializer

    @extend_schema(
        tags=["Orders"],
        responses={200: OrderReadSerializer},
        description="Owner-only order summary shown after the payment redirect. Clears the cart.",
    )
    def get(self, request, order_id):
        session = get_session_context(request)
        order = _orders_queryset().filter(id=order_id, user_id=session.user_id).first()
        if order is None:
            return error_response("Order not found", status.HTTP_404_NOT_FOUND)

        cart_store.clear(session.user_id)
        return Response(OrderReadSerializer(order, context={"session": session}).data)


class OrderFeedbackView(APIView):
    permission_classes = [IsAuthenticated, IsCustomerOrAdmin]
    serializer_class = FeedbackInputSerializer

    @extend_schema(
        tags=["Orders"],
        request=FeedbackInputSerializer,
        responses={
            201: OrderFeedbackReadSerializer,
            400: OpenApiResponse(description="Order not delivered / invalid rating"),
            409: OpenApiResponse(description="Feedback already submitted"),
        },
    )
    def post(self, request, order_id):
        session = get_session_context(request)

        order = Order.objects.filter(id=order_id, user_id=session.user_id).first()
        if order is None:
            return error_response("Order not found", status.HTTP_404_NOT_FOUND)

        serializer = FeedbackInputSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                "Invalid feedback", status.HTTP_400_BAD_REQUEST, details=serializer.errors
            )

        try:
            feedback = submit_feedback(
                order=order,
                session=session,
                rating=serializer.validated_data["rating"],
                comment=serializer.validated_data["comment"],
            )
        except FeedbackAlreadyExists as exc:
            return error_response(str(exc), status.HTTP_409_CONFLICT)
        except FeedbackNotAllowed as exc:
            return error_response(str(exc), status.HTTP_400_BAD_REQUEST)

        return Response(OrderFeedbackReadSerializer(feedback).data, status=status.HTTP_201_CREATED)


# =====================================================
# ADMIN REPORTS
# =====================================================


class AdminDashboardView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(tags=["Admin"], responses={200: dict})
    def get(self, request):
        return Response(reports.dashboard_summary())


class AdminRevenueView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(
        tags=["Admin"],
        parameters=[
            OpenApiParameter(
                name="period",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=list(reports.PERIODS),
            ),
        ],
        responses={200: dict},
    )
    def get(self, request):
        period = (request.query_params.get("period") or "week").strip().lower()
        try:
            series = reports.revenue_series(period)
        except ValueError as exc:
            return error_response(str(exc), status.HTTP_400_BAD_REQUEST)
        return Response({"period": period, "results": series})


class AdminProductPerformanceView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(tags=["Admin"], responses={200: dict})
    def get(self, request):
        return Response({"results": reports.product_performance()})
