# inventory/views.py

"""
INVENTORY API (admin only)

- /api/inventory/ingredients/                    CRUD + ?q= search
- /api/inventory/transactions/                   GET history, POST record
- /api/inventory/transactions/export/?period=    CSV download
- /api/inventory/health/                         expired / low / healthy + stock value
- /api/inventory/analytics/                      top ingredients + type distribution

Stock never changes through ingredient CRUD; every movement is a ledger row.
"""

from __future__ import annotations

import logging

from django.db.models import ProtectedError, Q
from django.http import HttpResponse
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from inventory.models import Ingredient
from inventory.serializers import (
    IngredientSerializer,
    InventoryTransactionSerializer,
    RecordTransactionSerializer,
)
from inventory.services import reports
from inventory.services.exceptions import InventoryServiceError
from inventory.services.ledger import create_ingredient, record_transaction
from permissions.roles import IsAdmin

logger = logging.getLogger(__name__)

PERIOD_PARAM = OpenApiParameter(
    name="period",
    type=str,
    location=OpenApiParameter.QUERY,
    required=False,
    description="today | week | month | year | all (default all)",
)


class IngredientViewSet(viewsets.ModelViewSet):
    serializer_class = IngredientSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_queryset(self):
        qs = Ingredient.objects.all()

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(unit__icontains=q))

        return qs.order_by("name")

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        opening = data.pop("opening_stock", None)
        serializer.instance = create_ingredient(
            opening_stock=opening,
            user=self.request.user,
            **data,
        )

    def perform_update(self, serializer):
        serializer.validated_data.pop("opening_stock", None)
        serializer.save()

    def create(self, request, *args, **kwargs):
        try:
            return super().create(request, *args, **kwargs)
        except InventoryServiceError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {"error": "Ingredient has ledger history and cannot be deleted"},
                status=status.HTTP_409_CONFLICT,
            )


class TransactionListView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]
    serializer_class = InventoryTransactionSerializer

    @extend_schema(
        parameters=[
            PERIOD_PARAM,
            OpenApiParameter(name="ingredient", type=OpenApiTypes.UUID, required=False),
            OpenApiParameter(name="transaction_type", type=str, required=False),
            OpenApiParameter(name="limit", type=int, required=False, description="Default 50"),
        ],
        responses={200: InventoryTransactionSerializer(many=True)},
    )
    def get(self, request):
        params = request.query_params
        try:
            qs = reports.history_queryset(
                period=(params.get("period") or "all").strip(),
                ingredient_id=(params.get("ingredient") or "").strip() or None,
                transaction_type=(params.get("transaction_type") or "").strip(),
            )
            limit = reports.clamp_limit(params.get("limit"))
        except ValueError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        data = InventoryTransactionSerializer(qs[:limit], many=True).data
        return Response({"count": len(data), "results": data})

    @extend_schema(
        request=RecordTransactionSerializer,
        responses={
            201: InventoryTransactionSerializer,
            400: OpenApiResponse(description="Invalid transaction"),
        },
    )
    def post(self, request):
        ser = RecordTransactionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        v = ser.validated_data

        try:
            tx = record_transaction(
                ingredient=v["ingredient"],
                quantity=v["quantity"],
                transaction_type=v["transaction_type"],
                notes=v.get("notes", ""),
                user=request.user,
            )
        except InventoryServiceError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(InventoryTransactionSerializer(tx).data, status=status.HTTP_201_CREATED)


class TransactionExportView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(parameters=[PERIOD_PARAM], responses={200: OpenApiTypes.BINARY})
    def get(self, request):
        period = (request.query_params.get("period") or "all").strip()
        try:
            qs = reports.history_queryset(period=period)
        except ValueError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        response = HttpResponse(content_type="text/csv; charset=utf-8")
        response["Content-Disposition"] = (
            f'attachment; filename="{reports.export_filename(period)}"'
        )
        rows = reports.write_transactions_csv(response, qs.iterator())

        logger.info("Inventory CSV exported", extra={"period": period, "rows": rows})
        return response


class InventoryHealthView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(responses={200: OpenApiTypes.OBJECT})
    def get(self, request):
        return Response(reports.inventory_health())


class InventoryAnalyticsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @extend_schema(responses={200: OpenApiTypes.OBJECT})
    def get(self, request):
        return Response(reports.usage_analytics())
