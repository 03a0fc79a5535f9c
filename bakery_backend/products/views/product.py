# products/views/product.py

"""
PRODUCT VIEWSET

- Admin: full CRUD over the menu.
- Public: GET /api/products/products/menu/?q=<search> (AllowAny, throttled),
  returns ONLY available products.
"""

from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from permissions.roles import IsAdmin
from products.models import Product
from products.serializers import MenuItemSerializer, ProductSerializer


class PublicCatalogThrottle(AnonRateThrottle):
    scope = "public_catalog"


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filterset_fields = ["is_available"]

    def get_queryset(self):
        qs = Product.objects.all()

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(description__icontains=q))

        return qs.order_by("name")

    @extend_schema(
        tags=["Public"],
        parameters=[
            OpenApiParameter(
                name="q",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Case-insensitive search on name/description.",
            ),
        ],
        responses={
            200: MenuItemSerializer(many=True),
            429: OpenApiResponse(description="Rate limited"),
        },
        description="Public menu: available products only (AllowAny).",
    )
    @action(
        detail=False,
        methods=["get"],
        url_path="menu",
        permission_classes=[AllowAny],
        authentication_classes=[],
        throttle_classes=[PublicCatalogThrottle],
    )
    def menu(self, request):
        qs = self.get_queryset().filter(is_available=True)
        data = MenuItemSerializer(qs, many=True).data
        return Response({"count": len(data), "results": data}, status=status.HTTP_200_OK)
