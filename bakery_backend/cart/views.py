# cart/views.py

"""
CART API

Routes (JWT required; anonymous callers get 401 and are told to sign in):
- GET    /api/cart/                      current cart + total
- DELETE /api/cart/                      clear
- POST   /api/cart/items/                add product (or +1 if present)
- PATCH  /api/cart/items/<product_id>/   change quantity by delta (clamped >= 1)
- DELETE /api/cart/items/<product_id>/   remove line

Money rule:
- name/price/image are snapshotted from the live Product when added.
  Later price changes on the menu do not touch existing cart lines.
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from cart.serializers import (
    AddCartItemInputSerializer,
    CartSerializer,
    UpdateCartItemInputSerializer,
)
from cart.services.cart_store import CartItem, cart_store
from products.models import Product
from permissions.roles import IsCustomerOrAdmin
from users.session import get_session_context


class SignInRequired(IsAuthenticated):
    message = "Please sign in to use your cart."

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            raise NotAuthenticated(self.message)
        return True


def _cart_payload(items) -> dict:
    return CartSerializer(
        {
            "items": [{**i.to_dict(), "line_total": i.line_total} for i in items],
            "total": cart_store.total(items),
            "item_count": sum(i.quantity for i in items),
        }
    ).data


class CartView(APIView):
    permission_classes = [SignInRequired, IsCustomerOrAdmin]
    serializer_class = CartSerializer

    @extend_schema(responses={200: CartSerializer}, description="Current user's cart")
    def get(self, request):
        ctx = get_session_context(request)
        return Response(_cart_payload(cart_store.load(ctx.user_id)))

    @extend_schema(responses={200: CartSerializer}, description="Empty the cart")
    def delete(self, request):
        ctx = get_session_context(request)
        cart_store.clear(ctx.user_id)
        return Response(_cart_payload([]))


class CartItemsView(APIView):
    permission_classes = [SignInRequired, IsCustomerOrAdmin]
    serializer_class = CartSerializer

    @extend_schema(
        request=AddCartItemInputSerializer,
        responses={200: CartSerializer},
        description="Add a product to the cart (increments quantity if already present)",
    )
    def post(self, request):
        serializer = AddCartItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ctx = get_session_context(request)
        product = get_object_or_404(
            Product, id=serializer.validated_data["product_id"], is_available=True
        )

        items = cart_store.add_or_increment(
            ctx.user_id,
            CartItem(
                product_id=str(product.id),
                name=product.name,
                price=product.price,
                image_url=product.image_url or "",
            ),
        )
        return Response(_cart_payload(items), status=status.HTTP_200_OK)


class CartItemDetailView(APIView):
    permission_classes = [SignInRequired, IsCustomerOrAdmin]
    serializer_class = CartSerializer

    @extend_schema(
        request=UpdateCartItemInputSerializer,
        responses={200: CartSerializer},
        description="Change a line's quantity by delta (never drops below 1)",
    )
    def patch(self, request, product_id):
        serializer = UpdateCartItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ctx = get_session_context(request)
        items = cart_store.update_quantity(
            ctx.user_id, product_id, serializer.validated_data["delta"]
        )
        return Response(_cart_payload(items))

    @extend_schema(responses={200: CartSerializer}, description="Remove a line")
    def delete(self, request, product_id):
        ctx = get_session_context(request)
        items = cart_store.remove(ctx.user_id, product_id)
        return Response(_cart_payload(items))
