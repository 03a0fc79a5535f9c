# cart/serializers.py

from rest_framework import serializers


class CartItemSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    image_url = serializers.CharField(allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class CartSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    item_count = serializers.IntegerField()


# -----------------------------
# INPUT
# -----------------------------
class AddCartItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()


class UpdateCartItemInputSerializer(serializers.Serializer):
    delta = serializers.IntegerField()
