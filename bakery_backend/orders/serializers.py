# orders/serializers.py

from decimal import Decimal

from rest_framework import serializers

from orders.models import Order, OrderFeedback, OrderItem, OrderStatus
from orders.services.feedback import can_leave_feedback
from orders.services.order_status import next_statuses


class OrderItemReadSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    product_image_url = serializers.CharField(source="product.image_url", read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product_id", "product_name", "product_image_url", "quantity", "price_at_time"]
        read_only_fields = fields


class OrderFeedbackReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderFeedback
        fields = ["id", "rating", "comment", "created_at"]
        read_only_fields = fields


class OrderReadSerializer(serializers.ModelSerializer):
    items = OrderItemReadSerializer(many=True, read_only=True)
    feedback = OrderFeedbackReadSerializer(many=True, read_only=True)
    user_id = serializers.UUIDField(read_only=True)
    customer_email = serializers.EmailField(source="user.email", read_only=True)
    can_leave_feedback = serializers.SerializerMethodField()
    next_statuses = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "customer_email",
            "total_amount",
            "status",
            "payment_intent_id",
            "items",
            "feedback",
            "can_leave_feedback",
            "next_statuses",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_can_leave_feedback(self, obj) -> bool:
        session = self.context.get("session")
        if session is None:
            return False
        return can_leave_feedback(obj, session.user_id)

    def get_next_statuses(self, obj) -> list:
        return next_statuses(obj.status)


class OrderStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ["id", "status", "updated_at"]
        read_only_fields = fields


# -----------------------------
# INPUT
# -----------------------------
class CheckoutItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False)
    id = serializers.UUIDField(required=False)
    name = serializers.CharField(required=False, allow_blank=True, default="")
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.01"))
    quantity = serializers.IntegerField(min_value=1)
    image_url = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        pid = attrs.get("product_id") or attrs.get("id")
        if not pid:
            raise serializers.ValidationError("product_id is required")
        attrs["product_id"] = str(pid)
        attrs.pop("id", None)
        return attrs


class CheckoutInputSerializer(serializers.Serializer):
    items = CheckoutItemInputSerializer(many=True, allow_empty=False)
    userId = serializers.CharField(required=False, allow_blank=False)


class CheckoutResponseSerializer(serializers.Serializer):
    clientSecret = serializers.CharField()
    orderId = serializers.UUIDField()
    returnUrl = serializers.CharField()


class SetStatusInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    force = serializers.BooleanField(required=False, default=False)


class FeedbackInputSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default="")
