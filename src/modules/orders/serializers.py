"""Order DRF serializers for API input/output.

Business logic lives in ``OrderService``, which receives Pydantic DTOs
from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.core.constants import ActorRole
from modules.orders.constants import OrderStatus, PaymentCondition
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CartLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    final_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation (cart checkout) payload."""

    client_id = serializers.UUIDField()
    payment_condition = serializers.ChoiceField(
        choices=PaymentCondition.choices, default=PaymentCondition.CASH
    )
    items = CartLineSerializer(many=True, allow_empty=False)
    discount_total = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate_items(self, value):
        product_ids = [line["product_id"] for line in value]
        if len(product_ids) != len(set(product_ids)):
            raise serializers.ValidationError(
                "Each product may appear only once in a cart.", code="duplicate_product"
            )
        return value


class ChangeOrderStatusSerializer(serializers.Serializer):
    """Validates a status change request.

    ``status`` is accepted as any string so that unknown targets are
    reported by the state machine as an invalid transition.
    """

    status = serializers.CharField()
    actor_role = serializers.ChoiceField(choices=ActorRole.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate_status(self, value: str) -> str:
        return value.strip().upper()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "quantity",
            "unit_price",
            "final_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_role",
            "user",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_label = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_id",
            "status",
            "status_label",
            "payment_condition",
            "subtotal",
            "discount_total",
            "tax_total",
            "total",
            "notes",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields

    def get_status_label(self, obj: Order) -> str:
        return OrderStatus(obj.status).label


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "client_id",
            "status",
            "payment_condition",
            "total",
            "created_at",
        ]
        read_only_fields = fields
