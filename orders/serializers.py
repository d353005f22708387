"""DRF serializers for Orders.

Read serializers expose the frozen order snapshot; write serializers only
validate request shape, leaving business rules to `orders.services`.
"""

from common.choices import OrderStatus, PaymentMethod, PaymentStatus
from rest_framework import serializers

from .models import Order, OrderHistory, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """API representation of an order line item with computed line_total."""

    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "variant_id",
            "name",
            "product_snapshot",
            "variant_snapshot",
            "quantity",
            "price",
            "line_total",
        ]
        read_only_fields = fields


class OrderHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderHistory
        fields = ["status", "payment_status", "timestamp", "updated_by", "notes"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """API representation for an order, including its frozen items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    history = OrderHistorySerializer(many=True, read_only=True)
    shipping_address = serializers.DictField(read_only=True)
    payment = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "email",
            "created_at",
            "items",
            "subtotal",
            "tax",
            "shipping_fee",
            "total_price",
            "shipping_address",
            "payment",
            "customer_notes",
            "invoice_url",
            "history",
        ]
        read_only_fields = fields

    def get_payment(self, obj: Order) -> dict:
        return {
            "method": obj.payment_method,
            "status": obj.payment_status,
            "transaction_id": obj.transaction_id,
            "paid_at": serializers.DateTimeField().to_representation(obj.paid_at),
            "refund_amount": obj.refund_amount,
        }


class OrderListSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Order
        fields = ["id", "number", "status", "payment_status", "total_price", "item_count", "created_at"]
        read_only_fields = fields

    def get_item_count(self, obj: Order) -> int:
        return sum(int(item.quantity) for item in obj.items.all())


class CheckoutLineSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=64)
    variant_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)


class ShippingAddressSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100, required=False, default="India")
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)


class CheckoutSerializer(serializers.Serializer):
    """Write serializer for creating an order from cart lines."""

    items = CheckoutLineSerializer(many=True, allow_empty=False)
    shipping_address = ShippingAddressSerializer()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=0)
    shipping_fee = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentWebhookSerializer(serializers.Serializer):
    EVENT_SUCCEEDED = "payment_succeeded"
    EVENT_FAILED = "payment_failed"

    order_id = serializers.IntegerField()
    event = serializers.CharField()
    transaction_id = serializers.CharField(required=False, allow_blank=True, default="")
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_event(self, value: str) -> str:
        # Providers send either underscore or dotted event names
        event = str(value).lower().replace(".", "_")
        if event not in {self.EVENT_SUCCEEDED, self.EVENT_FAILED}:
            raise serializers.ValidationError("Unsupported event")
        return event

    def validate(self, attrs):
        if attrs["event"] == self.EVENT_SUCCEEDED and not attrs.get("transaction_id", "").strip():
            raise serializers.ValidationError({"transaction_id": "Required for payment_succeeded"})
        return attrs


class BeginPaymentSerializer(serializers.Serializer):
    provider_order_id = serializers.CharField(max_length=100)


class AdminStatusSerializer(serializers.Serializer):
    """Administrative status change. `enforce_transitions` routes through the state machine."""

    status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    enforce_transitions = serializers.BooleanField(required=False, default=True)
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)

    def validate(self, attrs):
        if not any(attrs.get(name) is not None for name in ("status", "payment_status", "refund_amount")):
            raise serializers.ValidationError("Provide status, payment_status or refund_amount")
        return attrs


class InvoiceSerializer(serializers.Serializer):
    invoice_url = serializers.CharField()
