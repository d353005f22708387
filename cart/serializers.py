"""Cart serializers for read and write operations."""

from rest_framework import serializers

from .selectors import cart_snapshot


class CartItemReadSerializer(serializers.Serializer):
    """Read serializer for a cart line."""

    product_id = serializers.CharField()
    variant_id = serializers.CharField()
    name = serializers.CharField()
    price_at_purchase = serializers.DecimalField(max_digits=12, decimal_places=2)
    quantity = serializers.IntegerField()


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the full cart shape returned by every cart endpoint."""

    user_id = serializers.IntegerField()
    items = CartItemReadSerializer(many=True)
    total_items = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    version = serializers.IntegerField()

    @classmethod
    def from_cart(cls, *, cart):
        return cls(cart_snapshot(cart=cart))


class AddItemSerializer(serializers.Serializer):
    """Write serializer for adding a unit to the cart."""

    product_id = serializers.CharField(max_length=64)
    variant_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)
    expected_version = serializers.IntegerField(min_value=0, required=False)


class UpdateItemSerializer(serializers.Serializer):
    """Write serializer for overwriting a line quantity; zero removes the line."""

    product_id = serializers.CharField(max_length=64)
    variant_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=0)
    expected_version = serializers.IntegerField(min_value=0, required=False)


class ClearCartSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(min_value=0, required=False)


class CartCountSerializer(serializers.Serializer):
    count = serializers.IntegerField()
