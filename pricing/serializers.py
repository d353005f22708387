"""Serializers for reference prices and price quotes."""

from rest_framework import serializers

from .models import MetalPrice


class MetalPriceSerializer(serializers.ModelSerializer):
    class Meta:
        model = MetalPrice
        fields = ["metal", "purity", "price_per_gram", "source", "updated_at"]
        read_only_fields = fields


class PriceBreakdownSerializer(serializers.Serializer):
    unit_id = serializers.CharField()
    name = serializers.CharField(allow_blank=True)
    metal_costs = serializers.DecimalField(max_digits=14, decimal_places=2)
    gemstone_costs = serializers.DecimalField(max_digits=14, decimal_places=2)
    making_charges = serializers.DecimalField(max_digits=14, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    tax = serializers.DecimalField(max_digits=14, decimal_places=2)
    total = serializers.DecimalField(max_digits=14, decimal_places=2)
    rounded_total = serializers.DecimalField(max_digits=14, decimal_places=0)


class ProductQuoteSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    units = PriceBreakdownSerializer(many=True)
    last_updated = serializers.DateTimeField(allow_null=True)
