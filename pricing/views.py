"""Pricing API endpoints: live product quotes and reference metal prices."""

from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import generics
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .selectors import list_metal_prices
from .serializers import MetalPriceSerializer, ProductQuoteSerializer
from .services import quote_product


class ProductQuoteView(APIView):
    """Price every unit of a product against current reference prices."""

    permission_classes = [AllowAny]
    throttle_scope = "pricing"

    @extend_schema(
        tags=["Pricing"],
        summary="Quote product price",
        description=(
            "Computes the price breakdown of each purchasable unit from current reference prices. "
            "Nothing is persisted; missing reference prices count as zero."
        ),
        responses={200: ProductQuoteSerializer},
        examples=[
            OpenApiExample(
                "Quote",
                value={
                    "product_id": "a1b2c3d4e5f60718",
                    "units": [
                        {
                            "unit_id": "a1b2c3d4e5f60718",
                            "name": "Plain Band",
                            "metal_costs": "25000.00",
                            "gemstone_costs": "0.00",
                            "making_charges": "1000.00",
                            "subtotal": "26000.00",
                            "tax": "780.00",
                            "total": "26780.00",
                            "rounded_total": "26780",
                        }
                    ],
                    "last_updated": "2025-01-01T09:00:00Z",
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, product_id: str):
        return Response(ProductQuoteSerializer(quote_product(product_id=product_id)).data)


class MetalPriceListView(generics.ListAPIView):
    """List current reference prices per metal and purity."""

    permission_classes = [AllowAny]
    serializer_class = MetalPriceSerializer
    pagination_class = None
    throttle_scope = "pricing"

    def get_queryset(self):
        return list_metal_prices()

    @extend_schema(tags=["Pricing"], summary="List metal prices")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
