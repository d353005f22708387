"""DRF views for cart operations.

Domain errors raised by `cart.services` are rendered by
`common.exceptions.domain_exception_handler`, so the views only parse input
and shape output.
"""

from drf_spectacular.utils import OpenApiExample, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .selectors import item_count
from .serializers import (
    AddItemSerializer,
    CartCountSerializer,
    CartReadSerializer,
    ClearCartSerializer,
    UpdateItemSerializer,
)
from .services import add_item, cleanup_cart, clear_cart, get_or_create_cart, update_item

ERROR_RESPONSE = inline_serializer(
    name="CartError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)

CART_EXAMPLE = OpenApiExample(
    "Cart",
    value={
        "user_id": 7,
        "items": [
            {
                "product_id": "a1b2c3d4e5f60718",
                "variant_id": "var_0f1e2d3c4b5a6978",
                "name": "Aurora Ring - Size 7",
                "price_at_purchase": "52000.00",
                "quantity": 2,
            }
        ],
        "total_items": 2,
        "total_amount": "104000.00",
        "version": 3,
    },
)


class CartDetailView(APIView):
    """Return the authenticated user's cart, creating it on first access."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart",
        description="Returns the authenticated user's cart including items, totals and version.",
        responses={200: CartReadSerializer, 403: ERROR_RESPONSE, 404: ERROR_RESPONSE},
        examples=[CART_EXAMPLE],
    )
    def get(self, request):
        cart = get_or_create_cart(user_id=request.user.id)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartAddItemView(APIView):
    """Add a unit to the cart or merge into an existing line."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description=(
            "Adds a product variant to the cart. Adding a unit already in the cart sums the "
            "quantities; the line keeps its original price snapshot."
        ),
        request=AddItemSerializer,
        responses={
            200: CartReadSerializer,
            400: ERROR_RESPONSE,
            403: ERROR_RESPONSE,
            404: ERROR_RESPONSE,
            409: ERROR_RESPONSE,
        },
        examples=[
            CART_EXAMPLE,
            OpenApiExample(
                "Insufficient stock",
                value={
                    "detail": "Insufficient stock. Available: 1, Requested: 3",
                    "code": "insufficient_stock",
                    "available": 1,
                    "requested": 3,
                },
                response_only=True,
                status_codes=["409"],
            ),
        ],
    )
    def post(self, request):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = add_item(user_id=request.user.id, **serializer.validated_data)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartItemUpdateView(APIView):
    """Overwrite a line's quantity, removing it at zero."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description="Sets the quantity of an existing line. A quantity of 0 removes the line.",
        request=UpdateItemSerializer,
        responses={
            200: CartReadSerializer,
            400: ERROR_RESPONSE,
            403: ERROR_RESPONSE,
            404: ERROR_RESPONSE,
            409: ERROR_RESPONSE,
        },
        examples=[CART_EXAMPLE],
    )
    def patch(self, request):
        serializer = UpdateItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = update_item(user_id=request.user.id, **serializer.validated_data)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartClearView(APIView):
    """Remove all items from the cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        description="Removes every line from the cart. The cart itself is kept.",
        request=ClearCartSerializer,
        responses={200: CartReadSerializer, 403: ERROR_RESPONSE, 409: ERROR_RESPONSE},
    )
    def post(self, request):
        serializer = ClearCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = clear_cart(user_id=request.user.id, **serializer.validated_data)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartCleanupView(APIView):
    """Drop lines whose product vanished, went inactive or ran short of stock."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clean up cart",
        description="Revalidates every line and removes the ones that no longer pass validation.",
        request=None,
        responses={200: CartReadSerializer, 403: ERROR_RESPONSE},
    )
    def post(self, request):
        cart = cleanup_cart(user_id=request.user.id)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartCountView(APIView):
    """Return the number of units in the cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Cart item count",
        description="Returns the cart's total unit count, 0 when the user has no cart.",
        responses={200: CartCountSerializer},
        examples=[OpenApiExample("Count", value={"count": 2})],
    )
    def get(self, request):
        return Response({"count": item_count(user_id=request.user.id)}, status=status.HTTP_200_OK)
