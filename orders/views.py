"""Orders API endpoints.

Checkout, order reads, customer cancellation, invoices, payment start, the payment
provider webhook and an administrative status endpoint. Mutations accept an
optional `Idempotency-Key` header.
"""

from common.choices import OrderStatus, PaymentStatus
from common.permissions import IsStoreAdmin
from django.db import transaction
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import generics, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from .invoices import generate_invoice
from .models import Order
from .selectors import get_order, get_order_for_user, orders_for_user
from .serializers import (
    AdminStatusSerializer,
    BeginPaymentSerializer,
    CancelOrderSerializer,
    CheckoutSerializer,
    InvoiceSerializer,
    OrderListSerializer,
    OrderSerializer,
    PaymentWebhookSerializer,
)
from .services import (
    begin_payment,
    cancel_order,
    compute_request_hash,
    create_order,
    handle_payment_failure,
    handle_payment_success,
    record_refund,
    transition_order,
    update_order_status,
    update_payment_status,
    verify_webhook_signature,
    with_idempotency,
)

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)

SIGNATURE_HEADER = OpenApiParameter(
    name="X-Razorpay-Signature",
    location=OpenApiParameter.HEADER,
    required=True,
    description="Hex HMAC-SHA256 of the raw request body keyed with the webhook secret",
    type=str,
)


def _run(request, handler):
    """Run `handler` idempotently when the client sent an Idempotency-Key."""

    idem_key = request.headers.get("Idempotency-Key")
    if idem_key:
        body, code = with_idempotency(
            key=idem_key,
            user=request.user if request.user.is_authenticated else None,
            path=str(request.path),
            method=str(request.method),
            request_hash=compute_request_hash(getattr(request, "data", None)),
            handler=handler,
        )
        return Response(body, status=code)
    body, code = handler()
    return Response(body, status=code)


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderFilterSet(filters.FilterSet):
    status = filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_status = filters.ChoiceFilter(choices=PaymentStatus.choices)
    number = filters.CharFilter(field_name="number")
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "payment_status", "number", "start", "end"]


class OrderListCreateView(generics.ListAPIView):
    """List the authenticated user's orders, or check out a new one.

    Filters: `status`, `payment_status`, `number`, `start`, `end`
    (ISO date/time bounds on `created_at`).
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderListSerializer
    pagination_class = DefaultPagination
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        return orders_for_user(user_id=self.request.user.id)

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Orders"],
        summary="Create order",
        description=(
            "Creates an order from the submitted cart lines. Each line is revalidated; invalid lines are "
            "dropped and the request fails with `empty_order` when none survive. The cart is cleared only "
            "once payment succeeds."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=CheckoutSerializer,
        responses={201: OrderSerializer},
        examples=[
            OpenApiExample(
                "Checkout",
                value={
                    "items": [{"product_id": "a1b2c3d4e5f60718", "variant_id": "var_0f1e2d3c4b5a6978", "quantity": 1}],
                    "shipping_address": {
                        "name": "Asha Menon",
                        "street": "12 MG Road",
                        "city": "Kochi",
                        "state": "Kerala",
                        "postal_code": "682016",
                        "phone": "+919876543210",
                    },
                    "payment_method": "razorpay",
                    "tax": "0.00",
                    "shipping_fee": "0.00",
                },
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _handler():
            order = create_order(user_id=request.user.id, **serializer.validated_data)
            return OrderSerializer(order, context={"request": request}).data, status.HTTP_201_CREATED

        return _run(request, _handler)


class OrderDetailView(APIView):
    """Retrieve a single order for the authenticated user."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"

    @extend_schema(tags=["Orders"], summary="Get order detail", responses={200: OrderSerializer})
    def get(self, request, order_id: int):
        order = get_order_for_user(order_id=order_id, user_id=request.user.id)
        return Response(OrderSerializer(order, context={"request": request}).data)


class OrderCancelView(APIView):
    """Cancel an order for the authenticated owner."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description="Cancels a pending, placed or shipped order and returns its units to stock.",
        parameters=[IDEMPOTENCY_HEADER],
        request=CancelOrderSerializer,
        responses={200: OrderSerializer},
        examples=[OpenApiExample("Cancelled", value={"id": 1, "status": "cancelled"}, response_only=True)],
    )
    def post(self, request, order_id: int):
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _handler():
            order = cancel_order(
                order_id=order_id,
                user_id=request.user.id,
                updated_by=request.user,
                reason=serializer.validated_data["reason"] or "Cancelled by customer",
            )
            return OrderSerializer(get_order(order_id=order.id), context={"request": request}).data, 200

        return _run(request, _handler)


class OrderInvoiceView(APIView):
    """Return the order's invoice URL, generating the PDF on first request."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Generate invoice",
        description="Renders and stores the invoice once; later calls return the same URL.",
        request=None,
        responses={200: InvoiceSerializer},
        examples=[
            OpenApiExample("Invoice", value={"invoice_url": "/media/invoices/ORD-000123.pdf"}, response_only=True)
        ],
    )
    def post(self, request, order_id: int):
        url = generate_invoice(order_id=order_id, user_id=request.user.id)
        return Response({"invoice_url": url}, status=status.HTTP_200_OK)


class OrderPaymentStartView(APIView):
    """Record the provider-side order id and move payment to processing."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Start payment",
        description=(
            "Called once the payment provider order exists. Payment moves from `pending` to `processing` "
            "and the provider order id is kept on the order; repeating the call is harmless."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=BeginPaymentSerializer,
        responses={200: OrderSerializer},
        examples=[OpenApiExample("Start", value={"provider_order_id": "order_Nx1Yz2"}, request_only=True)],
    )
    def post(self, request, order_id: int):
        serializer = BeginPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _handler():
            order = begin_payment(
                order_id=order_id,
                user_id=request.user.id,
                transaction_id=serializer.validated_data["provider_order_id"],
            )
            return OrderSerializer(get_order(order_id=order.id), context={"request": request}).data, 200

        return _run(request, _handler)


class OrderPaymentWebhookView(APIView):
    """Webhook endpoint for payment provider results.

    The raw body must carry a valid HMAC-SHA256 signature keyed with
    `PAYMENT_WEBHOOK_SECRET` in the `X-Razorpay-Signature` header. Idempotent
    when `Idempotency-Key` header is provided, and the payment handlers
    themselves ignore repeated deliveries.
    """

    permission_classes = [AllowAny]
    # Provider retries arrive in bursts from a few IPs; only the scoped rate applies
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment_webhook"

    @extend_schema(
        tags=["Orders"],
        summary="Payment webhook",
        description=(
            "Consumes a payment provider webhook.\n"
            "`payment_succeeded` places the order and empties the buyer's cart; "
            "`payment_failed` cancels it and leaves the cart as it was."
        ),
        parameters=[IDEMPOTENCY_HEADER, SIGNATURE_HEADER],
        request=PaymentWebhookSerializer,
        responses={200: OrderSerializer},
        examples=[
            OpenApiExample(
                "Webhook Success",
                value={"order_id": 123, "event": "payment_succeeded", "transaction_id": "pay_9A8b7C"},
                request_only=True,
            ),
        ],
    )
    def post(self, request):
        verify_webhook_signature(body=request.body, signature=request.headers.get("X-Razorpay-Signature", ""))
        serializer = PaymentWebhookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        def _handler():
            if data["event"] == PaymentWebhookSerializer.EVENT_SUCCEEDED:
                order = handle_payment_success(order_id=data["order_id"], transaction_id=data["transaction_id"])
            else:
                order = handle_payment_failure(order_id=data["order_id"], reason=data["reason"])
            return OrderSerializer(get_order(order_id=order.id), context={"request": request}).data, 200

        return _run(request, _handler)


class OrderAdminStatusView(APIView):
    """Administrative status, payment status and refund updates."""

    permission_classes = [IsStoreAdmin]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Update order status (admin)",
        description=(
            "With `enforce_transitions` (default) the status must follow the fulfillment state machine; "
            "without it any known status is accepted and recorded. `refund_amount` records a refund."
        ),
        request=AdminStatusSerializer,
        responses={200: OrderSerializer},
    )
    def post(self, request, order_id: int):
        serializer = AdminStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        notes = data["notes"]

        with transaction.atomic():
            if data.get("refund_amount") is not None:
                record_refund(order_id=order_id, amount=data["refund_amount"], updated_by=request.user, notes=notes)
            if data.get("status"):
                if data["enforce_transitions"]:
                    transition_order(order_id=order_id, status=data["status"], updated_by=request.user, notes=notes)
                else:
                    update_order_status(
                        order_id=order_id, status=data["status"], updated_by=request.user, notes=notes
                    )
            if data.get("payment_status"):
                update_payment_status(
                    order_id=order_id, payment_status=data["payment_status"], updated_by=request.user, notes=notes
                )
        return Response(OrderSerializer(get_order(order_id=order_id), context={"request": request}).data)
