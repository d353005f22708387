"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import (
    OrderAdminStatusView,
    OrderCancelView,
    OrderDetailView,
    OrderInvoiceView,
    OrderListCreateView,
    OrderPaymentStartView,
    OrderPaymentWebhookView,
)

app_name = "orders"

urlpatterns = [
    path("", OrderListCreateView.as_view(), name="order-list"),
    path("<int:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:order_id>/cancel/", OrderCancelView.as_view(), name="order-cancel"),
    path("<int:order_id>/invoice/", OrderInvoiceView.as_view(), name="order-invoice"),
    path("<int:order_id>/payment/", OrderPaymentStartView.as_view(), name="order-payment-start"),
    path("<int:order_id>/status/", OrderAdminStatusView.as_view(), name="order-admin-status"),
    path("webhooks/payment/", OrderPaymentWebhookView.as_view(), name="order-webhook-payment"),
]
