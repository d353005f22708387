"""Shared enumerations and choices used across apps."""

from django.db import models


class UserRole(models.TextChoices):
    ADMIN = "admin", "Admin"
    CLIENT = "client", "Client"


class AuthProvider(models.TextChoices):
    LOCAL = "local", "Local"
    GOOGLE = "google", "Google"


class OrderStatus(models.TextChoices):
    """Fulfillment statuses for orders."""

    PENDING = "pending", "Pending"
    PLACED = "placed", "Placed"
    SHIPPED = "shipped", "Shipped"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    """Statuses of the payment sub-record of an order."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially refunded"


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = "credit_card", "Credit card"
    DEBIT_CARD = "debit_card", "Debit card"
    PAYPAL = "paypal", "PayPal"
    STRIPE = "stripe", "Stripe"
    RAZORPAY = "razorpay", "Razorpay"
    BANK_TRANSFER = "bank_transfer", "Bank transfer"
    UPI = "upi", "UPI"
    NETBANKING = "netbanking", "Net banking"
    WALLET = "wallet", "Wallet"
