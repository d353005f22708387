"""Django app configuration for orders."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Orders, payment handling and invoices."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
