"""Django app configuration for pricing."""

from django.apps import AppConfig


class PricingConfig(AppConfig):
    """Reference metal prices and the pricing engine."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "pricing"
