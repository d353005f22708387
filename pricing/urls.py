"""Pricing URL routes (v1)."""

from django.urls import path

from .views import MetalPriceListView, ProductQuoteView

app_name = "pricing"

urlpatterns = [
    path("products/<str:product_id>/quote/", ProductQuoteView.as_view(), name="product-quote"),
    path("metal-prices/", MetalPriceListView.as_view(), name="metal-prices"),
]
