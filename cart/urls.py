"""Cart URL routes (v1)."""

from django.urls import path

from .views import CartAddItemView, CartCleanupView, CartClearView, CartCountView, CartDetailView, CartItemUpdateView

app_name = "cart"

urlpatterns = [
    path("", CartDetailView.as_view(), name="cart-detail"),
    path("items/", CartAddItemView.as_view(), name="cart-add-item"),
    path("items/update/", CartItemUpdateView.as_view(), name="cart-update-item"),
    path("clear/", CartClearView.as_view(), name="cart-clear"),
    path("cleanup/", CartCleanupView.as_view(), name="cart-cleanup"),
    path("count/", CartCountView.as_view(), name="cart-count"),
]
