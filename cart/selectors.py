"""Selectors for read-only cart queries."""

from common.exceptions import NotFound, Unavailable
from django.contrib.auth import get_user_model

from .models import Cart


def get_buyer(*, user_id):
    """Return the user who may own a cart or place orders.

    Raises NotFound for unknown users and Unavailable for store admins.
    """

    User = get_user_model()
    try:
        user = User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound("User not found", user_id=user_id)
    if user.is_store_admin:
        raise Unavailable("Admins are not allowed to purchase", forbidden=True)
    return user


def get_cart_for_user(*, user_id):
    """Return the user's cart, or None if it was never created."""

    return Cart.objects.filter(user_id=user_id).first()


def cart_snapshot(*, cart: Cart) -> dict:
    """Full cart shape returned by read and mutate operations."""

    return {
        "user_id": cart.user_id,
        "items": [
            {
                "product_id": item.product_id,
                "variant_id": item.variant_id,
                "name": item.name,
                "price_at_purchase": item.price_at_purchase,
                "quantity": item.quantity,
            }
            for item in cart.items.all()
        ],
        "total_items": cart.total_items,
        "total_amount": cart.total_amount,
        "version": cart.version,
    }


def item_count(*, user_id) -> int:
    cart = get_cart_for_user(user_id=user_id)
    return cart.total_items if cart else 0
