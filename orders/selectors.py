"""Selectors for read-only order queries."""

from common.exceptions import NotFound

from .models import Order


def orders_for_user(*, user_id):
    return Order.objects.filter(user_id=user_id).order_by("-id").prefetch_related("items")


def get_order(*, order_id) -> Order:
    try:
        return Order.objects.prefetch_related("items", "history").get(pk=int(order_id))
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound("Order not found", order_id=order_id)


def get_order_for_user(*, order_id, user_id) -> Order:
    """Return the order if it belongs to the user; other users' orders look absent."""

    order = get_order(order_id=order_id)
    if order.user_id != user_id:
        raise NotFound("Order not found", order_id=order_id)
    return order
