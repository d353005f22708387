"""Cart services: validated mutations of the per-user cart.

Every mutation locks the cart row for the duration of its transaction,
recomputes the derived totals from the resulting items and bumps the
cart's `version`. A failed validation rolls the whole mutation back, so
the cart is never partially written.
"""

import logging
from typing import Optional

from catalog.selectors import ensure_in_stock, resolve_unit, validate_unit
from common.exceptions import Conflict, InsufficientStock, InvalidQuantity, NotFound, Unavailable
from django.db import transaction

from .models import Cart, CartItem
from .selectors import get_buyer

logger = logging.getLogger("luxejewels.cart")


def get_or_create_cart(*, user_id) -> Cart:
    """Return the user's cart, creating an empty one on first access."""

    get_buyer(user_id=user_id)
    cart, _ = Cart.objects.get_or_create(user_id=user_id)
    return cart


def _lock_cart(*, user_id, expected_version: Optional[int] = None) -> Cart:
    get_buyer(user_id=user_id)
    Cart.objects.get_or_create(user_id=user_id)
    cart = Cart.objects.select_for_update().get(user_id=user_id)
    if expected_version is not None and int(expected_version) != cart.version:
        raise Conflict(
            "Cart was modified by another request",
            expected_version=int(expected_version),
            current_version=cart.version,
        )
    return cart


def _commit(cart: Cart) -> Cart:
    cart.recalculate_totals(CartItem.objects.filter(cart=cart))
    cart.version = cart.version + 1
    cart.save(update_fields=["total_items", "total_amount", "version", "updated_at"])
    return cart


def _find_line(cart: Cart, product_id: str, variant_id: str) -> Optional[CartItem]:
    return CartItem.objects.filter(cart=cart, product_id=product_id, variant_id=variant_id).first()


@transaction.atomic
def add_item(*, user_id, product_id: str, variant_id: str, quantity: int, expected_version=None) -> Cart:
    """Add a unit to the cart, merging with an existing line for the same unit.

    Merged lines keep their original price snapshot; new lines snapshot the
    unit's current cached total price.
    """

    if quantity < 1:
        raise InvalidQuantity("Quantity must be at least 1")
    cart = _lock_cart(user_id=user_id, expected_version=expected_version)
    unit = resolve_unit(product_id=product_id, variant_id=variant_id)
    item = _find_line(cart, product_id, variant_id)
    requested = quantity + (int(item.quantity) if item else 0)
    ensure_in_stock(unit, requested)

    if item:
        item.quantity = requested
        item.save(update_fields=["quantity", "updated_at"])
        event = "cart.item_updated"
    else:
        CartItem.objects.create(
            cart=cart,
            product_id=product_id,
            variant_id=variant_id,
            name=unit.name,
            price_at_purchase=unit.unit_price,
            quantity=quantity,
        )
        event = "cart.item_added"
    _commit(cart)
    logger.info(
        event,
        extra={
            "event": event,
            "cart_id": cart.id,
            "user_id": user_id,
            "product_id": product_id,
            "variant_id": variant_id,
            "quantity": requested,
        },
    )
    return cart


@transaction.atomic
def update_item(*, user_id, product_id: str, variant_id: str, quantity: int, expected_version=None) -> Cart:
    """Overwrite a line's quantity; zero removes the line."""

    if quantity < 0:
        raise InvalidQuantity("Quantity cannot be negative")
    cart = _lock_cart(user_id=user_id, expected_version=expected_version)
    item = _find_line(cart, product_id, variant_id)
    if item is None:
        raise NotFound("Item not found in cart", product_id=product_id, variant_id=variant_id)

    if quantity == 0:
        item.delete()
        event = "cart.item_removed"
    else:
        validate_unit(product_id=product_id, variant_id=variant_id, quantity=quantity)
        item.quantity = quantity
        item.save(update_fields=["quantity", "updated_at"])
        event = "cart.item_updated"
    _commit(cart)
    logger.info(
        event,
        extra={
            "event": event,
            "cart_id": cart.id,
            "user_id": user_id,
            "product_id": product_id,
            "variant_id": variant_id,
            "quantity": quantity,
        },
    )
    return cart


@transaction.atomic
def clear_cart(*, user_id, expected_version=None) -> Cart:
    """Empty the user's cart. The cart itself is kept."""

    cart = _lock_cart(user_id=user_id, expected_version=expected_version)
    CartItem.objects.filter(cart=cart).delete()
    _commit(cart)
    logger.info("cart.cleared", extra={"event": "cart.cleared", "cart_id": cart.id, "user_id": user_id})
    return cart


@transaction.atomic
def cleanup_cart(*, user_id) -> Cart:
    """Best-effort housekeeping: drop lines that no longer validate."""

    cart = _lock_cart(user_id=user_id)
    for item in CartItem.objects.filter(cart=cart):
        try:
            validate_unit(product_id=item.product_id, variant_id=item.variant_id, quantity=int(item.quantity))
        except (NotFound, Unavailable, InsufficientStock) as exc:
            logger.info(
                "cart.item_dropped",
                extra={
                    "event": "cart.item_dropped",
                    "cart_id": cart.id,
                    "user_id": user_id,
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "reason": exc.code,
                },
            )
            item.delete()
    return _commit(cart)


@transaction.atomic
def refresh_cart_prices(*, user_id) -> Cart:
    """Re-snapshot prices of valid lines and drop invalid ones."""

    cart = _lock_cart(user_id=user_id)
    for item in CartItem.objects.filter(cart=cart):
        try:
            unit = validate_unit(product_id=item.product_id, variant_id=item.variant_id, quantity=int(item.quantity))
        except (NotFound, Unavailable, InsufficientStock):
            item.delete()
            continue
        if unit.unit_price != item.price_at_purchase:
            item.price_at_purchase = unit.unit_price
            item.save(update_fields=["price_at_purchase", "updated_at"])
    return _commit(cart)


@transaction.atomic
def empty_cart_after_payment(*, user_id, order_number: str = "") -> None:
    """Empty the buyer's cart once their order is paid.

    Skips the buyer checks of the user-facing operations: payment
    bookkeeping must not fail because of the account's current role.
    """

    cart = Cart.objects.select_for_update().filter(user_id=user_id).first()
    if cart is None:
        return
    CartItem.objects.filter(cart=cart).delete()
    _commit(cart)
    logger.info(
        "cart.emptied_after_payment",
        extra={
            "event": "cart.emptied_after_payment",
            "cart_id": cart.id,
            "user_id": user_id,
            "order_number": order_number,
        },
    )
