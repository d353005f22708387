import hashlib
import hmac
import json
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional, Tuple

from cart.models import CartItem
from cart.selectors import get_buyer
from cart.services import empty_cart_after_payment
from catalog.selectors import validate_unit
from catalog.services import decrement_stock, restore_stock
from common.choices import OrderStatus, PaymentStatus
from common.exceptions import (
    DomainError,
    EmptyOrder,
    InsufficientStock,
    InvalidQuantity,
    InvalidSignature,
    InvalidState,
    NotFound,
    Unavailable,
)
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction
from django.utils import timezone

from . import state
from .emails import send_order_paid_email
from .models import IdempotencyKey, Order, OrderHistory, OrderItem

logger = logging.getLogger("luxejewels.orders")


def _product_snapshot(product) -> dict:
    return {
        "product_id": product.product_id,
        "name": product.name,
        "description": product.description,
        "category_id": product.category_id,
        "making_price": product.making_price,
        "metals": product.metals,
        "gemstones": product.gemstones,
        "images": product.images,
        "certificates": product.certificates,
        "total_price": product.total_price,
    }


def _variant_snapshot(variant) -> Optional[dict]:
    if variant is None:
        return None
    return {
        "variant_id": variant.variant_id,
        "name": variant.name,
        "making_price": variant.making_price,
        "metals": variant.metals,
        "total_price": variant.total_price,
    }


def _cart_prices(user) -> dict:
    """Price snapshots from the buyer's cart, keyed by (product_id, variant_id)."""

    return {
        (item.product_id, item.variant_id): item.price_at_purchase
        for item in CartItem.objects.filter(cart__user_id=user.id)
    }


def _merge_lines(items: Iterable[dict]) -> list:
    """Collapse repeated (product, variant) pairs so stock is checked on the combined quantity."""

    merged = {}
    for line in items:
        key = (str(line.get("product_id", "")), str(line.get("variant_id", "")))
        merged[key] = merged.get(key, 0) + int(line.get("quantity") or 0)
    return [{"product_id": p, "variant_id": v, "quantity": q} for (p, v), q in merged.items()]


def _append_history(order: Order, *, updated_by=None, notes: str = "") -> OrderHistory:
    return OrderHistory.objects.create(
        order=order,
        status=order.status,
        payment_status=order.payment_status,
        updated_by=updated_by if getattr(updated_by, "pk", None) else None,
        notes=notes,
    )


def _lock_order(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=int(order_id))
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound("Order not found", order_id=order_id)


def _log_change(event: str, order: Order, prev_status: str, prev_payment: str, **extra) -> None:
    logger.info(
        event,
        extra={
            "event": event,
            "order_id": order.id,
            "order_number": order.number,
            "user_id": order.user_id,
            "status_from": prev_status,
            "status_to": order.status,
            "payment_from": prev_payment,
            "payment_to": order.payment_status,
            **extra,
        },
    )


@transaction.atomic
def create_order(
    *,
    user_id,
    items: Iterable[dict],
    shipping_address: dict,
    payment_method: str,
    tax=None,
    shipping_fee=None,
    notes: str = "",
) -> Order:
    """Create an order from the buyer's submitted cart lines.

    Every line is revalidated against the live catalog; invalid lines are
    dropped and logged. Stock for the surviving lines is taken with a
    conditional decrement, so concurrent checkouts cannot oversell. The
    buyer's cart is left untouched until payment succeeds.
    """

    buyer = get_buyer(user_id=user_id)
    snapshot_prices = _cart_prices(buyer)

    lines = []
    for line in _merge_lines(items):
        try:
            if line["quantity"] < 1:
                raise InvalidQuantity("Quantity must be at least 1")
            unit = validate_unit(
                product_id=line["product_id"], variant_id=line["variant_id"], quantity=line["quantity"]
            )
            variant_key = unit.variant.variant_id if unit.variant else None
            if not decrement_stock(product_id=unit.product_id, variant_id=variant_key, quantity=line["quantity"]):
                raise InsufficientStock(
                    product_id=unit.product_id,
                    variant_id=unit.variant_id,
                    available=0,
                    requested=line["quantity"],
                )
        except (NotFound, Unavailable, InsufficientStock, InvalidQuantity) as exc:
            logger.warning(
                "orders.line_dropped",
                extra={
                    "event": "orders.line_dropped",
                    "user_id": user_id,
                    "product_id": line["product_id"],
                    "variant_id": line["variant_id"],
                    "reason": exc.code,
                },
            )
            continue
        lines.append((unit, line["quantity"]))

    if not lines:
        raise EmptyOrder("No valid items to order")

    subtotal = Decimal("0.00")
    for unit, quantity in lines:
        price = snapshot_prices.get((unit.product_id, unit.variant_id), unit.unit_price)
        subtotal += price * Decimal(quantity)
    tax = Decimal(str(tax or 0))
    shipping_fee = Decimal(str(shipping_fee or 0))

    order = Order.objects.create(
        user=buyer,
        email=buyer.email or None,
        subtotal=subtotal,
        tax=tax,
        shipping_fee=shipping_fee,
        total_price=subtotal + tax + shipping_fee,
        shipping_name=shipping_address.get("name") or buyer.display_name,
        shipping_street=shipping_address.get("street", ""),
        shipping_city=shipping_address.get("city", ""),
        shipping_state=shipping_address.get("state", ""),
        shipping_postal_code=shipping_address.get("postal_code", ""),
        shipping_country=shipping_address.get("country") or "India",
        shipping_phone=shipping_address.get("phone") or buyer.phone or "",
        payment_method=payment_method,
        customer_notes=notes or "",
    )
    for unit, quantity in lines:
        OrderItem.objects.create(
            order=order,
            product_id=unit.product_id,
            variant_id=unit.variant_id,
            name=unit.name,
            product_snapshot=_product_snapshot(unit.product),
            variant_snapshot=_variant_snapshot(unit.variant),
            quantity=quantity,
            price=snapshot_prices.get((unit.product_id, unit.variant_id), unit.unit_price),
        )
    # Generate user-friendly order number (unique)
    order.number = f"ORD-{int(order.id):06d}"
    order.save(update_fields=["number"])
    _append_history(order, updated_by=buyer, notes="Order created")
    logger.info(
        "orders.created",
        extra={
            "event": "orders.created",
            "order_id": order.id,
            "order_number": order.number,
            "user_id": buyer.id,
            "lines": len(lines),
            "total_price": str(order.total_price),
        },
    )
    return order


@transaction.atomic
def update_order_status(*, order_id, status: str, updated_by=None, notes: str = "") -> Order:
    """Set the order status to any known value and record it.

    Administrative primitive: edges are not checked here.
    """

    state.validate_order_status(status)
    order = _lock_order(order_id)
    prev_status, prev_payment = order.status, order.payment_status
    order.status = status
    order.save(update_fields=["status", "updated_at"])
    _append_history(order, updated_by=updated_by, notes=notes or f"Status updated to {status}")
    _log_change("orders.status_changed", order, prev_status, prev_payment)
    return order


@transaction.atomic
def update_payment_status(*, order_id, payment_status: str, updated_by=None, notes: str = "") -> Order:
    """Set the payment status to any known value and record it. Edges are not checked."""

    state.validate_payment_status(payment_status)
    order = _lock_order(order_id)
    prev_status, prev_payment = order.status, order.payment_status
    order.payment_status = payment_status
    order.save(update_fields=["payment_status", "updated_at"])
    _append_history(order, updated_by=updated_by, notes=notes or f"Payment status updated to {payment_status}")
    _log_change("orders.payment_status_changed", order, prev_status, prev_payment)
    return order


def _release_stock(order: Order) -> None:
    """Return the order's units to stock, at most once per order."""

    if order.stock_released:
        return
    for item in order.items.all():
        restore_stock(product_id=item.product_id, variant_id=item.stock_variant_id, quantity=int(item.quantity))
    order.stock_released = True
    order.save(update_fields=["stock_released", "updated_at"])


@transaction.atomic
def transition_order(*, order_id, status: str, updated_by=None, notes: str = "") -> Order:
    """Move the order along a legal fulfillment edge (ship, complete, cancel)."""

    order = _lock_order(order_id)
    state.ensure_order_transition(order.status, status)
    prev_status, prev_payment = order.status, order.payment_status
    order.status = status
    order.save(update_fields=["status", "updated_at"])
    if status == OrderStatus.CANCELLED:
        _release_stock(order)
    _append_history(order, updated_by=updated_by, notes=notes or f"Status updated to {status}")
    _log_change("orders.status_changed", order, prev_status, prev_payment)
    return order


@transaction.atomic
def cancel_order(*, order_id, user_id=None, updated_by=None, reason: str = "") -> Order:
    """Cancel an order that has not been completed.

    With `user_id` the order must belong to that user. Cancelling an already
    cancelled order returns it unchanged.
    """

    order = _lock_order(order_id)
    if user_id is not None and order.user_id != user_id:
        raise NotFound("Order not found", order_id=order_id)
    if order.status == OrderStatus.CANCELLED:
        return order
    if order.status not in state.CUSTOMER_CANCELLABLE:
        raise InvalidState("Order cannot be cancelled at this stage", status=order.status)
    prev_status, prev_payment = order.status, order.payment_status
    order.status = OrderStatus.CANCELLED
    order.save(update_fields=["status", "updated_at"])
    _release_stock(order)
    _append_history(order, updated_by=updated_by, notes=reason or "Cancelled by customer")
    _log_change("orders.cancelled", order, prev_status, prev_payment)
    return order


@transaction.atomic
def begin_payment(*, order_id, transaction_id: str = "", user_id=None) -> Order:
    """Mark payment as processing once the provider-side order exists.

    With `user_id` the order must belong to that user.
    """

    order = _lock_order(order_id)
    if user_id is not None and order.user_id != user_id:
        raise NotFound("Order not found", order_id=order_id)
    if order.payment_status == PaymentStatus.PROCESSING:
        return order
    if order.status != OrderStatus.PENDING:
        raise InvalidState("Order is not awaiting payment", status=order.status)
    state.ensure_payment_transition(order.payment_status, PaymentStatus.PROCESSING)
    prev_status, prev_payment = order.status, order.payment_status
    order.payment_status = PaymentStatus.PROCESSING
    if transaction_id:
        order.transaction_id = transaction_id
    order.save(update_fields=["payment_status", "transaction_id", "updated_at"])
    _append_history(order, notes="Payment initiated")
    _log_change("orders.payment_started", order, prev_status, prev_payment)
    return order


def _awaiting_payment(order: Order) -> bool:
    return order.status == OrderStatus.PENDING and order.payment_status in (
        PaymentStatus.PENDING,
        PaymentStatus.PROCESSING,
    )


def verify_webhook_signature(*, body: bytes, signature: str) -> None:
    """Check a provider callback's HMAC-SHA256 hex digest of the raw body.

    Fails closed when `PAYMENT_WEBHOOK_SECRET` is not configured.
    """

    secret = getattr(settings, "PAYMENT_WEBHOOK_SECRET", "")
    if not secret or not signature:
        logger.warning(
            "orders.webhook_signature_missing",
            extra={"event": "orders.webhook_signature_missing", "secret_configured": bool(secret)},
        )
        raise InvalidSignature("Missing webhook signature")
    expected = hmac.new(secret.encode("utf-8"), body or b"", hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, str(signature).strip()):
        logger.warning("orders.webhook_signature_invalid", extra={"event": "orders.webhook_signature_invalid"})
        raise InvalidSignature("Webhook signature verification failed")


@transaction.atomic
def handle_payment_success(*, order_id, transaction_id: str) -> Order:
    """Record a captured payment: payment completed, order placed, cart emptied.

    Calling it again for an order that no longer awaits payment is a no-op.
    """

    order = _lock_order(order_id)
    if not _awaiting_payment(order):
        logger.info(
            "orders.payment_success_ignored",
            extra={
                "event": "orders.payment_success_ignored",
                "order_id": order.id,
                "status": order.status,
                "payment_status": order.payment_status,
            },
        )
        return order

    prev_status, prev_payment = order.status, order.payment_status
    order.payment_status = PaymentStatus.COMPLETED
    order.paid_at = timezone.now()
    order.status = OrderStatus.PLACED
    order.transaction_id = transaction_id or order.transaction_id
    order.save(update_fields=["payment_status", "paid_at", "status", "transaction_id", "updated_at"])
    _append_history(order, notes="Payment completed")
    empty_cart_after_payment(user_id=order.user_id, order_number=order.number or "")
    _log_change("orders.paid", order, prev_status, prev_payment, transaction_id=order.transaction_id)
    transaction.on_commit(lambda: send_order_paid_email(order))
    return order


@transaction.atomic
def handle_payment_failure(*, order_id, reason: str = "") -> Order:
    """Record a failed payment: payment failed, order cancelled, stock restored.

    The buyer's cart is left as it was so they can retry. Repeated calls are
    no-ops once the order no longer awaits payment.
    """

    order = _lock_order(order_id)
    if not _awaiting_payment(order):
        logger.info(
            "orders.payment_failure_ignored",
            extra={
                "event": "orders.payment_failure_ignored",
                "order_id": order.id,
                "status": order.status,
                "payment_status": order.payment_status,
            },
        )
        return order

    prev_status, prev_payment = order.status, order.payment_status
    order.payment_status = PaymentStatus.FAILED
    order.status = OrderStatus.CANCELLED
    order.save(update_fields=["payment_status", "status", "updated_at"])
    _release_stock(order)
    _append_history(order, notes=f"Payment failed: {reason}" if reason else "Payment failed")
    _log_change("orders.payment_failed", order, prev_status, prev_payment, reason=reason)
    return order


@transaction.atomic
def record_refund(*, order_id, amount, updated_by=None, notes: str = "") -> Order:
    """Record a refund against a paid order.

    The payment becomes refunded once the cumulative refund reaches the
    order total, partially refunded before that.
    """

    amount = Decimal(str(amount))
    if amount <= 0:
        raise InvalidState("Refund amount must be positive", amount=str(amount))
    order = _lock_order(order_id)
    refunded = order.refund_amount + amount
    if refunded > order.total_price:
        raise InvalidState(
            "Refund exceeds order total",
            total_price=str(order.total_price),
            refund_amount=str(refunded),
        )
    target = PaymentStatus.REFUNDED if refunded == order.total_price else PaymentStatus.PARTIALLY_REFUNDED
    state.ensure_payment_transition(order.payment_status, target)
    prev_status, prev_payment = order.status, order.payment_status
    order.refund_amount = refunded
    order.payment_status = target
    order.save(update_fields=["refund_amount", "payment_status", "updated_at"])
    _append_history(order, updated_by=updated_by, notes=notes or f"Refunded {amount}")
    _log_change("orders.refunded", order, prev_status, prev_payment, amount=str(amount))
    return order


def expire_pending_orders(*, older_than_minutes: int) -> int:
    """Fail orders whose payment window has passed. Returns how many were expired."""

    cutoff = timezone.now() - timedelta(minutes=int(older_than_minutes))
    ids = list(
        Order.objects.filter(
            status=OrderStatus.PENDING,
            payment_status__in=[PaymentStatus.PENDING, PaymentStatus.PROCESSING],
            created_at__lt=cutoff,
        ).values_list("id", flat=True)
    )
    expired = 0
    for order_id in ids:
        order = handle_payment_failure(order_id=order_id, reason="Payment window expired")
        if order.payment_status == PaymentStatus.FAILED:
            expired += 1
    return expired


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: for authenticated users, "user:<id>"; otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    - A `DomainError` from the handler is stored as its error response, unless it
      is retryable, in which case the key is released so the client can retry.
    """

    scope = f"user:{getattr(user, 'id', None)}" if getattr(user, "id", None) else "anon"
    method = str(method).upper()
    path = str(path)

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if getattr(user, "id", None) else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=24),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        # Guard against key reuse with different fingerprints
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload", "code": "conflict"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        # If another process is currently handling it, return a safe 409
        return {"detail": "Request in progress", "code": "conflict"}, 409

    try:
        body, code = handler()
    except DomainError as exc:
        if exc.details.get("retryable"):
            IdempotencyKey.objects.filter(id=idem.id).delete()
            raise
        body, code = exc.as_payload(), exc.status_code

    # Stored bodies must survive a JSON round trip (Decimal, datetime, UUID)
    safe_body = json.loads(json.dumps(body, cls=DjangoJSONEncoder))
    IdempotencyKey.objects.filter(id=idem.id).update(response_json=safe_body, response_code=code)
    return safe_body, code


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Compute a canonical SHA256 hash of the request body.

    Uses sorted keys JSON representation to stabilize the hash across equivalent payloads.
    Returns None when data is falsy.
    """
    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
    except (TypeError, ValueError):
        return None


def purge_idempotency_keys(*, stale_after_minutes: int = 60, dry_run: bool = False) -> dict:
    """Drop expired records, plus records whose handler never stored a response.

    A record left without a response blocks its key with 409 forever, which
    happens when a request dies between claiming the key and finishing.
    """

    now = timezone.now()
    expired = IdempotencyKey.objects.filter(expires_at__lt=now)
    stale = IdempotencyKey.objects.filter(
        response_code__isnull=True, created_at__lt=now - timedelta(minutes=int(stale_after_minutes))
    ).exclude(expires_at__lt=now)
    counts = {"expired": expired.count(), "stale": stale.count()}
    if not dry_run:
        stale.delete()
        expired.delete()
    logger.info("orders.idempotency_purged", extra={"event": "orders.idempotency_purged", "dry_run": dry_run, **counts})
    return counts
