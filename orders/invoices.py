"""Invoice generation for paid orders.

An invoice is rendered once per order and its storage URL is written back
onto the order with a conditional update. Later calls return the stored URL
without rendering or touching storage. Nothing is persisted on the order
until the PDF is rendered, validated and stored, so a failed attempt can be
retried from scratch.
"""

import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from common.choices import PaymentMethod
from common.deadlines import call_with_timeout
from common.exceptions import DomainError, InvalidState, NotFound, RenderingFailure
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import storages
from django.utils import timezone

from .models import Order
from .rendering import render_invoice_pdf
from .selectors import get_order

logger = logging.getLogger("luxejewels.invoices")

PDF_SIGNATURE = b"%PDF"
DUE_DAYS = 30

DEFAULT_COMPANY = {
    "name": "LuxeJewels",
    "address": "Kochi, Kerala, India",
    "phone": "+91 98765 43210",
    "email": "luxejewels@gmail.com",
    "website": "luxejewels.vercel.app",
}


def format_inr(value, symbol: str = "₹") -> str:
    """Format an amount with Indian digit grouping, e.g. ₹1,23,456.00."""

    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer, fraction = f"{abs(amount):.2f}".split(".")
    if len(integer) > 3:
        head, tail = integer[:-3], integer[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer = ",".join(groups + [tail])
    return f"{sign}{symbol}{integer}.{fraction}"


def invoice_number(order: Order) -> str:
    number = order.number or f"ORD-{int(order.id):06d}"
    return f"INV-{number.replace('ORD-', '')}"


def _metals_label(metals) -> str:
    parts = []
    for metal in metals or []:
        metal_type = metal.get("type") or metal.get("Type") or ""
        label = " ".join(p for p in (str(metal.get("purity") or ""), metal_type) if p)
        if metal.get("weight") not in (None, ""):
            label = f"{label} {metal['weight']}g"
        parts.append(label.strip())
    return ", ".join(p for p in parts if p)


def build_invoice_context(order: Order, user) -> dict:
    """Everything the layout needs, taken from the order's own snapshots."""

    issued = order.paid_at or order.created_at or timezone.now()
    items = []
    for item in order.items.all():
        snapshot = item.variant_snapshot or item.product_snapshot or {}
        items.append(
            {
                "name": item.name,
                "product_name": (item.product_snapshot or {}).get("name", item.name),
                "variant_name": (item.variant_snapshot or {}).get("name", ""),
                "metals": _metals_label(snapshot.get("metals")),
                "quantity": int(item.quantity),
                "price": item.price,
                "line_total": item.line_total,
            }
        )
    return {
        "company": {**DEFAULT_COMPANY, **getattr(settings, "INVOICE_COMPANY", {})},
        "invoice": {
            "number": invoice_number(order),
            "order_number": order.number or str(order.id),
            "date": issued.strftime("%d %b %Y"),
            "due_date": (issued + timedelta(days=DUE_DAYS)).strftime("%d %b %Y"),
        },
        "customer": {
            "name": getattr(user, "display_name", "") or order.shipping_name,
            "email": order.email or user.email or "",
            "phone": order.shipping_phone or getattr(user, "phone", "") or "",
        },
        "shipping": order.shipping_address,
        "items": items,
        "totals": {
            "subtotal": order.subtotal,
            "tax": order.tax,
            "shipping_fee": order.shipping_fee,
            "total": order.total_price,
        },
        "payment": {
            "method": dict(PaymentMethod.choices).get(order.payment_method, order.payment_method or ""),
            "status": order.payment_status,
            "transaction_id": order.transaction_id,
        },
        "format_currency": format_inr,
    }


def _render(context: dict, renderer) -> bytes:
    timeout = getattr(settings, "INVOICE_RENDER_TIMEOUT_SECONDS", None)
    try:
        pdf = call_with_timeout(renderer, timeout, context, what="invoice rendering")
    except DomainError:
        raise
    except Exception as exc:
        raise RenderingFailure("Invoice rendering failed", reason=exc.__class__.__name__) from exc
    if not pdf or not bytes(pdf).startswith(PDF_SIGNATURE):
        raise RenderingFailure("Generated invoice is not a valid PDF")
    return bytes(pdf)


def generate_invoice(*, order_id, user_id=None, renderer=None, storage=None) -> str:
    """Return the order's invoice URL, rendering and storing the PDF on first call.

    With `user_id` the order must belong to that user. Only paid orders are
    invoiced.
    """

    order = get_order(order_id=order_id)
    if user_id is not None and order.user_id != user_id:
        raise NotFound("Order not found", order_id=order_id)
    user = get_user_model().objects.filter(pk=order.user_id).first()
    if user is None:
        raise NotFound("User not found", user_id=order.user_id)

    if order.invoice_url:
        logger.info(
            "invoices.cache_hit",
            extra={"event": "invoices.cache_hit", "order_id": order.id, "order_number": order.number},
        )
        return order.invoice_url

    if not order.is_paid:
        raise InvalidState("Invoice is only available for paid orders", payment_status=order.payment_status)

    pdf = _render(build_invoice_context(order, user), renderer or render_invoice_pdf)

    storage = storage or storages["invoices"]
    try:
        name = storage.save(f"{order.number or order.id}.pdf", ContentFile(pdf))
        url = storage.url(name)
    except Exception as exc:
        raise RenderingFailure("Could not store invoice", reason=exc.__class__.__name__) from exc

    written = Order.objects.filter(pk=order.pk, invoice_url="").update(invoice_url=url, updated_at=timezone.now())
    if not written:
        # Another request stored its invoice first; keep theirs
        storage.delete(name)
        winner = Order.objects.values_list("invoice_url", flat=True).get(pk=order.pk)
        logger.info(
            "invoices.lost_race",
            extra={"event": "invoices.lost_race", "order_id": order.id, "discarded": name},
        )
        return winner

    logger.info(
        "invoices.generated",
        extra={
            "event": "invoices.generated",
            "order_id": order.id,
            "order_number": order.number,
            "bytes": len(pdf),
            "storage_name": name,
        },
    )
    return url
