import time
from decimal import Decimal
from unittest import mock

import pytest
from cart.tests.factories import UserFactory
from catalog.tests.factories import ProductVariantFactory
from common.choices import PaymentMethod
from common.exceptions import InvalidState, NotFound, OperationTimeout, RenderingFailure
from django.core.files.storage import InMemoryStorage, storages
from orders.invoices import build_invoice_context, format_inr, generate_invoice, invoice_number
from orders.models import Order
from orders.services import create_order, handle_payment_success

ADDRESS = {"name": "Asha Menon", "street": "12 MG Road", "city": "Kochi", "state": "Kerala", "postal_code": "682016"}


def _paid_order(user=None, price=Decimal("26780.00")):
    user = user or UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, total_price=price)
    order = create_order(
        user_id=user.id,
        items=[{"product_id": variant.product.product_id, "variant_id": variant.variant_id, "quantity": 1}],
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.UPI,
    )
    return handle_payment_success(order_id=order.id, transaction_id="pay_inv")


def test_format_inr_uses_indian_grouping():
    assert format_inr(Decimal("123456.5")) == "₹1,23,456.50"
    assert format_inr(Decimal("1234567")) == "₹12,34,567.00"
    assert format_inr(999) == "₹999.00"
    assert format_inr(Decimal("-1500"), symbol="Rs. ") == "-Rs. 1,500.00"


@pytest.mark.django_db
def test_context_is_built_from_order_snapshots():
    order = _paid_order()
    item = order.items.get()
    order = Order.objects.prefetch_related("items").get(pk=order.pk)

    ctx = build_invoice_context(order, order.user)

    assert ctx["invoice"]["number"] == invoice_number(order) == f"INV-{order.id:06d}"
    assert ctx["items"][0]["name"] == item.name
    assert ctx["items"][0]["metals"] == "22K Gold 2.0g"
    assert ctx["totals"]["total"] == order.total_price
    assert ctx["payment"]["method"] == "UPI"
    assert ctx["company"]["name"] == "LuxeJewels"


@pytest.mark.django_db
def test_invoice_generated_once_and_reused():
    order = _paid_order()
    storage = storages["invoices"]

    with mock.patch.object(storage, "save", wraps=storage.save) as save:
        url = generate_invoice(order_id=order.id, user_id=order.user_id)
        again = generate_invoice(order_id=order.id, user_id=order.user_id)

    assert save.call_count == 1
    assert again == url
    assert url.startswith("/media/invoices/ORD-")
    order.refresh_from_db()
    assert order.invoice_url == url
    name = url.rsplit("/", 1)[-1]
    with storage.open(name, "rb") as fh:
        assert fh.read(4) == b"%PDF"


@pytest.mark.django_db
def test_unpaid_order_is_not_invoiced():
    user = UserFactory()
    variant = ProductVariantFactory()
    order = create_order(
        user_id=user.id,
        items=[{"product_id": variant.product.product_id, "variant_id": variant.variant_id, "quantity": 1}],
        shipping_address=ADDRESS,
        payment_method=PaymentMethod.UPI,
    )
    with pytest.raises(InvalidState):
        generate_invoice(order_id=order.id)


@pytest.mark.django_db
def test_other_users_order_is_not_found():
    order = _paid_order()
    with pytest.raises(NotFound):
        generate_invoice(order_id=order.id, user_id=UserFactory().id)


@pytest.mark.django_db
def test_invalid_pdf_bytes_leave_order_untouched():
    order = _paid_order()
    storage = InMemoryStorage()

    with pytest.raises(RenderingFailure):
        generate_invoice(order_id=order.id, renderer=lambda ctx: b"<html>nope</html>", storage=storage)

    order.refresh_from_db()
    assert order.invoice_url == ""
    assert storage.listdir("")[1] == []


@pytest.mark.django_db
def test_renderer_exception_becomes_rendering_failure():
    order = _paid_order()

    def broken(ctx):
        raise ValueError("layout overflow")

    with pytest.raises(RenderingFailure) as exc:
        generate_invoice(order_id=order.id, renderer=broken, storage=InMemoryStorage())
    assert exc.value.details["reason"] == "ValueError"


@pytest.mark.django_db
def test_slow_renderer_times_out(settings):
    settings.INVOICE_RENDER_TIMEOUT_SECONDS = 0.05
    order = _paid_order()

    def slow(ctx):
        time.sleep(0.5)
        return b"%PDF-1.4"

    with pytest.raises(OperationTimeout):
        generate_invoice(order_id=order.id, renderer=slow, storage=InMemoryStorage())
    order.refresh_from_db()
    assert order.invoice_url == ""


class RacingStorage(InMemoryStorage):
    """Lets another writer store its URL while this one is saving."""

    def __init__(self, order_id, **kwargs):
        super().__init__(**kwargs)
        self.order_id = order_id

    def save(self, name, content, max_length=None):
        saved = super().save(name, content, max_length=max_length)
        Order.objects.filter(pk=self.order_id).update(invoice_url="/media/invoices/winner.pdf")
        return saved


@pytest.mark.django_db
def test_losing_writer_discards_its_file_and_returns_winner():
    order = _paid_order()
    storage = RacingStorage(order.id, base_url="/media/invoices/")

    url = generate_invoice(order_id=order.id, renderer=lambda ctx: b"%PDF-1.4 test", storage=storage)

    assert url == "/media/invoices/winner.pdf"
    assert storage.listdir("")[1] == []
    order.refresh_from_db()
    assert order.invoice_url == "/media/invoices/winner.pdf"


class UnreachableBucket(InMemoryStorage):
    def save(self, name, content, max_length=None):
        raise RuntimeError("bucket unreachable")


@pytest.mark.django_db
def test_storage_backend_errors_become_rendering_failure():
    order = _paid_order()

    with pytest.raises(RenderingFailure) as exc:
        generate_invoice(order_id=order.id, renderer=lambda ctx: b"%PDF-1.4 test", storage=UnreachableBucket())
    assert exc.value.details["reason"] == "RuntimeError"
    order.refresh_from_db()
    assert order.invoice_url == ""


@pytest.mark.django_db
def test_context_tolerates_unknown_payment_method():
    order = _paid_order()
    Order.objects.filter(pk=order.pk).update(payment_method="paypal")
    order.refresh_from_db()

    context = build_invoice_context(order, order.user)

    assert context["payment"]["method"] == "paypal"
