from decimal import Decimal

import pytest
from cart.models import Cart
from cart.services import add_item
from cart.tests.factories import AdminUserFactory, UserFactory
from catalog.models import Product, ProductVariant
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.choices import OrderStatus, PaymentMethod, PaymentStatus
from common.exceptions import EmptyOrder, InvalidState, NotFound, Unavailable
from orders.models import Order, OrderHistory
from orders.services import (
    begin_payment,
    cancel_order,
    create_order,
    handle_payment_failure,
    handle_payment_success,
    record_refund,
    transition_order,
    update_order_status,
)

ADDRESS = {
    "name": "Asha Menon",
    "street": "12 MG Road",
    "city": "Kochi",
    "state": "Kerala",
    "postal_code": "682016",
    "phone": "+919876543210",
}


def _line(variant, quantity=1):
    return {"product_id": variant.product.product_id, "variant_id": variant.variant_id, "quantity": quantity}


def _checkout(user, lines, **kwargs):
    return create_order(
        user_id=user.id, items=lines, shipping_address=ADDRESS, payment_method=PaymentMethod.RAZORPAY, **kwargs
    )


@pytest.mark.django_db
def test_create_order_takes_stock_and_snapshots_items():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, total_price=Decimal("11062.00"))

    order = _checkout(user, [_line(variant, 2)], tax=Decimal("100.00"), shipping_fee=Decimal("50.00"))

    assert order.number == f"ORD-{order.id:06d}"
    assert order.status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.PENDING
    assert order.subtotal == Decimal("22124.00")
    assert order.total_price == Decimal("22274.00")
    [item] = order.items.all()
    assert item.quantity == 2
    assert item.price == Decimal("11062.00")
    assert item.variant_snapshot["variant_id"] == variant.variant_id
    assert item.product_snapshot["product_id"] == variant.product.product_id
    variant.refresh_from_db()
    assert variant.stock_quantity == 3
    [entry] = order.history.all()
    assert entry.notes == "Order created"
    assert entry.status == OrderStatus.PENDING


@pytest.mark.django_db
def test_create_order_uses_cart_price_snapshot_and_leaves_cart():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, total_price=Decimal("100.00"))
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)
    variant.total_price = Decimal("130.00")
    variant.save(update_fields=["total_price"])

    order = _checkout(user, [_line(variant)])

    assert order.items.get().price == Decimal("100.00")
    assert Cart.objects.get(user=user).total_items == 1


@pytest.mark.django_db
def test_create_order_drops_invalid_lines():
    user = UserFactory()
    good = ProductVariantFactory(stock_quantity=5)
    short = ProductVariantFactory(stock_quantity=1)
    inactive = ProductVariantFactory(stock_quantity=5)
    inactive.product.is_active = False
    inactive.product.save(update_fields=["is_active"])
    missing = {"product_id": "nope", "variant_id": "nope", "quantity": 1}

    order = _checkout(user, [_line(good), _line(short, 2), _line(inactive), missing])

    assert [i.variant_id for i in order.items.all()] == [good.variant_id]
    short.refresh_from_db()
    inactive.refresh_from_db()
    assert short.stock_quantity == 1
    assert inactive.stock_quantity == 5


@pytest.mark.django_db
def test_duplicate_lines_are_merged_before_stock_check():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=3)

    order = _checkout(user, [_line(variant, 2), _line(variant, 1)])

    assert order.items.get().quantity == 3
    variant.refresh_from_db()
    assert variant.stock_quantity == 0


@pytest.mark.django_db
def test_product_without_variants_takes_product_stock():
    user = UserFactory()
    product = ProductFactory(stock_quantity=2)

    order = _checkout(user, [{"product_id": product.product_id, "variant_id": product.product_id, "quantity": 2}])

    item = order.items.get()
    assert item.variant_snapshot is None
    assert item.stock_variant_id is None
    product.refresh_from_db()
    assert product.stock_quantity == 0


@pytest.mark.django_db
def test_no_valid_lines_raises_empty_order_and_changes_nothing():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=1)
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)

    with pytest.raises(EmptyOrder):
        _checkout(user, [_line(variant, 5)])

    assert Order.objects.count() == 0
    variant.refresh_from_db()
    assert variant.stock_quantity == 1
    assert Cart.objects.get(user=user).total_items == 1


@pytest.mark.django_db
def test_admin_cannot_order():
    admin = AdminUserFactory()
    variant = ProductVariantFactory()
    with pytest.raises(Unavailable):
        _checkout(admin, [_line(variant)])


@pytest.mark.django_db
def test_snapshots_survive_catalog_changes():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, name="Size 7")
    product = variant.product
    order = _checkout(user, [_line(variant)])

    variant.name = "Size 9"
    variant.save(update_fields=["name"])
    Product.objects.filter(pk=product.pk).update(name="Renamed")
    item = order.items.get()
    assert item.variant_snapshot["name"] == "Size 7"
    assert item.product_snapshot["name"] == product.name

    product.delete()
    assert not ProductVariant.objects.filter(pk=variant.pk).exists()
    item.refresh_from_db()
    assert item.variant_snapshot["name"] == "Size 7"


@pytest.mark.django_db
def test_payment_success_places_order_and_empties_cart(django_capture_on_commit_callbacks, mailoutbox):
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5)
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)
    order = _checkout(user, [_line(variant)])

    with django_capture_on_commit_callbacks(execute=True):
        order = handle_payment_success(order_id=order.id, transaction_id="pay_123")

    assert order.status == OrderStatus.PLACED
    assert order.payment_status == PaymentStatus.COMPLETED
    assert order.transaction_id == "pay_123"
    assert order.paid_at is not None
    cart = Cart.objects.get(user=user)
    assert cart.total_items == 0
    assert cart.items.count() == 0
    assert len(mailoutbox) == 1
    assert order.number in mailoutbox[0].subject


@pytest.mark.django_db
def test_payment_success_twice_is_noop():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5)
    order = _checkout(user, [_line(variant)])
    first = handle_payment_success(order_id=order.id, transaction_id="pay_1")

    second = handle_payment_success(order_id=order.id, transaction_id="pay_2")

    assert second.transaction_id == "pay_1"
    assert second.paid_at == first.paid_at
    assert OrderHistory.objects.filter(order=order).count() == 2


@pytest.mark.django_db
def test_payment_failure_cancels_and_restores_stock_once():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5)
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=2)
    order = _checkout(user, [_line(variant, 2)])

    order = handle_payment_failure(order_id=order.id, reason="card declined")
    handle_payment_failure(order_id=order.id, reason="card declined")
    cancel_order(order_id=order.id)

    assert order.status == OrderStatus.CANCELLED
    assert order.payment_status == PaymentStatus.FAILED
    variant.refresh_from_db()
    assert variant.stock_quantity == 5
    assert Cart.objects.get(user=user).total_items == 2


@pytest.mark.django_db
def test_success_after_failure_is_ignored():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])
    handle_payment_failure(order_id=order.id)

    order = handle_payment_success(order_id=order.id, transaction_id="late")

    assert order.status == OrderStatus.CANCELLED
    assert order.payment_status == PaymentStatus.FAILED


@pytest.mark.django_db
def test_begin_payment_marks_processing():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])

    order = begin_payment(order_id=order.id, transaction_id="order_rzp_1")
    assert order.payment_status == PaymentStatus.PROCESSING
    order = handle_payment_success(order_id=order.id, transaction_id="")
    assert order.transaction_id == "order_rzp_1"
    assert order.status == OrderStatus.PLACED


@pytest.mark.django_db
def test_fulfillment_transitions_follow_state_machine():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])
    handle_payment_success(order_id=order.id, transaction_id="pay")

    transition_order(order_id=order.id, status=OrderStatus.SHIPPED)
    order = transition_order(order_id=order.id, status=OrderStatus.COMPLETED)
    assert order.status == OrderStatus.COMPLETED

    with pytest.raises(InvalidState):
        transition_order(order_id=order.id, status=OrderStatus.SHIPPED)
    with pytest.raises(InvalidState):
        cancel_order(order_id=order.id)


@pytest.mark.django_db
def test_pending_cannot_skip_to_shipped():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])
    with pytest.raises(InvalidState):
        transition_order(order_id=order.id, status=OrderStatus.SHIPPED)


@pytest.mark.django_db
def test_update_order_status_rejects_unknown_values_only():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])

    with pytest.raises(InvalidState):
        update_order_status(order_id=order.id, status="lost")
    order = update_order_status(order_id=order.id, status=OrderStatus.SHIPPED, notes="manual fix")

    assert order.status == OrderStatus.SHIPPED
    assert order.history.last().notes == "manual fix"


@pytest.mark.django_db
def test_cancel_by_other_user_is_not_found():
    owner = UserFactory()
    order = _checkout(owner, [_line(ProductVariantFactory())])
    with pytest.raises(NotFound):
        cancel_order(order_id=order.id, user_id=UserFactory().id)


@pytest.mark.django_db
def test_cancel_shipped_order_restores_stock():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=2)
    order = _checkout(user, [_line(variant)])
    handle_payment_success(order_id=order.id, transaction_id="pay")
    transition_order(order_id=order.id, status=OrderStatus.SHIPPED)

    order = cancel_order(order_id=order.id, user_id=user.id, updated_by=user, reason="changed mind")

    assert order.status == OrderStatus.CANCELLED
    assert order.payment_status == PaymentStatus.COMPLETED
    variant.refresh_from_db()
    assert variant.stock_quantity == 2
    assert order.history.last().updated_by == user


@pytest.mark.django_db
def test_refunds_accumulate_until_total():
    user = UserFactory()
    variant = ProductVariantFactory(total_price=Decimal("1000.00"))
    order = _checkout(user, [_line(variant)])
    handle_payment_success(order_id=order.id, transaction_id="pay")

    order = record_refund(order_id=order.id, amount=Decimal("400.00"))
    assert order.payment_status == PaymentStatus.PARTIALLY_REFUNDED
    with pytest.raises(InvalidState):
        record_refund(order_id=order.id, amount=Decimal("700.00"))
    order = record_refund(order_id=order.id, amount=Decimal("600.00"))
    assert order.payment_status == PaymentStatus.REFUNDED
    assert order.refund_amount == Decimal("1000.00")
    assert order.is_paid


@pytest.mark.django_db
def test_refund_requires_completed_payment():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])
    with pytest.raises(InvalidState):
        record_refund(order_id=order.id, amount=Decimal("1.00"))


@pytest.mark.django_db
def test_history_is_append_only():
    user = UserFactory()
    order = _checkout(user, [_line(ProductVariantFactory())])
    entry = order.history.get()

    with pytest.raises(TypeError):
        entry.save()
    with pytest.raises(TypeError):
        entry.delete()
    with pytest.raises(TypeError):
        OrderHistory.objects.filter(order=order).update(notes="x")


@pytest.mark.django_db
def test_cart_of_deleted_products_cannot_be_ordered():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=2)
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)
    line = _line(variant)
    variant.product.delete()

    with pytest.raises(EmptyOrder):
        _checkout(user, [line])

    cart = Cart.objects.get(user=user)
    assert [(i.product_id, i.quantity) for i in cart.items.all()] == [(line["product_id"], 1)]
    assert cart.total_items == 1
