from decimal import Decimal

import pytest
from cart.models import Cart
from cart.services import (
    add_item,
    cleanup_cart,
    clear_cart,
    empty_cart_after_payment,
    get_or_create_cart,
    refresh_cart_prices,
    update_item,
)
from cart.tests.factories import AdminUserFactory, UserFactory
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.exceptions import Conflict, InsufficientStock, InvalidQuantity, NotFound, Unavailable


@pytest.mark.django_db
def test_add_item_snapshots_price_and_recomputes_totals():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, total_price=Decimal("52000.00"))

    cart = add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=2)

    [item] = cart.items.all()
    assert item.price_at_purchase == Decimal("52000.00")
    assert item.name == f"{variant.product.name} - {variant.name}"
    assert cart.total_items == 2
    assert cart.total_amount == Decimal("104000.00")
    assert cart.version == 1


@pytest.mark.django_db
def test_adding_same_unit_merges_and_keeps_original_price():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, total_price=Decimal("100.00"))
    pid, vid = variant.product.product_id, variant.variant_id

    add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=1)
    variant.total_price = Decimal("150.00")
    variant.save(update_fields=["total_price"])
    cart = add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=2)

    [item] = cart.items.all()
    assert item.quantity == 3
    assert item.price_at_purchase == Decimal("100.00")
    assert cart.total_amount == Decimal("300.00")


@pytest.mark.django_db
def test_merged_quantity_is_checked_against_stock_and_cart_left_unchanged():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=3)
    pid, vid = variant.product.product_id, variant.variant_id
    add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=2)

    with pytest.raises(InsufficientStock) as exc:
        add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=2)

    assert exc.value.available == 3
    assert exc.value.requested == 4
    cart = Cart.objects.get(user=user)
    assert cart.total_items == 2
    assert cart.version == 1
    assert cart.items.get().quantity == 2


@pytest.mark.django_db
def test_product_without_variants_is_addressed_by_its_own_id():
    user = UserFactory()
    product = ProductFactory(stock_quantity=4)

    cart = add_item(user_id=user.id, product_id=product.product_id, variant_id=product.product_id, quantity=1)
    assert cart.total_items == 1

    with pytest.raises(NotFound):
        add_item(user_id=user.id, product_id=product.product_id, variant_id="var_other", quantity=1)


@pytest.mark.django_db
def test_unknown_variant_and_inactive_product_rejected():
    user = UserFactory()
    variant = ProductVariantFactory()
    with pytest.raises(NotFound):
        add_item(user_id=user.id, product_id=variant.product.product_id, variant_id="var_missing", quantity=1)

    variant.product.is_active = False
    variant.product.save(update_fields=["is_active"])
    with pytest.raises(Unavailable):
        add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)


@pytest.mark.django_db
def test_admin_cannot_use_cart():
    admin = AdminUserFactory()
    variant = ProductVariantFactory()
    with pytest.raises(Unavailable) as exc:
        add_item(user_id=admin.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)
    assert exc.value.status_code == 403
    assert not Cart.objects.filter(user=admin).exists()


@pytest.mark.django_db
def test_unknown_user_is_not_found():
    with pytest.raises(NotFound):
        get_or_create_cart(user_id=999999)


@pytest.mark.django_db
def test_invalid_quantity_rejected():
    user = UserFactory()
    variant = ProductVariantFactory()
    with pytest.raises(InvalidQuantity):
        add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=0)


@pytest.mark.django_db
def test_stale_expected_version_conflicts():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=10)
    pid, vid = variant.product.product_id, variant.variant_id
    cart = add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=1, expected_version=0)
    assert cart.version == 1

    with pytest.raises(Conflict):
        add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=1, expected_version=0)
    assert Cart.objects.get(user=user).total_items == 1


@pytest.mark.django_db
def test_update_item_overwrites_quantity_and_zero_removes():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=10, total_price=Decimal("10.00"))
    pid, vid = variant.product.product_id, variant.variant_id
    add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=1)

    cart = update_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=4)
    assert cart.total_items == 4
    assert cart.total_amount == Decimal("40.00")

    with pytest.raises(InsufficientStock):
        update_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=11)

    cart = update_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=0)
    assert cart.items.count() == 0
    assert cart.total_items == 0
    assert cart.total_amount == Decimal("0.00")


@pytest.mark.django_db
def test_update_missing_line_is_not_found():
    user = UserFactory()
    variant = ProductVariantFactory()
    with pytest.raises(NotFound) as exc:
        update_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=1)
    assert exc.value.message == "Item not found in cart"


@pytest.mark.django_db
def test_clear_cart_keeps_cart():
    user = UserFactory()
    variant = ProductVariantFactory()
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=2)

    cart = clear_cart(user_id=user.id)

    assert Cart.objects.filter(pk=cart.pk).exists()
    assert cart.items.count() == 0
    assert cart.total_items == 0


@pytest.mark.django_db
def test_cleanup_drops_only_invalid_lines():
    user = UserFactory()
    keep = ProductVariantFactory(stock_quantity=5)
    short = ProductVariantFactory(stock_quantity=5)
    gone = ProductFactory(stock_quantity=5)
    for pid, vid in (
        (keep.product.product_id, keep.variant_id),
        (short.product.product_id, short.variant_id),
        (gone.product_id, gone.product_id),
    ):
        add_item(user_id=user.id, product_id=pid, variant_id=vid, quantity=2)

    short.stock_quantity = 1
    short.save(update_fields=["stock_quantity"])
    gone.delete()

    cart = cleanup_cart(user_id=user.id)

    assert [i.variant_id for i in cart.items.all()] == [keep.variant_id]
    assert cart.total_items == 2


@pytest.mark.django_db
def test_refresh_cart_prices_resnapshots_lines():
    user = UserFactory()
    variant = ProductVariantFactory(stock_quantity=5, total_price=Decimal("100.00"))
    add_item(user_id=user.id, product_id=variant.product.product_id, variant_id=variant.variant_id, quantity=2)
    variant.total_price = Decimal("120.00")
    variant.save(update_fields=["total_price"])

    cart = refresh_cart_prices(user_id=user.id)

    assert cart.items.get().price_at_purchase == Decimal("120.00")
    assert cart.total_amount == Decimal("240.00")


@pytest.mark.django_db
def test_empty_cart_after_payment_without_cart_is_noop():
    user = UserFactory()
    empty_cart_after_payment(user_id=user.id)
    assert not Cart.objects.filter(user=user).exists()
