from decimal import Decimal
from io import StringIO

import pytest
from catalog.models import Product, ProductVariant, validate_gemstones, validate_metals
from catalog.selectors import resolve_unit, validate_unit
from catalog.services import decrement_stock, restore_stock
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.exceptions import InsufficientStock, NotFound, Unavailable
from django.core.exceptions import ValidationError
from django.core.management import call_command
from pricing.models import MetalPrice


@pytest.mark.django_db
def test_variant_unit_uses_variant_stock_and_price():
    variant = ProductVariantFactory(stock_quantity=3, total_price=Decimal("999.00"))
    unit = resolve_unit(product_id=variant.product.product_id, variant_id=variant.variant_id)
    assert unit.variant == variant
    assert unit.stock_quantity == 3
    assert unit.unit_price == Decimal("999.00")


@pytest.mark.django_db
def test_product_without_variants_is_its_own_unit():
    product = ProductFactory(stock_quantity=7)
    unit = resolve_unit(product_id=product.product_id, variant_id=product.product_id)
    assert unit.variant is None
    assert unit.variant_id == product.product_id
    assert unit.stock_quantity == 7


@pytest.mark.django_db
def test_product_with_variants_rejects_own_id_as_variant():
    variant = ProductVariantFactory()
    with pytest.raises(NotFound):
        resolve_unit(product_id=variant.product.product_id, variant_id=variant.product.product_id)


@pytest.mark.django_db
def test_validate_unit_errors():
    with pytest.raises(NotFound):
        validate_unit(product_id="missing", variant_id="missing", quantity=1)
    product = ProductFactory(is_active=False)
    with pytest.raises(Unavailable):
        validate_unit(product_id=product.product_id, variant_id=product.product_id, quantity=1)
    product = ProductFactory(stock_quantity=1)
    with pytest.raises(InsufficientStock):
        validate_unit(product_id=product.product_id, variant_id=product.product_id, quantity=2)


@pytest.mark.django_db
def test_decrement_is_conditional_and_restore_returns_units():
    variant = ProductVariantFactory(stock_quantity=2)
    pid, vid = variant.product.product_id, variant.variant_id

    assert decrement_stock(product_id=pid, variant_id=vid, quantity=2)
    assert not decrement_stock(product_id=pid, variant_id=vid, quantity=1)
    assert ProductVariant.objects.get(pk=variant.pk).stock_quantity == 0

    assert restore_stock(product_id=pid, variant_id=vid, quantity=2)
    assert ProductVariant.objects.get(pk=variant.pk).stock_quantity == 2
    assert not restore_stock(product_id="gone", variant_id=None, quantity=1)


def test_composition_validators():
    validate_metals([{"type": "Gold", "purity": "22K", "weight": 5}])
    with pytest.raises(ValidationError):
        validate_metals([{"type": "Gold"}])
    with pytest.raises(ValidationError):
        validate_metals([{"type": "Gold", "purity": "22K", "weight": -1}])
    validate_gemstones([{"type": "Diamond", "price": 1000, "count": 2}])
    validate_gemstones([{"type": "Diamond", "price": 1000}])
    with pytest.raises(ValidationError):
        validate_gemstones([{"type": "Diamond", "price": 1000, "count": -1}])


@pytest.mark.django_db
def test_seed_catalog_is_idempotent_and_prices_products():
    call_command("seed_catalog", stdout=StringIO())
    call_command("seed_catalog", stdout=StringIO())

    assert MetalPrice.objects.count() == 5
    assert Product.objects.count() == 3
    anklet = Product.objects.get(name="Lotus Silver Anklet")
    # 18.5g x 95 + 800 making, plus 3%
    assert anklet.total_price == Decimal("2634")
    ring = Product.objects.get(name="Aurora Solitaire Ring")
    assert ring.variants.count() == 3
