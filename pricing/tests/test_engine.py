from decimal import Decimal

import pytest
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.deadlines import Deadline
from common.exceptions import OperationTimeout
from pricing.engine import compute_breakdown, gemstone_cost, price_product, round_half_up
from pricing.selectors import StaticReferencePrices

PRICES = StaticReferencePrices({("Gold", "22K"): "5000", ("Silver", "925"): "80"})


def test_single_metal_breakdown():
    b = compute_breakdown(
        unit_id="u1",
        metals=[{"type": "Gold", "purity": "22K", "weight": 5.0}],
        making_price=Decimal("1000"),
        source=PRICES,
        tax_percent=3,
    )
    assert b.metal_costs == Decimal("25000")
    assert b.subtotal == Decimal("26000")
    assert b.tax == Decimal("780")
    assert b.total == Decimal("26780")
    assert b.rounded_total == Decimal("26780")


def test_two_metals_round_half_up():
    b = compute_breakdown(
        unit_id="u2",
        metals=[
            {"type": "Gold", "purity": "22K", "weight": 2.0},
            {"type": "Silver", "purity": "925", "weight": 3.0},
        ],
        making_price=Decimal("500"),
        source=PRICES,
        tax_percent=3,
    )
    assert b.subtotal == Decimal("10740")
    assert b.tax == Decimal("322.2")
    assert b.rounded_total == Decimal("11062")


def test_missing_reference_price_contributes_zero():
    b = compute_breakdown(
        unit_id="u3",
        metals=[
            {"type": "Gold", "purity": "22K", "weight": 1.0},
            {"type": "Platinum", "purity": "950", "weight": 4.0},
        ],
        making_price=0,
        source=PRICES,
        tax_percent=0,
    )
    assert b.metal_costs == Decimal("5000")
    assert b.missing_references == (("Platinum", "950"),)


def test_gemstones_summed_by_count():
    stones = [{"type": "Diamond", "price": "1500", "count": 4}, {"type": "Ruby", "price": "800", "count": 1}]
    assert gemstone_cost(stones) == Decimal("6800")


def test_gemstone_without_count_costs_nothing():
    assert gemstone_cost([{"type": "Diamond", "price": 1000}]) == Decimal("0")


def test_round_half_up_rounds_halves_away_from_zero():
    assert round_half_up(Decimal("10.5")) == Decimal("11")
    assert round_half_up(Decimal("10.49")) == Decimal("10")


def test_expired_deadline_aborts_lookup():
    deadline = Deadline(0)
    with pytest.raises(OperationTimeout):
        compute_breakdown(
            unit_id="u4",
            metals=[{"type": "Gold", "purity": "22K", "weight": 1.0}],
            making_price=0,
            source=PRICES,
            deadline=deadline,
        )


@pytest.mark.django_db
def test_price_product_without_variants_uses_product_id():
    product = ProductFactory(gemstones=[{"type": "Diamond", "price": "1000", "count": 1}])
    [b] = price_product(product, source=PRICES, tax_percent=0)
    assert b.unit_id == product.product_id
    assert b.total == Decimal("27000")


@pytest.mark.django_db
def test_variants_inherit_product_gemstones():
    product = ProductFactory(stock_quantity=0, gemstones=[{"type": "Diamond", "price": "1000", "count": 2}])
    v1 = ProductVariantFactory(product=product, metals=[{"Type": "Gold", "purity": "22K", "weight": 2.0}])
    v2 = ProductVariantFactory(product=product, making_price=Decimal("0"), metals=[])

    breakdowns = {b.unit_id: b for b in price_product(product, source=PRICES, tax_percent=0)}
    assert set(breakdowns) == {v1.variant_id, v2.variant_id}
    assert breakdowns[v1.variant_id].gemstone_costs == Decimal("2000")
    assert breakdowns[v1.variant_id].total == Decimal("12500")
    assert breakdowns[v2.variant_id].total == Decimal("2000")
