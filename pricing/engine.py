"""Pricing engine: turns a product or variant definition into a cost breakdown.

Pure computation over caller-provided data plus a reference price source.
Nothing here touches the database directly or caches results; callers
decide whether to persist `rounded_total`.

Missing reference prices contribute zero instead of raising, so incomplete
reference data never blocks checkout. Each gap is logged for operators.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Protocol, Tuple

from common.deadlines import Deadline

logger = logging.getLogger("luxejewels.pricing")

DEFAULT_TAX_PERCENT = Decimal("3")
ZERO = Decimal("0")


class ReferencePriceSource(Protocol):
    """Read-only access to current price-per-gram by metal type and purity."""

    def lookup(self, metal_type: str, purity: str) -> Optional[Decimal]: ...


@dataclass(frozen=True)
class PriceBreakdown:
    unit_id: str
    name: str
    metal_costs: Decimal
    gemstone_costs: Decimal
    making_charges: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    rounded_total: Decimal
    missing_references: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def as_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "name": self.name,
            "metal_costs": self.metal_costs,
            "gemstone_costs": self.gemstone_costs,
            "making_charges": self.making_charges,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "rounded_total": self.rounded_total,
        }


def _decimal(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Decimal) -> Decimal:
    """Round to the nearest whole currency unit, halves away from zero."""

    return _decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def metal_cost(
    metals: Iterable[dict], source: ReferencePriceSource, deadline: Optional[Deadline] = None
) -> Tuple[Decimal, Tuple[Tuple[str, str], ...]]:
    """Sum weight x price-per-gram over metal components.

    Returns the cost and the (type, purity) pairs that had no reference price.
    """

    total = ZERO
    missing = []
    for metal in metals or []:
        # Variant metal entries written by older admin forms use "Type"
        metal_type = metal.get("type") or metal.get("Type")
        purity = metal.get("purity") or ""
        if not metal_type:
            continue
        if deadline is not None:
            deadline.check("reference price lookup")
        price_per_gram = source.lookup(metal_type, purity)
        if price_per_gram is None:
            missing.append((metal_type, purity))
            logger.warning(
                "pricing.reference_price_missing",
                extra={"event": "pricing.reference_price_missing", "metal": metal_type, "purity": purity},
            )
            continue
        total += _decimal(metal.get("weight")) * _decimal(price_per_gram)
    return total, tuple(missing)


def gemstone_cost(gemstones: Iterable[dict]) -> Decimal:
    """Sum caller-supplied unit price x count over gemstone entries; a missing count is zero."""

    total = ZERO
    for stone in gemstones or []:
        total += _decimal(stone.get("price")) * _decimal(stone.get("count", 0))
    return total


def compute_breakdown(
    *,
    unit_id: str,
    metals: Iterable[dict],
    making_price,
    source: ReferencePriceSource,
    name: str = "",
    gemstones: Iterable[dict] = (),
    gemstone_costs: Optional[Decimal] = None,
    tax_percent=None,
    deadline: Optional[Deadline] = None,
) -> PriceBreakdown:
    """Price one unit.

    `gemstone_costs` short-circuits the gemstone sum so variants can inherit
    the parent product's stones.
    """

    percent = DEFAULT_TAX_PERCENT if tax_percent is None else _decimal(tax_percent)
    metals_total, missing = metal_cost(metals, source, deadline)
    stones_total = gemstone_cost(gemstones) if gemstone_costs is None else _decimal(gemstone_costs)
    making = _decimal(making_price)

    subtotal = metals_total + stones_total + making
    tax = subtotal * percent / Decimal("100")
    total = subtotal + tax
    return PriceBreakdown(
        unit_id=str(unit_id),
        name=name,
        metal_costs=metals_total,
        gemstone_costs=stones_total,
        making_charges=making,
        subtotal=subtotal,
        tax=tax,
        total=total,
        rounded_total=round_half_up(total),
        missing_references=missing,
    )


def price_product(
    product, *, source: ReferencePriceSource, tax_percent=None, deadline: Optional[Deadline] = None
) -> List[PriceBreakdown]:
    """Price every purchasable unit of a product.

    One breakdown per variant when the product has variants (each inherits
    the product's gemstone cost), otherwise a single breakdown keyed by the
    product's own identifier.
    """

    variants = list(product.variants.all())
    if not variants:
        return [
            compute_breakdown(
                unit_id=product.product_id,
                name=product.name,
                metals=product.metals,
                gemstones=product.gemstones,
                making_price=product.making_price,
                source=source,
                tax_percent=tax_percent,
                deadline=deadline,
            )
        ]

    stones = gemstone_cost(product.gemstones)
    return [
        compute_breakdown(
            unit_id=variant.variant_id,
            name=variant.name,
            metals=variant.metals,
            gemstone_costs=stones,
            making_price=variant.making_price,
            source=source,
            tax_percent=tax_percent,
            deadline=deadline,
        )
        for variant in variants
    ]
