"""Pricing calculator: pure arithmetic over priced lines.

Stages always run in the same order: subtotal, discount, tax, shipping,
total. Collaborator lookups (promotion, tax, shipping) happen before this
module is called; it only composes their amounts and apportions them to
lines so that the per-line totals add up to the cart total exactly.
"""

from dataclasses import dataclass, field

from commerce.errors import InvalidInputError
from commerce.shared.money import apportion

DISCOUNT_TYPE_PROMOTION = "promotion"
DISCOUNT_SOURCE_PROMOTION = "promotion_service"


@dataclass(frozen=True)
class PricedLine:
    item_id: str
    product_id: str
    sku: str
    quantity: int
    unit_price: int
    requires_shipping: bool = True

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class DiscountBreakdown:
    type: str
    amount: int
    code: str | None = None
    source: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ItemPricingBreakdown:
    item_id: str
    sku: str
    quantity: int
    unit_price: int
    subtotal: int
    discount: int
    tax: int
    shipping: int
    total: int

    def to_estimates(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
        }


@dataclass(frozen=True)
class PricingBreakdown:
    subtotal: int
    discount: int
    tax: int
    shipping: int
    total: int
    items: tuple[ItemPricingBreakdown, ...] = ()
    discounts: tuple[DiscountBreakdown, ...] = ()
    metadata: dict = field(default_factory=dict)


def validate_lines(lines: list[PricedLine]) -> None:
    for line in lines:
        if line.quantity is None or line.quantity <= 0:
            raise InvalidInputError(
                f"quantity must be greater than zero for {line.sku}", code="invalid_quantity"
            )
        if line.unit_price is None or line.unit_price < 0:
            raise InvalidInputError(f"unit price must not be negative for {line.sku}", code="invalid_unit_price")


def subtotal_of(lines: list[PricedLine]) -> int:
    validate_lines(lines)
    return sum(line.subtotal for line in lines)


def clamp_discount(discount: int, subtotal: int) -> int:
    return max(0, min(discount, subtotal))


def compose(
    lines: list[PricedLine],
    discount: int = 0,
    tax: int = 0,
    shipping: int = 0,
    discounts: tuple[DiscountBreakdown, ...] = (),
) -> PricingBreakdown:
    """Combine stage amounts into a breakdown whose line totals sum to ``total``.

    Discount and tax are apportioned by line subtotal across all lines;
    shipping only across lines that ship. Each share is floored and the
    remainder goes to the last line in ascending item-ID order. A line never
    receives more discount than its subtotal; the excess moves to the
    preceding lines.
    """
    subtotal = subtotal_of(lines)
    discount = clamp_discount(discount, subtotal)
    tax = max(0, tax)
    shipping = max(0, shipping)
    total = max(0, subtotal - discount + tax + shipping)

    ordered = sorted(lines, key=lambda line: line.item_id)
    weights = [line.subtotal for line in ordered]
    discount_shares = _cap_shares(apportion(discount, weights), weights)
    tax_shares = apportion(tax, weights)

    shipped = [line for line in ordered if line.requires_shipping]
    shipping_by_item = {}
    if shipped:
        shares = apportion(shipping, [line.subtotal for line in shipped])
        shipping_by_item = {line.item_id: share for line, share in zip(shipped, shares, strict=True)}
    elif ordered and shipping:
        # Shipping charged on a cart that ships nothing still has to land somewhere
        shares = apportion(shipping, weights)
        shipping_by_item = {line.item_id: share for line, share in zip(ordered, shares, strict=True)}

    by_item = {}
    for line, line_discount, line_tax in zip(ordered, discount_shares, tax_shares, strict=True):
        line_shipping = shipping_by_item.get(line.item_id, 0)
        by_item[line.item_id] = ItemPricingBreakdown(
            item_id=line.item_id,
            sku=line.sku,
            quantity=line.quantity,
            unit_price=line.unit_price,
            subtotal=line.subtotal,
            discount=line_discount,
            tax=line_tax,
            shipping=line_shipping,
            total=line.subtotal - line_discount + line_tax + line_shipping,
        )

    return PricingBreakdown(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping=shipping,
        total=total,
        items=tuple(by_item[line.item_id] for line in lines),
        discounts=tuple(d for d in discounts if d.amount > 0),
        metadata={"net_subtotal": subtotal - discount},
    )


def _cap_shares(shares: list[int], caps: list[int]) -> list[int]:
    capped = list(shares)
    carry = 0
    for index in range(len(capped) - 1, -1, -1):
        share = capped[index] + carry
        carry = max(0, share - caps[index])
        capped[index] = share - carry
    return capped
