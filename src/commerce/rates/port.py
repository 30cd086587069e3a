"""Tax and shipping rate ports.

Both are external collaborators; the pricing engine only consumes amounts in
minor units. Implementations must honour ``timeout`` (seconds) and raise
rather than block past it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from commerce.addresses.port import Address


@dataclass(frozen=True)
class RateLine:
    """One cart line as seen by rate services."""

    item_id: str
    product_id: str
    sku: str
    quantity: int
    unit_price: int
    weight_grams: int = 0
    requires_shipping: bool = True


@dataclass(frozen=True)
class ShippingRequest:
    lines: tuple[RateLine, ...]
    address: Address
    currency: str
    subtotal: int
    discount: int
    promotion_code: str | None = None

    @property
    def weight_grams(self) -> int:
        return sum(line.weight_grams * line.quantity for line in self.lines)


class TaxCalculator(ABC):
    @abstractmethod
    def compute(self, taxable_amount: int, address: Address | None, currency: str, timeout: float) -> int:
        """Return tax in minor units for ``taxable_amount`` (subtotal less discount)."""
        ...


class ShippingRateService(ABC):
    @abstractmethod
    def quote(self, request: ShippingRequest, timeout: float) -> int | None:
        """Return shipping cost in minor units, or None when no rate applies."""
        ...
