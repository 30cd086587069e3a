"""Configurable fake tax and shipping services for development and testing."""

from commerce.addresses.port import Address
from commerce.rates.port import ShippingRateService, ShippingRequest, TaxCalculator


class FlatRateTaxCalculator(TaxCalculator):
    """Taxes the taxable amount at a flat rate in basis points, rounding down."""

    def __init__(self, rate_bps: int = 1000) -> None:
        self.rate_bps = rate_bps
        self.error: Exception | None = None
        self.calls: list[dict] = []

    def fail_with(self, error: Exception | None) -> None:
        self.error = error

    def compute(self, taxable_amount: int, address: Address | None, currency: str, timeout: float) -> int:
        self.calls.append(
            {
                "method": "compute",
                "taxable_amount": taxable_amount,
                "address_id": address.address_id if address else None,
                "currency": currency,
                "timeout": timeout,
            }
        )
        if self.error is not None:
            raise self.error
        return max(taxable_amount, 0) * self.rate_bps // 10_000


class FlatShippingRates(ShippingRateService):
    """Charges one flat amount per shipment, optionally free above a threshold."""

    def __init__(self, amount: int = 800, free_over: int | None = None) -> None:
        self.amount = amount
        self.free_over = free_over
        self.unresolved_countries: set[str] = set()
        self.error: Exception | None = None
        self.calls: list[dict] = []

    def fail_with(self, error: Exception | None) -> None:
        self.error = error

    def quote(self, request: ShippingRequest, timeout: float) -> int | None:
        self.calls.append(
            {
                "method": "quote",
                "country": request.address.country,
                "postal_code": request.address.postal_code,
                "subtotal": request.subtotal,
                "timeout": timeout,
            }
        )
        if self.error is not None:
            raise self.error
        if request.address.country.upper() in self.unresolved_countries:
            return None
        if self.free_over is not None and request.subtotal - request.discount >= self.free_over:
            return 0
        return self.amount
