"""Tax calculator and shipping rate factories.

Provides get_/set_/reset_ pairs so tests and deployments can swap the
adapters without touching cart code. Defaults are the flat-rate fakes,
configured from settings.
"""

from commerce.rates.fake_adapter import FlatRateTaxCalculator, FlatShippingRates
from commerce.rates.port import ShippingRateService, TaxCalculator
from commerce.settings import get_settings

_current_tax_calculator: TaxCalculator | None = None
_current_shipping_rates: ShippingRateService | None = None


def get_tax_calculator() -> TaxCalculator:
    global _current_tax_calculator
    if _current_tax_calculator is None:
        _current_tax_calculator = FlatRateTaxCalculator(rate_bps=get_settings().tax_rate_bps)
    return _current_tax_calculator


def set_tax_calculator(calculator: TaxCalculator) -> None:
    global _current_tax_calculator
    _current_tax_calculator = calculator


def reset_tax_calculator() -> None:
    global _current_tax_calculator
    _current_tax_calculator = None


def get_shipping_rates() -> ShippingRateService:
    global _current_shipping_rates
    if _current_shipping_rates is None:
        _current_shipping_rates = FlatShippingRates(amount=get_settings().flat_shipping)
    return _current_shipping_rates


def set_shipping_rates(service: ShippingRateService) -> None:
    global _current_shipping_rates
    _current_shipping_rates = service


def reset_shipping_rates() -> None:
    global _current_shipping_rates
    _current_shipping_rates = None
