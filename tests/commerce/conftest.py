from datetime import timedelta

import pytest
from protean.integrations.pytest import DomainFixture

from commerce.addresses import reset_address_book, set_address_book
from commerce.addresses.fake_adapter import InMemoryAddressBook
from commerce.addresses.port import Address
from commerce.cart.quotes import reset_quote_cache
from commerce.gateway import reset_payment_provider, set_payment_provider
from commerce.gateway.fake_adapter import FakePaymentProvider
from commerce.inventory import reset_inventory, set_inventory
from commerce.inventory.fake_adapter import FakeInventory
from commerce.invoicing import reset_invoice_dispatcher, set_invoice_dispatcher
from commerce.invoicing.fake_adapter import FakeInvoiceDispatcher
from commerce.rates import (
    reset_shipping_rates,
    reset_tax_calculator,
    set_shipping_rates,
    set_tax_calculator,
)
from commerce.rates.fake_adapter import FlatRateTaxCalculator, FlatShippingRates
from commerce.settings import reset_settings
from commerce.shared.clock import utc_now

USER_ID = "user-001"
OTHER_USER_ID = "user-002"

TOKYO = Address(
    address_id="addr-tokyo",
    recipient="Hanako Yamada",
    line1="1-2-3 Jingumae",
    city="Shibuya-ku",
    region="Tokyo",
    postal_code="150-0001",
    country="JP",
)
OSAKA = Address(
    address_id="addr-osaka",
    recipient="Hanako Yamada",
    line1="4-5-6 Umeda",
    city="Kita-ku",
    region="Osaka",
    postal_code="530-0001",
    country="JP",
)


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Reset storage, event store and collaborator wiring after every test."""
    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()

    reset_address_book()
    reset_tax_calculator()
    reset_shipping_rates()
    reset_inventory()
    reset_invoice_dispatcher()
    reset_payment_provider()
    reset_quote_cache()
    reset_settings()


@pytest.fixture
def address_book():
    book = InMemoryAddressBook()
    book.register(USER_ID, TOKYO)
    book.register(USER_ID, OSAKA)
    set_address_book(book)
    return book


@pytest.fixture
def tax():
    calculator = FlatRateTaxCalculator(rate_bps=1000)
    set_tax_calculator(calculator)
    return calculator


@pytest.fixture
def shipping():
    rates = FlatShippingRates(amount=800)
    set_shipping_rates(rates)
    return rates


@pytest.fixture
def inventory():
    fake = FakeInventory()
    set_inventory(fake)
    return fake


@pytest.fixture
def invoices():
    dispatcher = FakeInvoiceDispatcher()
    set_invoice_dispatcher(dispatcher)
    return dispatcher


@pytest.fixture
def provider():
    fake = FakePaymentProvider()
    set_payment_provider(fake)
    return fake


@pytest.fixture
def collaborators(address_book, tax, shipping, inventory, invoices, provider):
    """Every collaborator replaced by a recording fake."""
    return {
        "address_book": address_book,
        "tax": tax,
        "shipping": shipping,
        "inventory": inventory,
        "invoices": invoices,
        "provider": provider,
    }


@pytest.fixture
def save20():
    """A fixed 200 JPY promotion, active since yesterday."""
    from protean import current_domain

    from commerce.promotion.promotion import DiscountKind, Promotion

    promotion = Promotion.create(
        code="SAVE20",
        kind=DiscountKind.FIXED,
        value=200,
        currency="JPY",
        description="200 yen off",
        starts_at=utc_now() - timedelta(days=1),
    )
    current_domain.repository_for(Promotion).add(promotion)
    return promotion
