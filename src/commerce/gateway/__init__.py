"""Payment provider factory.

Provides get_payment_provider() / set_payment_provider() to swap
implementations. Only the fake provider ships with the core; real provider
SDK adapters are installed by the deployment through set_payment_provider().
"""

from commerce.gateway.fake_adapter import FakePaymentProvider
from commerce.gateway.port import PaymentProvider

_current_provider: PaymentProvider | None = None


def get_payment_provider() -> PaymentProvider:
    """Return the current payment provider. Defaults to FakePaymentProvider."""
    global _current_provider
    if _current_provider is None:
        _current_provider = FakePaymentProvider()
    return _current_provider


def set_payment_provider(provider: PaymentProvider) -> None:
    """Override the active payment provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_payment_provider() -> None:
    """Reset to default payment provider."""
    global _current_provider
    _current_provider = None
