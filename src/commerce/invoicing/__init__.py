"""Invoice dispatcher factory."""

from commerce.invoicing.fake_adapter import FakeInvoiceDispatcher
from commerce.invoicing.port import InvoiceDispatcher

_current_dispatcher: InvoiceDispatcher | None = None


def get_invoice_dispatcher() -> InvoiceDispatcher:
    """Return the current invoice dispatcher. Defaults to FakeInvoiceDispatcher."""
    global _current_dispatcher
    if _current_dispatcher is None:
        _current_dispatcher = FakeInvoiceDispatcher()
    return _current_dispatcher


def set_invoice_dispatcher(dispatcher: InvoiceDispatcher) -> None:
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_invoice_dispatcher() -> None:
    global _current_dispatcher
    _current_dispatcher = None
