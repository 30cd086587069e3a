"""Address book factory.

Provides get_address_book() / set_address_book() to swap implementations.
"""

from commerce.addresses.fake_adapter import InMemoryAddressBook
from commerce.addresses.port import AddressBook

_current_address_book: AddressBook | None = None


def get_address_book() -> AddressBook:
    """Return the current address book. Defaults to InMemoryAddressBook."""
    global _current_address_book
    if _current_address_book is None:
        _current_address_book = InMemoryAddressBook()
    return _current_address_book


def set_address_book(address_book: AddressBook) -> None:
    """Override the active address book (useful for tests)."""
    global _current_address_book
    _current_address_book = address_book


def reset_address_book() -> None:
    """Reset to default address book."""
    global _current_address_book
    _current_address_book = None
