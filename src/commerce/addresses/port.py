"""Address book port.

Carts and orders hold address references; the address book resolves a
reference for a given user into a postal address used for shipping quotes,
tax and order snapshots.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Address:
    """A resolved postal address."""

    address_id: str
    recipient: str
    line1: str
    city: str
    postal_code: str
    country: str
    line2: str | None = None
    region: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict:
        return {
            "address_id": self.address_id,
            "recipient": self.recipient,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "region": self.region,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }


class AddressBook(ABC):
    @abstractmethod
    def get(self, user_id: str, address_id: str, timeout: float) -> Address | None:
        """Return the user's address, or None when the user has no such address."""
        ...
