"""In-memory address book for development and testing."""

from commerce.addresses.port import Address, AddressBook


class InMemoryAddressBook(AddressBook):
    def __init__(self) -> None:
        self._addresses: dict[tuple[str, str], Address] = {}
        self.calls: list[dict] = []

    def register(self, user_id: str, address: Address) -> Address:
        self._addresses[(user_id, address.address_id)] = address
        return address

    def get(self, user_id: str, address_id: str, timeout: float) -> Address | None:
        self.calls.append({"method": "get", "user_id": user_id, "address_id": address_id, "timeout": timeout})
        return self._addresses.get((user_id, address_id))
