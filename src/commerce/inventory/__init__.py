"""Inventory reservation factory.

Provides get_inventory() / set_inventory() to swap implementations.
"""

from commerce.inventory.fake_adapter import FakeInventory
from commerce.inventory.port import InventoryReservations

_current_inventory: InventoryReservations | None = None


def get_inventory() -> InventoryReservations:
    """Return the current inventory adapter. Defaults to FakeInventory."""
    global _current_inventory
    if _current_inventory is None:
        _current_inventory = FakeInventory()
    return _current_inventory


def set_inventory(inventory: InventoryReservations) -> None:
    """Override the active inventory adapter (useful for tests)."""
    global _current_inventory
    _current_inventory = inventory


def reset_inventory() -> None:
    """Reset to default inventory adapter."""
    global _current_inventory
    _current_inventory = None
