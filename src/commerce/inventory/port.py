"""Inventory reservation port.

Checkout reserves stock for every cart line before a payment session is
created; cancellation and failed payments release the reservation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


class InsufficientStock(Exception):
    """Raised by adapters when one or more lines cannot be reserved."""

    def __init__(self, skus: list[str]) -> None:
        super().__init__(f"insufficient stock for {', '.join(skus)}")
        self.skus = skus


@dataclass(frozen=True)
class ReservationLine:
    sku: str
    product_id: str
    quantity: int


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    expires_at: datetime
    lines: tuple[ReservationLine, ...] = field(default_factory=tuple)


class InventoryReservations(ABC):
    @abstractmethod
    def reserve(
        self,
        lines: list[ReservationLine],
        ttl_seconds: int,
        idempotency_key: str,
        timeout: float,
    ) -> Reservation:
        """Hold stock for ``lines``; raise InsufficientStock if any line is short."""
        ...

    @abstractmethod
    def release(self, reservation_id: str, reason: str, timeout: float) -> None:
        """Release a reservation. Releasing an unknown or released reservation is a no-op."""
        ...
