"""In-memory inventory reservations for development and testing."""

from datetime import timedelta
from uuid import uuid4

from commerce.inventory.port import (
    InsufficientStock,
    InventoryReservations,
    Reservation,
    ReservationLine,
)
from commerce.shared.clock import utc_now


class FakeInventory(InventoryReservations):
    """Tracks stock per SKU. SKUs without a stock level are unlimited."""

    def __init__(self) -> None:
        self.stock: dict[str, int] = {}
        self.reservations: dict[str, Reservation] = {}
        self.released: list[str] = []
        self.error: Exception | None = None
        self.calls: list[dict] = []

    def set_stock(self, sku: str, quantity: int) -> None:
        self.stock[sku] = quantity

    def fail_with(self, error: Exception | None) -> None:
        self.error = error

    def reserve(
        self,
        lines: list[ReservationLine],
        ttl_seconds: int,
        idempotency_key: str,
        timeout: float,
    ) -> Reservation:
        self.calls.append(
            {
                "method": "reserve",
                "lines": list(lines),
                "ttl_seconds": ttl_seconds,
                "idempotency_key": idempotency_key,
                "timeout": timeout,
            }
        )
        if self.error is not None:
            raise self.error

        short = [line.sku for line in lines if line.sku in self.stock and self.stock[line.sku] < line.quantity]
        if short:
            raise InsufficientStock(short)

        for line in lines:
            if line.sku in self.stock:
                self.stock[line.sku] -= line.quantity

        reservation = Reservation(
            reservation_id=f"res_{uuid4().hex[:16]}",
            expires_at=utc_now() + timedelta(seconds=ttl_seconds),
            lines=tuple(lines),
        )
        self.reservations[reservation.reservation_id] = reservation
        return reservation

    def release(self, reservation_id: str, reason: str, timeout: float) -> None:
        self.calls.append(
            {"method": "release", "reservation_id": reservation_id, "reason": reason, "timeout": timeout}
        )
        if self.error is not None:
            raise self.error

        reservation = self.reservations.pop(reservation_id, None)
        if reservation is None:
            return
        for line in reservation.lines:
            if line.sku in self.stock:
                self.stock[line.sku] += line.quantity
        self.released.append(reservation_id)
