"""Order status graph.

    draft -> pending_payment -> paid -> in_production -> ready_to_ship
          -> shipped -> delivered -> completed
    pending_payment -> canceled
    paid            -> canceled

``completed`` and ``canceled`` are terminal. Moving to the current status is
a no-op rather than an error.
"""

from enum import Enum


class OrderStatus(Enum):
    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    IN_PRODUCTION = "in_production"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELED = "canceled"


_VALID_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.PENDING_PAYMENT},
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PAID, OrderStatus.CANCELED},
    OrderStatus.PAID: {OrderStatus.IN_PRODUCTION, OrderStatus.CANCELED},
    OrderStatus.IN_PRODUCTION: {OrderStatus.READY_TO_SHIP},
    OrderStatus.READY_TO_SHIP: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELED: set(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELED})
CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PAID})
REORDERABLE_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED})


def coerce_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    return OrderStatus((value or "").strip().lower())


def next_statuses(current) -> frozenset:
    return frozenset(_VALID_TRANSITIONS[coerce_status(current)])


def can_transition(current, target) -> bool:
    current, target = coerce_status(current), coerce_status(target)
    return current == target or target in _VALID_TRANSITIONS[current]


def all_transitions() -> frozenset:
    return frozenset((source, target) for source, targets in _VALID_TRANSITIONS.items() for target in targets)
