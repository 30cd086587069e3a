"""Which actor role may trigger which status transitions.

The status graph in ``commerce.order.status`` stays the authority on what is
possible at all; this table narrows it per role and is consulted by command
handlers when the caller states its role.
"""

from enum import Enum

from commerce.errors import InvalidInputError, InvalidStateError
from commerce.order.status import OrderStatus, all_transitions, coerce_status


class ActorRole(Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    SYSTEM = "system"


_ROLE_TRANSITIONS = {
    ActorRole.CUSTOMER: frozenset(
        {
            (OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELED),
            (OrderStatus.PAID, OrderStatus.CANCELED),
        }
    ),
    ActorRole.STAFF: frozenset(
        {
            (OrderStatus.DRAFT, OrderStatus.PENDING_PAYMENT),
            (OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELED),
            (OrderStatus.PAID, OrderStatus.IN_PRODUCTION),
            (OrderStatus.PAID, OrderStatus.CANCELED),
            (OrderStatus.IN_PRODUCTION, OrderStatus.READY_TO_SHIP),
            (OrderStatus.READY_TO_SHIP, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.COMPLETED),
        }
    ),
    ActorRole.SYSTEM: all_transitions(),
}


def coerce_role(value) -> ActorRole:
    if isinstance(value, ActorRole):
        return value
    return ActorRole((value or "").strip().lower())


def is_permitted(role, current, target) -> bool:
    current, target = coerce_status(current), coerce_status(target)
    if current == target:
        return True
    return (current, target) in _ROLE_TRANSITIONS[coerce_role(role)]


def permitted_targets(role, current) -> frozenset:
    current = coerce_status(current)
    return frozenset(target for source, target in _ROLE_TRANSITIONS[coerce_role(role)] if source == current)


def assert_permitted(role, current, target, operation=None, entity_id=None):
    """Raise unless ``role`` may move an order from ``current`` to ``target``."""
    try:
        role = coerce_role(role)
    except ValueError as exc:
        raise InvalidInputError(f"unknown actor role {role!r}", code="invalid_role", operation=operation) from exc

    if not is_permitted(role, current, target):
        raise InvalidStateError(
            f"{role.value} may not move an order from {coerce_status(current).value} to {coerce_status(target).value}",
            code="transition_not_permitted",
            operation=operation,
            entity_id=entity_id,
        )
