"""Idempotency markers for order side effects.

One record per ``(order_id, operation)`` states that a non-idempotent side
effect was dispatched. It is the authority consulted before dispatching
again; the order metadata carries a readable copy.
"""

from protean.fields import DateTime, Identifier, String

from commerce.domain import commerce
from commerce.shared.storage import find, persist

OPERATION_INVOICE_REQUEST = "invoice_request"


def marker_id(order_id, operation) -> str:
    return f"{order_id}:{operation}"


@commerce.aggregate
class IdempotencyMarker:
    order_id = Identifier(required=True)
    operation = String(required=True, max_length=50)
    token = String(required=True, max_length=40)  # RFC3339 nanosecond timestamp
    completed_at = DateTime(required=True)
    actor_id = String(max_length=100)
    reference = String(max_length=255)


def find_marker(order_id, operation) -> IdempotencyMarker | None:
    return find(IdempotencyMarker, marker_id(order_id, operation), operation=operation)


def record_marker(order_id, operation, token, completed_at, actor_id=None, reference=None) -> IdempotencyMarker:
    marker = IdempotencyMarker(
        id=marker_id(order_id, operation),
        order_id=str(order_id),
        operation=operation,
        token=token,
        completed_at=completed_at,
        actor_id=actor_id,
        reference=reference,
    )
    return persist(marker, operation=operation)
