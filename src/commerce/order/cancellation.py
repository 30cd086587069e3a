"""Order cancellation: command and handler.

Checks run before anything changes. An order outside
``pending_payment``/``paid`` is an invalid state whatever status the caller
expected; a stale expected status on a cancellable order is a conflict. In
both cases the order is left exactly as it was. The inventory reservation
is released before the cancellation is written; releasing is idempotent, so
a retry after a failed write is safe.
"""

import structlog
from protean import handle
from protean.fields import Dict, Identifier, String

from commerce.domain import commerce
from commerce.inventory import get_inventory
from commerce.order.order import RESERVATION_ID_KEY, Order
from commerce.order.permissions import assert_permitted
from commerce.order.status import OrderStatus
from commerce.settings import get_settings
from commerce.shared.collaborators import call_upstream
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)

DEFAULT_CANCEL_REASON = "customer_request"


def cancel_order(
    order: Order,
    reason=None,
    expected_status=None,
    reservation_id=None,
    metadata=None,
    actor_id=None,
    actor_role=None,
    release_reason="order_canceled",
) -> Order:
    order.assert_cancellable()
    order.check_expected_status(expected_status)
    if actor_role:
        assert_permitted(actor_role, order.status, OrderStatus.CANCELED, operation="cancel_order", entity_id=str(order.id))

    reservation_id = reservation_id or order.metadata.get(RESERVATION_ID_KEY)
    if reservation_id:
        call_upstream(
            "release_reservation",
            str(order.id),
            get_inventory().release,
            reservation_id,
            release_reason,
            timeout=get_settings().collaborator_timeout,
        )

    reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
    order.cancel(reason, actor_id=actor_id, metadata=metadata, reservation_id=reservation_id)
    persist(order, operation="cancel_order")
    logger.info(
        "Order cancelled",
        order_id=str(order.id),
        reason=reason,
        actor_id=actor_id,
        reservation_id=reservation_id,
    )
    return order


@commerce.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    expected_status = String(max_length=32)
    reservation_id = String(max_length=100)
    metadata_updates = Dict()
    actor_id = String(max_length=100)
    actor_role = String(max_length=20)


@commerce.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = fetch(Order, command.order_id, operation="cancel_order")
        return cancel_order(
            order,
            reason=command.reason,
            expected_status=command.expected_status,
            reservation_id=command.reservation_id,
            metadata=command.metadata_updates,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
        )
