"""Status transitions driven by staff or system actors: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String

from commerce.domain import commerce
from commerce.errors import InvalidInputError
from commerce.order.order import Order
from commerce.order.permissions import assert_permitted
from commerce.order.status import OrderStatus, coerce_status
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class TransitionOrderStatus:
    order_id = Identifier(required=True)
    target_status = String(required=True, max_length=32)
    expected_status = String(max_length=32)
    actor_id = String(max_length=100)
    actor_role = String(max_length=20)
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(TransitionOrderStatus)
    def transition_status(self, command):
        try:
            target = coerce_status(command.target_status)
        except ValueError as exc:
            raise InvalidInputError(
                f"unknown order status {command.target_status!r}",
                code="invalid_status",
                operation="transition_status",
            ) from exc
        if target == OrderStatus.CANCELED:
            raise InvalidInputError(
                "cancellation goes through CancelOrder", code="use_cancel", operation="transition_status"
            )

        order = fetch(Order, command.order_id, operation="transition_status")
        order.check_expected_status(command.expected_status)
        if command.actor_role:
            assert_permitted(
                command.actor_role, order.status, target, operation="transition_status", entity_id=str(order.id)
            )

        previous = order.status
        if order.transition_to(target, actor_id=command.actor_id, reason=command.reason):
            persist(order, operation="transition_status")
            logger.info(
                "Order status changed",
                order_id=str(order.id),
                previous_status=previous,
                status=order.status,
                actor_id=command.actor_id,
            )
        return order
