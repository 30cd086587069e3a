"""Reorder: clone a delivered or completed order into a new draft."""

import structlog
from protean import handle
from protean.fields import Identifier, String

from commerce.domain import commerce
from commerce.errors import InvalidStateError
from commerce.order.numbering import next_order_number
from commerce.order.order import REORDER_OF_KEY, REORDER_SOURCE_NUMBER_KEY, Order, OrderTotals
from commerce.order.status import REORDERABLE_STATUSES, OrderStatus
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class CloneForReorder:
    order_id = Identifier(required=True)
    actor_id = String(max_length=100)


@commerce.command_handler(part_of=Order)
class ReorderHandler:
    @handle(CloneForReorder)
    def clone_for_reorder(self, command):
        source = fetch(Order, command.order_id, operation="clone_for_reorder")
        if source.current_status not in REORDERABLE_STATUSES:
            raise InvalidStateError(
                f"only delivered or completed orders can be reordered, order is {source.status}",
                code="not_reorderable",
                operation="clone_for_reorder",
                entity_id=str(source.id),
            )

        # Prices are carried over as-is; tax and shipping are estimated again at checkout
        items_data = source.line_items_data()
        subtotal = sum(item["unit_price"] * item["quantity"] for item in items_data)

        order = Order.create(
            user_id=source.user_id,
            order_number=next_order_number(),
            currency=source.currency,
            items_data=items_data,
            totals=OrderTotals(subtotal=subtotal, total=subtotal),
            status=OrderStatus.DRAFT,
            shipping_address=source.shipping_address,
            billing_address=source.billing_address,
            contact=source.contact,
            is_gift=source.is_gift,
            created_by=command.actor_id or str(source.user_id),
            metadata={
                REORDER_OF_KEY: str(source.id),
                REORDER_SOURCE_NUMBER_KEY: source.order_number,
            },
            source_order_id=str(source.id),
        )
        persist(order, operation="clone_for_reorder")
        logger.info(
            "Order cloned for reorder",
            order_id=str(order.id),
            source_order_id=str(source.id),
            order_number=order.order_number,
        )
        return order
