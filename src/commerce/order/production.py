"""Production tracking: append-only event log per order, command and handler.

The full log lives in its own store; the order only keeps the latest event
type and time plus the on-hold flag. Each event type also implies a status
(``packed`` means ready to ship, ``in_transit`` means shipped...) and the
order advances when that status is the next step in the graph.
"""

from enum import Enum
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import InvalidInputError, InvalidStateError
from commerce.order.order import Order
from commerce.order.status import OrderStatus, next_statuses
from commerce.shared.clock import as_utc, utc_now
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


class ProductionEventType(Enum):
    QUEUED = "queued"
    ENGRAVING = "engraving"
    POLISHING = "polishing"
    QC = "qc"
    ON_HOLD = "on_hold"
    REWORK = "rework"
    PACKED = "packed"
    COMPLETED = "completed"
    IN_TRANSIT = "in_transit"


_STATUS_FOR_EVENT = {
    ProductionEventType.QUEUED: OrderStatus.IN_PRODUCTION,
    ProductionEventType.ENGRAVING: OrderStatus.IN_PRODUCTION,
    ProductionEventType.POLISHING: OrderStatus.IN_PRODUCTION,
    ProductionEventType.QC: OrderStatus.IN_PRODUCTION,
    ProductionEventType.ON_HOLD: OrderStatus.IN_PRODUCTION,
    ProductionEventType.REWORK: OrderStatus.IN_PRODUCTION,
    ProductionEventType.PACKED: OrderStatus.READY_TO_SHIP,
    ProductionEventType.COMPLETED: OrderStatus.READY_TO_SHIP,
    ProductionEventType.IN_TRANSIT: OrderStatus.SHIPPED,
}

_HOLD_EVENTS = frozenset({ProductionEventType.ON_HOLD, ProductionEventType.REWORK})

# Production starts once the order is paid and stops once it leaves the workshop
_PRODUCTION_STATUSES = frozenset(
    {OrderStatus.PAID, OrderStatus.IN_PRODUCTION, OrderStatus.READY_TO_SHIP, OrderStatus.SHIPPED}
)


def parse_event_type(value) -> ProductionEventType:
    try:
        return ProductionEventType((value or "").strip().lower())
    except ValueError as exc:
        raise InvalidInputError(
            f"unknown production event type {value!r}",
            code="invalid_event_type",
            operation="append_production_event",
        ) from exc


@commerce.aggregate
class ProductionEvent:
    order_id = Identifier(required=True)
    event_type = String(choices=ProductionEventType, required=True)
    station = String(max_length=100)
    operator_ref = String(max_length=100)
    queue_ref = String(max_length=100)
    note = Text()
    occurred_at = DateTime(required=True)
    created_at = DateTime()


def production_events_for(order_id) -> list[ProductionEvent]:
    events = current_domain.repository_for(ProductionEvent)._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(events, key=lambda event: (as_utc(event.occurred_at), as_utc(event.created_at)))


@commerce.command(part_of="ProductionEvent")
class AppendProductionEvent:
    order_id = Identifier(required=True)
    event_type = String(required=True, max_length=32)
    station = String(max_length=100)
    operator_ref = String(max_length=100)
    queue_ref = String(max_length=100)
    note = Text()
    occurred_at = DateTime()
    expected_status = String(max_length=32)


@commerce.command_handler(part_of=ProductionEvent)
class ProductionEventHandler:
    @handle(AppendProductionEvent)
    def append_production_event(self, command):
        event_type = parse_event_type(command.event_type)

        order = fetch(Order, command.order_id, operation="append_production_event")
        order.check_expected_status(command.expected_status)
        if order.current_status not in _PRODUCTION_STATUSES:
            raise InvalidStateError(
                f"production events are not accepted for orders in status {order.status}",
                code="not_in_production",
                operation="append_production_event",
                entity_id=str(order.id),
            )

        now = utc_now()
        occurred_at = as_utc(command.occurred_at) or now
        event = ProductionEvent(
            id=f"ope_{uuid4().hex}",
            order_id=str(order.id),
            event_type=event_type.value,
            station=command.station,
            operator_ref=command.operator_ref,
            queue_ref=command.queue_ref,
            note=command.note,
            occurred_at=occurred_at,
            created_at=now,
        )

        order.record_production_event(
            production_event_id=event.id,
            event_type=event_type.value,
            occurred_at=occurred_at,
            on_hold=event_type in _HOLD_EVENTS,
            station=command.station,
            operator_ref=command.operator_ref,
            queue_ref=command.queue_ref,
        )

        target = _STATUS_FOR_EVENT[event_type]
        if target in next_statuses(order.current_status):
            order.transition_to(target, actor_id=command.operator_ref, reason=f"production:{event_type.value}")

        persist(event, operation="append_production_event")
        persist(order, operation="append_production_event")
        logger.info(
            "Production event appended",
            order_id=str(order.id),
            event_type=event_type.value,
            status=order.status,
        )
        return order
