"""Shipments: aggregate, commands and handler.

Each shipment keeps an append-only list of carrier events. Recording a
shipment moves a ``ready_to_ship`` order to ``shipped``; a ``delivered``
carrier event moves it on to ``delivered``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import InvalidInputError
from commerce.order.events import ShipmentEventAppended, ShipmentRecorded
from commerce.order.order import Order
from commerce.order.status import OrderStatus
from commerce.shared.clock import as_utc, parse_rfc3339, rfc3339_nano, utc_now
from commerce.shared.payload import decode_list, encode
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


class ShipmentEventType(Enum):
    LABEL_CREATED = "label_created"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"


@dataclass(frozen=True)
class ShipmentEvent:
    event_type: str
    occurred_at: datetime
    location: str | None = None
    description: str | None = None


@commerce.aggregate
class Shipment:
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=50)
    tracking_number = String(required=True, max_length=100)
    status = String(choices=ShipmentEventType, default=ShipmentEventType.LABEL_CREATED.value)
    events_json = Text()
    shipped_at = DateTime()
    delivered_at = DateTime()
    created_at = DateTime()

    @classmethod
    def create(cls, order_id, carrier, tracking_number):
        now = utc_now()
        shipment = cls(
            id=f"shp_{uuid4().hex}",
            order_id=str(order_id),
            carrier=carrier,
            tracking_number=tracking_number,
            status=ShipmentEventType.LABEL_CREATED.value,
            events_json=encode([]),
            shipped_at=now,
            created_at=now,
        )
        shipment.raise_(
            ShipmentRecorded(
                shipment_id=str(shipment.id),
                order_id=str(order_id),
                carrier=carrier,
                tracking_number=tracking_number,
            )
        )
        return shipment

    @property
    def events(self) -> list[ShipmentEvent]:
        return [
            ShipmentEvent(
                event_type=entry["event_type"],
                occurred_at=parse_rfc3339(entry["occurred_at"]),
                location=entry.get("location"),
                description=entry.get("description"),
            )
            for entry in decode_list(self.events_json)
        ]

    def append_event(self, event_type, occurred_at=None, location=None, description=None) -> ShipmentEvent:
        event_type = ShipmentEventType(event_type)
        occurred_at = as_utc(occurred_at) or utc_now()

        entries = decode_list(self.events_json)
        entries.append(
            {
                "event_type": event_type.value,
                "occurred_at": rfc3339_nano(occurred_at),
                "location": location,
                "description": description,
            }
        )
        self.events_json = encode(entries)
        self.status = event_type.value
        if event_type == ShipmentEventType.DELIVERED and self.delivered_at is None:
            self.delivered_at = occurred_at

        self.raise_(
            ShipmentEventAppended(
                shipment_id=str(self.id),
                order_id=str(self.order_id),
                event_type=event_type.value,
                occurred_at=occurred_at,
            )
        )
        return ShipmentEvent(event_type.value, occurred_at, location, description)


def shipments_for(order_id) -> list[Shipment]:
    return current_domain.repository_for(Shipment)._dao.query.filter(order_id=str(order_id)).all().items


@commerce.command(part_of="Shipment")
class RecordShipment:
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=50)
    tracking_number = String(required=True, max_length=100)
    expected_status = String(max_length=32)
    actor_id = String(max_length=100)


@commerce.command(part_of="Shipment")
class AppendShipmentEvent:
    shipment_id = Identifier(required=True)
    event_type = String(required=True, max_length=32)
    occurred_at = DateTime()
    location = String(max_length=255)
    description = String(max_length=500)
    actor_id = String(max_length=100)


@commerce.command_handler(part_of=Shipment)
class ShipmentHandler:
    @handle(RecordShipment)
    def record_shipment(self, command):
        order = fetch(Order, command.order_id, operation="record_shipment")
        order.check_expected_status(command.expected_status)
        order.transition_to(OrderStatus.SHIPPED, actor_id=command.actor_id, reason="shipment_recorded")

        shipment = Shipment.create(order.id, command.carrier, command.tracking_number)
        persist(shipment, operation="record_shipment")
        persist(order, operation="record_shipment")
        logger.info(
            "Shipment recorded",
            order_id=str(order.id),
            shipment_id=str(shipment.id),
            carrier=command.carrier,
        )
        return shipment

    @handle(AppendShipmentEvent)
    def append_shipment_event(self, command):
        try:
            event_type = ShipmentEventType((command.event_type or "").strip().lower())
        except ValueError as exc:
            raise InvalidInputError(
                f"unknown shipment event type {command.event_type}",
                code="invalid_event_type",
                operation="append_shipment_event",
            ) from exc

        shipment = fetch(Shipment, command.shipment_id, operation="append_shipment_event")
        shipment.append_event(
            event_type.value,
            occurred_at=command.occurred_at,
            location=command.location,
            description=command.description,
        )
        persist(shipment, operation="append_shipment_event")

        if event_type == ShipmentEventType.DELIVERED:
            order = fetch(Order, shipment.order_id, operation="append_shipment_event")
            if order.current_status == OrderStatus.SHIPPED:
                order.transition_to(OrderStatus.DELIVERED, actor_id=command.actor_id, reason="carrier_delivered")
                persist(order, operation="append_shipment_event")
        return shipment
