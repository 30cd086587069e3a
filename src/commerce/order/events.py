"""Domain events for the Order aggregate and its sub-records."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderCreated:
    """An order was created from a cart snapshot or cloned for reorder."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=32)
    user_id = Identifier(required=True)
    status = String(required=True, max_length=32)
    currency = String(required=True, max_length=3)
    total = Integer(required=True)
    source_order_id = Identifier()


@commerce.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=32)
    status = String(required=True, max_length=32)
    actor_id = String(max_length=100)
    reason = String(max_length=500)
    changed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    canceled_at = DateTime(required=True)
    actor_id = String(max_length=100)
    reservation_id = String(max_length=100)


@commerce.event(part_of="Order")
class InvoiceRequested:
    """The invoice pipeline confirmed dispatch for a paid order."""

    __version__ = 1

    order_id = Identifier(required=True)
    requested_at = String(required=True, max_length=40)
    requested_by = String(max_length=100)


@commerce.event(part_of="Order")
class ProductionEventAppended:
    __version__ = 1

    order_id = Identifier(required=True)
    production_event_id = Identifier(required=True)
    event_type = String(required=True, max_length=32)
    occurred_at = DateTime(required=True)
    on_hold = Boolean(default=False)


@commerce.event(part_of="Payment")
class PaymentRecorded:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    provider = String(required=True, max_length=50)
    intent_id = String(required=True, max_length=255)
    amount = Integer(required=True)
    currency = String(required=True, max_length=3)


@commerce.event(part_of="Shipment")
class ShipmentRecorded:
    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=50)
    tracking_number = String(required=True, max_length=100)


@commerce.event(part_of="Shipment")
class ShipmentEventAppended:
    __version__ = 1

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True, max_length=32)
    occurred_at = DateTime(required=True)
