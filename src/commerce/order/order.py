"""Order aggregate (CQRS): a frozen snapshot of a cart moving through fulfilment.

Line items are copied from the cart when the order is created and never
re-derived from it. Status changes follow ``commerce.order.status``;
lifecycle timestamps are stamped the first time a status is entered and are
never cleared.

Payments, shipments and production events live in their own stores keyed
by order ID; the order keeps a denormalized pointer to the latest
production event.
"""

from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from commerce.domain import commerce
from commerce.errors import ConflictError, InvalidInputError, InvalidStateError
from commerce.order.events import (
    InvoiceRequested,
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    ProductionEventAppended,
)
from commerce.order.status import (
    CANCELLABLE_STATUSES,
    OrderStatus,
    can_transition,
    coerce_status,
)
from commerce.shared.clock import utc_now
from commerce.shared.payload import decode_map, encode

# Order metadata keys
RESERVATION_ID_KEY = "reservationId"
INVOICE_REQUESTED_AT_KEY = "invoiceRequestedAt"
INVOICE_REQUESTED_BY_KEY = "invoiceRequestedBy"
INVOICE_NOTES_KEY = "invoiceNotes"
REORDER_OF_KEY = "reorderOf"
REORDER_SOURCE_NUMBER_KEY = "reorderSourceOrderNumber"

# Written only by the core; caller-supplied metadata never overwrites them
RESERVED_METADATA_KEYS = frozenset(
    {RESERVATION_ID_KEY, INVOICE_REQUESTED_AT_KEY, INVOICE_REQUESTED_BY_KEY, INVOICE_NOTES_KEY}
)

# Status -> timestamp field stamped on first entry
_LIFECYCLE_TIMESTAMPS = {
    OrderStatus.PENDING_PAYMENT: "placed_at",
    OrderStatus.PAID: "paid_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELED: "canceled_at",
}


def new_order_id() -> str:
    return f"ord_{uuid4().hex}"


@commerce.entity(part_of="Order")
class OrderLineItem:
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    line_total = Integer(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    options_json = Text()  # customization snapshot
    source_item_id = String(max_length=64)

    @property
    def options(self) -> dict:
        return decode_map(self.options_json)


@commerce.value_object(part_of="Order")
class OrderTotals:
    subtotal = Integer(default=0)
    discount = Integer(default=0)
    tax = Integer(default=0)
    shipping = Integer(default=0)
    fees = Integer(default=0)
    total = Integer(default=0)


@commerce.value_object(part_of="Order")
class OrderPromotion:
    code = String(required=True, max_length=64)
    discount_amount = Integer(default=0)
    description = String(max_length=255)


@commerce.value_object(part_of="Order")
class OrderAddress:
    address_id = String(max_length=64)
    recipient = String(required=True, max_length=255)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    region = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=2)
    phone = String(max_length=30)

    @classmethod
    def from_address(cls, address):
        if address is None:
            return None
        return cls(**address.to_dict())


@commerce.value_object(part_of="Order")
class ContactInfo:
    email = String(max_length=255)
    phone = String(max_length=30)
    name = String(max_length=255)


@commerce.value_object(part_of="Order")
class OrderFulfillment:
    requested_ship_date = DateTime()
    requested_delivery_date = DateTime()
    estimated_ship_date = DateTime()
    estimated_delivery_date = DateTime()


@commerce.value_object(part_of="Order")
class OrderProduction:
    queue_ref = String(max_length=100)
    station = String(max_length=100)
    operator_ref = String(max_length=100)
    last_event_type = String(max_length=32)
    last_event_at = DateTime()
    on_hold = Boolean(default=False)


@commerce.aggregate
class Order:
    order_number = String(required=True, max_length=32)
    user_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING_PAYMENT.value)
    currency = String(required=True, max_length=3)
    totals = ValueObject(OrderTotals)
    promotion = ValueObject(OrderPromotion)
    items = HasMany(OrderLineItem)
    shipping_address = ValueObject(OrderAddress)
    billing_address = ValueObject(OrderAddress)
    contact = ValueObject(ContactInfo)
    fulfillment = ValueObject(OrderFulfillment)
    production = ValueObject(OrderProduction)
    is_gift = Boolean(default=False)
    requires_manual_review = Boolean(default=False)
    created_by = String(max_length=100)
    updated_by = String(max_length=100)
    metadata_json = Text()
    notes_json = Text()
    placed_at = DateTime()
    paid_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    completed_at = DateTime()
    canceled_at = DateTime()
    cancel_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cancellation_fields_are_paired(self):
        if bool(self.canceled_at) != bool(self.cancel_reason):
            raise ValidationError({"cancel_reason": ["canceled_at and cancel_reason must be set together"]})

    @invariant.post
    def canceled_orders_carry_cancellation(self):
        if self.status == OrderStatus.CANCELED.value and not self.canceled_at:
            raise ValidationError({"canceled_at": ["A canceled order must record when it was canceled"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        order_number,
        currency,
        items_data,
        totals,
        status=OrderStatus.PENDING_PAYMENT,
        cart_id=None,
        promotion=None,
        shipping_address=None,
        billing_address=None,
        contact=None,
        fulfillment=None,
        is_gift=False,
        requires_manual_review=False,
        created_by=None,
        metadata=None,
        notes=None,
        source_order_id=None,
    ):
        status = coerce_status(status)
        if status not in (OrderStatus.DRAFT, OrderStatus.PENDING_PAYMENT):
            raise InvalidStateError(f"orders cannot be created in status {status.value}", code="invalid_initial_status")

        now = utc_now()
        order = cls(
            id=new_order_id(),
            order_number=order_number,
            user_id=str(user_id),
            cart_id=str(cart_id) if cart_id else None,
            status=status.value,
            currency=currency,
            totals=totals,
            promotion=promotion,
            shipping_address=shipping_address,
            billing_address=billing_address,
            contact=contact,
            fulfillment=fulfillment,
            production=OrderProduction(on_hold=False),
            is_gift=is_gift,
            requires_manual_review=requires_manual_review,
            created_by=created_by,
            updated_by=created_by,
            metadata_json=encode(metadata or {}),
            notes_json=encode(notes or {}),
            created_at=now,
            updated_at=now,
        )
        if status == OrderStatus.PENDING_PAYMENT:
            order.placed_at = now

        for data in items_data:
            order.add_items(
                OrderLineItem(
                    product_id=data["product_id"],
                    sku=data["sku"],
                    quantity=data["quantity"],
                    unit_price=data["unit_price"],
                    line_total=data["unit_price"] * data["quantity"],
                    currency=currency,
                    options_json=encode(data.get("options") or {}),
                    source_item_id=data.get("source_item_id"),
                )
            )

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order_number,
                user_id=str(user_id),
                status=status.value,
                currency=currency,
                total=totals.total if totals else 0,
                source_order_id=source_order_id,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Maps
    # -------------------------------------------------------------------
    @property
    def metadata(self) -> dict:
        return decode_map(self.metadata_json)

    @property
    def notes(self) -> dict:
        return decode_map(self.notes_json)

    def merge_metadata(self, values: dict, allow_reserved=False):
        """Additive merge; reserved keys are skipped unless the core writes them."""
        merged = self.metadata
        for key, value in (values or {}).items():
            if key in RESERVED_METADATA_KEYS and not allow_reserved:
                continue
            merged[key] = value
        self.metadata_json = encode(merged)

    # -------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return coerce_status(self.status)

    def check_expected_status(self, expected):
        """Conflict when the caller saw a different status than the stored one."""
        if expected is None or expected == "":
            return
        try:
            expected = coerce_status(expected)
        except ValueError as exc:
            raise InvalidInputError(f"unknown order status {expected!r}", code="invalid_status") from exc
        if expected != self.current_status:
            raise ConflictError(
                f"order is {self.status}, expected {expected.value}",
                code="status_mismatch",
                entity_id=str(self.id),
            )

    def transition_to(self, target, actor_id=None, reason=None) -> bool:
        """Move along the status graph. Returns False for a same-status no-op."""
        target = coerce_status(target)
        previous = self.current_status
        if target == previous:
            return False
        if not can_transition(previous, target):
            raise InvalidStateError(
                f"cannot move order from {previous.value} to {target.value}",
                code="invalid_transition",
                entity_id=str(self.id),
            )

        now = utc_now()
        self.status = target.value
        stamp = _LIFECYCLE_TIMESTAMPS.get(target)
        if stamp and getattr(self, stamp) is None:
            setattr(self, stamp, now)
        self._touch(actor_id)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous.value,
                status=target.value,
                actor_id=actor_id,
                reason=reason,
                changed_at=now,
            )
        )
        return True

    def _touch(self, actor_id=None):
        self.updated_at = utc_now()
        if actor_id:
            self.updated_by = actor_id

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def assert_cancellable(self):
        if self.current_status not in CANCELLABLE_STATUSES:
            raise InvalidStateError(
                f"orders in status {self.status} cannot be canceled",
                code="not_cancellable",
                entity_id=str(self.id),
            )

    def cancel(self, reason, actor_id=None, metadata=None, reservation_id=None):
        self.assert_cancellable()

        now = utc_now()
        with atomic_change(self):
            self.canceled_at = now
            self.cancel_reason = reason
            self.transition_to(OrderStatus.CANCELED, actor_id=actor_id, reason=reason)
            if metadata:
                self.merge_metadata(metadata)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                canceled_at=now,
                actor_id=actor_id,
                reservation_id=reservation_id,
            )
        )

    # -------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------
    @property
    def invoice_requested_at(self) -> str | None:
        return self.metadata.get(INVOICE_REQUESTED_AT_KEY)

    def mark_invoice_requested(self, requested_at: str, requested_by=None, notes=None):
        values = {INVOICE_REQUESTED_AT_KEY: requested_at}
        if requested_by:
            values[INVOICE_REQUESTED_BY_KEY] = requested_by
        if notes:
            values[INVOICE_NOTES_KEY] = notes
        self.merge_metadata(values, allow_reserved=True)
        self._touch(requested_by)
        self.raise_(InvoiceRequested(order_id=str(self.id), requested_at=requested_at, requested_by=requested_by))

    # -------------------------------------------------------------------
    # Production
    # -------------------------------------------------------------------
    def record_production_event(
        self, production_event_id, event_type, occurred_at, on_hold, station=None, operator_ref=None, queue_ref=None
    ):
        """Point the order at its latest production event."""
        current = self.production
        self.production = OrderProduction(
            queue_ref=queue_ref or (current.queue_ref if current else None),
            station=station or (current.station if current else None),
            operator_ref=operator_ref or (current.operator_ref if current else None),
            last_event_type=event_type,
            last_event_at=occurred_at,
            on_hold=on_hold,
        )
        self._touch(operator_ref)
        self.raise_(
            ProductionEventAppended(
                order_id=str(self.id),
                production_event_id=str(production_event_id),
                event_type=event_type,
                occurred_at=occurred_at,
                on_hold=on_hold,
            )
        )

    # -------------------------------------------------------------------
    # Reorder
    # -------------------------------------------------------------------
    def line_items_data(self) -> list[dict]:
        return [
            {
                "product_id": str(item.product_id),
                "sku": item.sku,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "options": item.options,
                "source_item_id": str(item.id),
            }
            for item in self.items
        ]
