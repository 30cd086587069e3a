"""Tests for the Order aggregate: creation, transitions, cancellation and markers."""

import pytest

from commerce.errors import ConflictError, InvalidInputError, InvalidStateError
from commerce.order.events import InvoiceRequested, OrderCancelled, OrderCreated, OrderStatusChanged
from commerce.order.numbering import format_order_number
from commerce.order.order import (
    INVOICE_REQUESTED_AT_KEY,
    RESERVATION_ID_KEY,
    Order,
    OrderTotals,
)
from commerce.order.status import OrderStatus

ITEMS = [
    {"product_id": "prod-001", "sku": "HANKO-12MM", "quantity": 2, "unit_price": 500, "options": {"text": "山田"}},
]


def _order(status=OrderStatus.PENDING_PAYMENT, **overrides):
    defaults = {
        "user_id": "user-001",
        "order_number": "HF-2026-000001",
        "currency": "JPY",
        "items_data": ITEMS,
        "totals": OrderTotals(subtotal=1000, tax=100, shipping=800, total=1900),
        "status": status,
        "metadata": {RESERVATION_ID_KEY: "res-001"},
    }
    defaults.update(overrides)
    order = Order.create(**defaults)
    order._events.clear()
    return order


def _order_at(status):
    order = _order()
    path = {
        OrderStatus.PENDING_PAYMENT: [],
        OrderStatus.PAID: [OrderStatus.PAID],
        OrderStatus.IN_PRODUCTION: [OrderStatus.PAID, OrderStatus.IN_PRODUCTION],
        OrderStatus.SHIPPED: [
            OrderStatus.PAID,
            OrderStatus.IN_PRODUCTION,
            OrderStatus.READY_TO_SHIP,
            OrderStatus.SHIPPED,
        ],
    }[status]
    for target in path:
        order.transition_to(target)
    order._events.clear()
    return order


class TestOrderCreation:
    def test_id_prefix(self):
        assert _order().id.startswith("ord_")

    def test_pending_order_is_placed(self):
        order = _order()
        assert order.status == "pending_payment"
        assert order.placed_at is not None

    def test_draft_is_not_placed(self):
        order = _order(status=OrderStatus.DRAFT)
        assert order.placed_at is None

    def test_items_are_snapshotted(self):
        order = _order()
        item = order.items[0]
        assert item.line_total == 1000
        assert item.currency == "JPY"
        assert item.options == {"text": "山田"}

    @pytest.mark.parametrize("status", [OrderStatus.PAID, OrderStatus.CANCELED])
    def test_cannot_start_past_payment(self, status):
        with pytest.raises(InvalidStateError):
            _order(status=status)

    def test_raises_created_event(self):
        order = Order.create(
            user_id="user-001",
            order_number="HF-2026-000002",
            currency="JPY",
            items_data=ITEMS,
            totals=OrderTotals(subtotal=1000, total=1000),
        )
        event = order._events[-1]
        assert isinstance(event, OrderCreated)
        assert event.total == 1000

    def test_order_number_format(self):
        assert format_order_number(2026, 42) == "HF-2026-000042"


class TestTransitions:
    def test_paid_stamps_timestamp(self):
        order = _order()
        assert order.transition_to(OrderStatus.PAID) is True
        assert order.paid_at is not None
        assert isinstance(order._events[-1], OrderStatusChanged)

    def test_same_status_is_noop(self):
        order = _order()
        assert order.transition_to(OrderStatus.PENDING_PAYMENT) is False
        assert order._events == []

    def test_skipping_is_rejected(self):
        order = _order()
        with pytest.raises(InvalidStateError) as exc_info:
            order.transition_to(OrderStatus.SHIPPED)
        assert exc_info.value.code == "invalid_transition"
        assert order.status == "pending_payment"

    def test_timestamps_are_stamped_once(self):
        order = _order_at(OrderStatus.SHIPPED)
        shipped_at = order.shipped_at
        order.transition_to(OrderStatus.SHIPPED)
        assert order.shipped_at == shipped_at

    def test_expected_status_mismatch(self):
        order = _order_at(OrderStatus.PAID)
        with pytest.raises(ConflictError):
            order.check_expected_status("pending_payment")

    def test_expected_status_unknown(self):
        order = _order()
        with pytest.raises(InvalidInputError):
            order.check_expected_status("refunded")

    def test_expected_status_blank_is_ignored(self):
        _order().check_expected_status("")


class TestCancellation:
    @pytest.mark.parametrize("status", [OrderStatus.PENDING_PAYMENT, OrderStatus.PAID])
    def test_cancel_from_eligible_status(self, status):
        order = _order_at(status)
        order.cancel("customer_request", actor_id="user-001")

        assert order.status == "canceled"
        assert order.canceled_at is not None
        assert order.cancel_reason == "customer_request"
        assert isinstance(order._events[-1], OrderCancelled)

    @pytest.mark.parametrize("status", [OrderStatus.IN_PRODUCTION, OrderStatus.SHIPPED])
    def test_cancel_from_ineligible_status(self, status):
        order = _order_at(status)
        metadata_before = order.metadata_json

        with pytest.raises(InvalidStateError):
            order.cancel("too late", metadata={"note": "x"})
        assert order.status == status.value
        assert order.canceled_at is None
        assert order.metadata_json == metadata_before

    def test_cancel_metadata_skips_reserved_keys(self):
        order = _order()
        order.cancel("changed_mind", metadata={RESERVATION_ID_KEY: "forged", "source": "app"})

        assert order.metadata[RESERVATION_ID_KEY] == "res-001"
        assert order.metadata["source"] == "app"


class TestInvoiceMarker:
    def test_mark_invoice_requested(self):
        order = _order_at(OrderStatus.PAID)
        order.mark_invoice_requested("2026-01-02T03:04:05.000000000Z", requested_by="staff-1", notes="Company name")

        assert order.invoice_requested_at == "2026-01-02T03:04:05.000000000Z"
        assert order.metadata[INVOICE_REQUESTED_AT_KEY] == "2026-01-02T03:04:05.000000000Z"
        assert isinstance(order._events[-1], InvoiceRequested)

    def test_metadata_merge_cannot_forge_marker(self):
        order = _order()
        order.merge_metadata({INVOICE_REQUESTED_AT_KEY: "forged"})
        assert order.invoice_requested_at is None
