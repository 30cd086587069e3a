"""Tests for the order status graph and the actor permission table."""

import pytest

from commerce.errors import InvalidInputError, InvalidStateError
from commerce.order.permissions import (
    ActorRole,
    assert_permitted,
    is_permitted,
    permitted_targets,
)
from commerce.order.status import (
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    OrderStatus,
    all_transitions,
    can_transition,
    next_statuses,
)


class TestStatusGraph:
    def test_forward_path(self):
        path = [
            OrderStatus.DRAFT,
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PAID,
            OrderStatus.IN_PRODUCTION,
            OrderStatus.READY_TO_SHIP,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
            OrderStatus.COMPLETED,
        ]
        for current, target in zip(path, path[1:]):
            assert can_transition(current, target)

    def test_cancel_edges(self):
        assert can_transition(OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELED)
        assert can_transition(OrderStatus.PAID, OrderStatus.CANCELED)
        assert not can_transition(OrderStatus.IN_PRODUCTION, OrderStatus.CANCELED)
        assert not can_transition(OrderStatus.DRAFT, OrderStatus.CANCELED)

    def test_no_skipping(self):
        assert not can_transition(OrderStatus.PAID, OrderStatus.SHIPPED)
        assert not can_transition(OrderStatus.DRAFT, OrderStatus.PAID)

    def test_no_backwards(self):
        assert not can_transition(OrderStatus.SHIPPED, OrderStatus.PAID)

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            assert next_statuses(status) == frozenset()

    def test_same_status_is_allowed(self):
        assert can_transition("paid", "paid")

    def test_accepts_strings(self):
        assert can_transition("pending_payment", " PAID ")

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            can_transition("paid", "refunded")

    def test_edge_count(self):
        assert len(all_transitions()) == 9

    def test_cancellable_statuses(self):
        assert CANCELLABLE_STATUSES == {OrderStatus.PENDING_PAYMENT, OrderStatus.PAID}


class TestPermissions:
    def test_customer_may_cancel_unpaid_and_paid(self):
        assert is_permitted(ActorRole.CUSTOMER, OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELED)
        assert is_permitted(ActorRole.CUSTOMER, OrderStatus.PAID, OrderStatus.CANCELED)

    def test_customer_may_not_drive_production(self):
        assert not is_permitted(ActorRole.CUSTOMER, OrderStatus.PAID, OrderStatus.IN_PRODUCTION)

    def test_staff_drives_production_and_shipping(self):
        assert is_permitted(ActorRole.STAFF, OrderStatus.PAID, OrderStatus.IN_PRODUCTION)
        assert is_permitted(ActorRole.STAFF, OrderStatus.READY_TO_SHIP, OrderStatus.SHIPPED)

    def test_system_may_take_every_edge(self):
        for current, target in all_transitions():
            assert is_permitted(ActorRole.SYSTEM, current, target)

    def test_permissions_never_exceed_graph(self):
        for role in ActorRole:
            for status in OrderStatus:
                assert permitted_targets(role, status) <= next_statuses(status)

    def test_denied_transition(self):
        with pytest.raises(InvalidStateError) as exc_info:
            assert_permitted("customer", "paid", "in_production", operation="transition_status")
        assert exc_info.value.code == "transition_not_permitted"

    def test_unknown_role(self):
        with pytest.raises(InvalidInputError) as exc_info:
            assert_permitted("robot", "paid", "canceled", operation="cancel_order")
        assert exc_info.value.code == "invalid_role"
