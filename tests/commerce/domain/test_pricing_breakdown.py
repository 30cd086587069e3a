"""Tests for the pricing calculator: stage composition and apportionment."""

import pytest

from commerce.cart.pricing import (
    DISCOUNT_TYPE_PROMOTION,
    DiscountBreakdown,
    PricedLine,
    clamp_discount,
    compose,
)
from commerce.errors import InvalidInputError
from commerce.shared.money import apportion


def _line(item_id, quantity, unit_price, requires_shipping=True):
    return PricedLine(
        item_id=item_id,
        product_id=f"prod-{item_id}",
        sku=f"SKU-{item_id}",
        quantity=quantity,
        unit_price=unit_price,
        requires_shipping=requires_shipping,
    )


class TestApportion:
    def test_shares_sum_to_amount(self):
        assert sum(apportion(100, [1, 1, 1])) == 100

    def test_remainder_goes_to_last_share(self):
        assert apportion(100, [1, 1, 1]) == [33, 33, 34]

    def test_proportional_split(self):
        assert apportion(90, [100, 200]) == [30, 60]

    def test_zero_weights_split_evenly(self):
        assert apportion(10, [0, 0, 0]) == [3, 3, 4]

    def test_no_weights(self):
        assert apportion(10, []) == []


class TestCompose:
    def test_stage_totals(self):
        breakdown = compose([_line("a", 2, 500)], discount=200, tax=80, shipping=800)

        assert breakdown.subtotal == 1000
        assert breakdown.discount == 200
        assert breakdown.tax == 80
        assert breakdown.shipping == 800
        assert breakdown.total == 1680
        assert breakdown.metadata["net_subtotal"] == 800

    def test_line_totals_sum_to_total(self):
        lines = [_line("c", 1, 333), _line("a", 3, 101), _line("b", 7, 17)]
        breakdown = compose(lines, discount=97, tax=61, shipping=799)

        assert sum(item.total for item in breakdown.items) == breakdown.total
        assert sum(item.discount for item in breakdown.items) == 97
        assert sum(item.tax for item in breakdown.items) == 61
        assert sum(item.shipping for item in breakdown.items) == 799

    def test_remainder_lands_on_highest_item_id(self):
        lines = [_line("b", 1, 100), _line("a", 1, 100), _line("c", 1, 100)]
        breakdown = compose(lines, tax=100)

        by_id = {item.item_id: item for item in breakdown.items}
        assert by_id["a"].tax == 33
        assert by_id["b"].tax == 33
        assert by_id["c"].tax == 34

    def test_line_discount_never_exceeds_line_subtotal(self):
        lines = [_line("a", 1, 3), _line("b", 1, 3), _line("c", 1, 1)]
        breakdown = compose(lines, discount=6)

        by_id = {item.item_id: item for item in breakdown.items}
        assert by_id["c"].discount == 1
        assert by_id["b"].discount == 3
        assert by_id["a"].discount == 2
        assert all(item.total >= 0 for item in breakdown.items)
        assert sum(item.discount for item in breakdown.items) == 6
        assert sum(item.total for item in breakdown.items) == breakdown.total

    def test_apportionment_is_reproducible(self):
        lines = [_line("x", 1, 123), _line("y", 2, 457)]
        first = compose(lines, discount=11, tax=29, shipping=500)
        second = compose(list(reversed(lines)), discount=11, tax=29, shipping=500)

        assert {i.item_id: i for i in first.items} == {i.item_id: i for i in second.items}

    def test_items_keep_input_order(self):
        lines = [_line("b", 1, 100), _line("a", 1, 100)]
        breakdown = compose(lines)

        assert [item.item_id for item in breakdown.items] == ["b", "a"]

    def test_shipping_only_on_shipped_lines(self):
        lines = [_line("a", 1, 1000), _line("b", 1, 1000, requires_shipping=False)]
        breakdown = compose(lines, shipping=800)

        by_id = {item.item_id: item for item in breakdown.items}
        assert by_id["a"].shipping == 800
        assert by_id["b"].shipping == 0

    def test_discount_is_clamped_to_subtotal(self):
        breakdown = compose([_line("a", 1, 300)], discount=1000)

        assert breakdown.discount == 300
        assert breakdown.total == 0

    def test_empty_lines(self):
        breakdown = compose([])

        assert breakdown.total == 0
        assert breakdown.items == ()

    def test_zero_discount_sources_are_dropped(self):
        discounts = (DiscountBreakdown(type=DISCOUNT_TYPE_PROMOTION, amount=0, code="NONE"),)
        breakdown = compose([_line("a", 1, 100)], discounts=discounts)

        assert breakdown.discounts == ()

    def test_negative_unit_price_is_rejected(self):
        with pytest.raises(InvalidInputError):
            compose([_line("a", 1, -1)])

    def test_zero_quantity_is_rejected(self):
        with pytest.raises(InvalidInputError):
            compose([_line("a", 0, 100)])


class TestClampDiscount:
    def test_within_range(self):
        assert clamp_discount(50, 100) == 50

    def test_negative(self):
        assert clamp_discount(-5, 100) == 0

    def test_above_subtotal(self):
        assert clamp_discount(500, 100) == 100
