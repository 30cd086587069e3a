"""Tests for the Promotion aggregate and the promotion validator."""

from datetime import timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from commerce.promotion.promotion import DiscountKind, Promotion
from commerce.promotion.validator import (
    REASON_CURRENCY_MISMATCH,
    REASON_EXPIRED,
    REASON_INACTIVE,
    REASON_MINIMUM_NOT_MET,
    REASON_NOT_FOUND,
    REASON_NOT_STARTED,
    PromotionContext,
    validate_promotion,
)
from commerce.shared.clock import utc_now


def _store(**overrides):
    defaults = {"code": "Save20", "kind": DiscountKind.FIXED, "value": 200, "currency": "JPY"}
    defaults.update(overrides)
    promotion = Promotion.create(**defaults)
    current_domain.repository_for(Promotion).add(promotion)
    return promotion


def _context(subtotal=1000, currency="JPY", **overrides):
    return PromotionContext(subtotal=subtotal, currency=currency, **overrides)


class TestPromotionAggregate:
    def test_code_is_stored_lower_case(self):
        assert Promotion.create(code=" Save20 ", kind=DiscountKind.FIXED, value=200, currency="JPY").code == "save20"

    def test_percentage_discount(self):
        promotion = Promotion.create(code="TEN", kind=DiscountKind.PERCENTAGE, value=1000)
        assert promotion.discount_for(1999) == 199

    def test_fixed_discount_is_clamped(self):
        promotion = Promotion.create(code="BIG", kind=DiscountKind.FIXED, value=5000, currency="JPY")
        assert promotion.discount_for(1000) == 1000

    def test_percentage_above_whole_is_rejected(self):
        with pytest.raises(ValidationError):
            Promotion.create(code="TOO-MUCH", kind=DiscountKind.PERCENTAGE, value=10001)

    def test_fixed_needs_currency(self):
        with pytest.raises(ValidationError):
            Promotion.create(code="NOCUR", kind=DiscountKind.FIXED, value=100)


class TestValidatePromotion:
    def test_valid_code_is_case_insensitive(self):
        _store()
        result = validate_promotion("save20", _context())

        assert result.valid is True
        assert result.code == "SAVE20"
        assert result.discount_amount == 200

    def test_unknown_code(self):
        result = validate_promotion("NOPE", _context())
        assert result.valid is False
        assert result.reason == REASON_NOT_FOUND

    def test_blank_code(self):
        assert validate_promotion("  ", _context()).reason == REASON_NOT_FOUND

    def test_inactive(self):
        promotion = _store()
        promotion.deactivate()
        current_domain.repository_for(Promotion).add(promotion)

        assert validate_promotion("SAVE20", _context()).reason == REASON_INACTIVE

    def test_not_started(self):
        _store(starts_at=utc_now() + timedelta(days=1))
        assert validate_promotion("SAVE20", _context()).reason == REASON_NOT_STARTED

    def test_expired(self):
        _store(starts_at=utc_now() - timedelta(days=10), ends_at=utc_now() - timedelta(days=1))
        assert validate_promotion("SAVE20", _context()).reason == REASON_EXPIRED

    def test_currency_mismatch(self):
        _store()
        assert validate_promotion("SAVE20", _context(currency="USD")).reason == REASON_CURRENCY_MISMATCH

    def test_minimum_not_met(self):
        _store(min_subtotal=5000)
        assert validate_promotion("SAVE20", _context(subtotal=1000)).reason == REASON_MINIMUM_NOT_MET
