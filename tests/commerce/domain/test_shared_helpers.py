"""Tests for money, clock, error classification and collaborator wrapping."""

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from commerce.cart.quotes import ShippingQuoteCache
from commerce.errors import (
    ConflictError,
    ErrorKind,
    InvalidInputError,
    UpstreamFailureError,
    error_kind,
)
from commerce.settings import Settings
from commerce.shared.clock import next_timestamp, parse_rfc3339, rfc3339_nano
from commerce.shared.collaborators import call_upstream
from commerce.shared.money import normalize_currency


class TestNormalizeCurrency:
    def test_trims_and_upper_cases(self):
        assert normalize_currency(" jpy ") == "JPY"

    def test_default(self):
        assert normalize_currency(None, default="jpy") == "JPY"

    @pytest.mark.parametrize("code", ["JP", "JPYY", "J1Y", ""])
    def test_rejects_malformed(self, code):
        with pytest.raises(InvalidInputError):
            normalize_currency(code)


class TestClock:
    def test_next_timestamp_advances_past_future_value(self):
        future = datetime(2999, 1, 1, tzinfo=UTC)
        assert next_timestamp(future) > future

    def test_rfc3339_nano_format(self):
        value = datetime(2026, 1, 2, 3, 4, 5, 123456, tzinfo=UTC)
        assert rfc3339_nano(value) == "2026-01-02T03:04:05.123456000Z"

    def test_parse_rfc3339(self):
        value = datetime(2026, 1, 2, 3, 4, 5, 123456, tzinfo=UTC)
        assert parse_rfc3339("2026-01-02T03:04:05.123456789Z") == value


class TestErrorKind:
    def test_commerce_errors(self):
        assert error_kind(ConflictError("stale")) == ErrorKind.CONFLICT

    def test_protean_validation(self):
        assert error_kind(ValidationError({"sku": ["required"]})) == ErrorKind.INVALID_INPUT

    def test_protean_not_found(self):
        assert error_kind(ObjectNotFoundError("missing")) == ErrorKind.NOT_FOUND

    def test_foreign_exception(self):
        assert error_kind(KeyError("x")) is None

    def test_str_carries_context(self):
        error = ConflictError("cart was modified", operation="update_cart", entity_id="user-001")
        assert str(error) == "update_cart: cart was modified (user-001)"


class TestCallUpstream:
    def test_returns_result(self):
        assert call_upstream("op", "id-1", lambda value: value * 2, 21) == 42

    def test_wraps_failures(self):
        def boom():
            raise RuntimeError("down")

        with pytest.raises(UpstreamFailureError) as exc_info:
            call_upstream("compute_tax", "cart-1", boom)
        assert exc_info.value.operation == "compute_tax"
        assert exc_info.value.entity_id == "cart-1"
        assert exc_info.value.code == "upstream_error"

    def test_timeout_is_handed_to_the_adapter(self):
        received = {}

        def slow_adapter(cart_id, timeout):
            received["timeout"] = timeout
            raise TimeoutError("no answer within the deadline")

        with pytest.raises(UpstreamFailureError) as exc_info:
            call_upstream("quote_shipping", "cart-1", slow_adapter, "cart-1", timeout=2.5)
        assert received["timeout"] == 2.5
        assert exc_info.value.code == "upstream_timeout"
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    def test_commerce_errors_pass_through(self):
        def conflict():
            raise ConflictError("stock", code="insufficient_stock")

        with pytest.raises(ConflictError):
            call_upstream("reserve_inventory", "cart-1", conflict)


class TestShippingQuoteCache:
    def test_put_and_get(self):
        cache = ShippingQuoteCache(ttl_seconds=300)
        cache.put("k", 800)
        assert cache.get("k") == 800

    def test_zero_ttl_disables_cache(self):
        cache = ShippingQuoteCache(ttl_seconds=0)
        cache.put("k", 800)
        assert cache.get("k") is None

    def test_put_sweeps_expired_entries(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr("commerce.cart.quotes.time", SimpleNamespace(monotonic=lambda: now[0]))
        cache = ShippingQuoteCache(ttl_seconds=300)
        for index in range(500):
            cache.put(f"stale-{index}", 800)

        now[0] += 301
        cache.put("fresh", 900)

        assert len(cache) == 1
        assert cache.get("fresh") == 900

    def test_max_entries_evicts_oldest(self):
        cache = ShippingQuoteCache(ttl_seconds=300, max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("c") == 3

    def test_overwrite_does_not_evict(self):
        cache = ShippingQuoteCache(ttl_seconds=300, max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("b", 5)

        assert cache.get("a") == 1
        assert cache.get("b") == 5


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("COMMERCE_SHIPPING_CACHE_TTL", raising=False)
        settings = Settings.from_env()
        assert settings.default_currency == "JPY"
        assert settings.shipping_cache_ttl == 300

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("COMMERCE_RESERVATION_TTL", "60")
        monkeypatch.setenv("COMMERCE_DEFAULT_CURRENCY", "usd")
        settings = Settings.from_env()
        assert settings.reservation_ttl == 60
        assert settings.default_currency == "USD"
