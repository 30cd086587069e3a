"""Tests for the structlog processors and context helpers."""

import structlog

from commerce.utils.logging import (
    SERVICE_NAME,
    add_service,
    bound_context,
    clear_context,
    get_log_level,
    redact_secrets,
)


class TestProcessors:
    def test_service_is_added(self):
        assert add_service(None, "info", {"event": "x"})["service"] == SERVICE_NAME

    def test_secrets_are_redacted(self):
        event = redact_secrets(None, "info", {"event": "x", "client_secret": "pi_123_secret", "amount": 1680})
        assert event["client_secret"] == "[redacted]"
        assert event["amount"] == 1680


class TestContext:
    def test_bound_context_is_scoped(self):
        clear_context()
        with bound_context(order_id="ord_1", user_id=None):
            assert structlog.contextvars.get_contextvars() == {"order_id": "ord_1"}
        assert structlog.contextvars.get_contextvars() == {}


class TestLogLevel:
    def test_explicit_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_log_level() == "ERROR"

    def test_level_by_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("PROTEAN_ENV", "production")
        assert get_log_level() == "INFO"
