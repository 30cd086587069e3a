"""Configurable fake payment provider for development and testing.

Simulates a hosted-checkout provider without external calls. Sessions are
remembered by both session and intent ID; their status can be driven from
tests with ``set_status``.
"""

from datetime import timedelta
from uuid import uuid4

from commerce.gateway.port import (
    STATUS_PENDING,
    PaymentProvider,
    ProviderSession,
    ProviderStatus,
)
from commerce.shared.clock import utc_now


class FakePaymentProvider(PaymentProvider):
    """Configurable fake payment provider."""

    name = "fake"

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Provider rejected the session"
        self.error: Exception | None = None
        self.sessions: dict[str, dict] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Provider rejected the session") -> None:
        """Configure session creation behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def fail_with(self, error: Exception | None) -> None:
        """Raise ``error`` from every call, e.g. TimeoutError."""
        self.error = error

    def set_status(self, reference: str, status: str) -> None:
        session = self._lookup(reference)
        session["status"] = status

    def create_session(
        self,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
        timeout: float,
    ) -> ProviderSession:
        self.calls.append(
            {
                "method": "create_session",
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
                "timeout": timeout,
            }
        )
        if self.error is not None:
            raise self.error
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)

        # Same key, same session, as real providers do
        for session in self.sessions.values():
            if session["idempotency_key"] == idempotency_key:
                return session["result"]

        token = uuid4().hex[:16]
        result = ProviderSession(
            session_id=f"cs_fake_{token}",
            intent_id=f"pi_fake_{token}",
            client_secret=f"pi_fake_{token}_secret",
            redirect_url=f"https://pay.example.test/session/cs_fake_{token}",
            expires_at=utc_now() + timedelta(minutes=30),
        )
        self.sessions[result.session_id] = {
            "result": result,
            "idempotency_key": idempotency_key,
            "amount": amount,
            "currency": currency,
            "status": STATUS_PENDING,
        }
        return result

    def get_status(self, reference: str, timeout: float) -> ProviderStatus:
        self.calls.append({"method": "get_status", "reference": reference, "timeout": timeout})
        if self.error is not None:
            raise self.error

        session = self._lookup(reference)
        return ProviderStatus(
            status=session["status"],
            intent_id=session["result"].intent_id,
            amount=session["amount"],
            currency=session["currency"],
        )

    def _lookup(self, reference: str) -> dict:
        for session in self.sessions.values():
            result = session["result"]
            if reference in (result.session_id, result.intent_id):
                return session
        raise LookupError(f"unknown payment reference {reference}")
