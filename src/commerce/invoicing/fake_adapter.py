"""Recording invoice dispatcher for development and testing."""

from uuid import uuid4

from commerce.invoicing.port import DispatchResult, InvoiceDispatcher


class FakeInvoiceDispatcher(InvoiceDispatcher):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Mailer unavailable"
        self.error: Exception | None = None
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Mailer unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def fail_with(self, error: Exception | None) -> None:
        self.error = error

    def request(self, order_id: str, notes: str | None, timeout: float) -> DispatchResult:
        self.calls.append({"method": "request", "order_id": order_id, "notes": notes, "timeout": timeout})
        if self.error is not None:
            raise self.error
        if self.should_succeed:
            return DispatchResult(dispatched=True, reference=f"inv_{uuid4().hex[:12]}")
        return DispatchResult(dispatched=False, failure_reason=self.failure_reason)
