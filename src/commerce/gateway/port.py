"""Payment provider port (abstract interface).

Defines the contract every payment provider adapter implements. Checkout
only creates hosted sessions and reads back authoritative payment status;
capture and refunds stay with the provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

# Provider-side payment states understood by checkout.
STATUS_SUCCEEDED = "succeeded"
STATUS_PROCESSING = "processing"
STATUS_REQUIRES_CAPTURE = "requires_capture"
STATUS_PENDING = "pending"
STATUS_FAILED = "failed"
STATUS_CANCELED = "canceled"


@dataclass(frozen=True)
class ProviderSession:
    """Result of creating a hosted payment session."""

    session_id: str
    intent_id: str
    client_secret: str | None = None
    redirect_url: str | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class ProviderStatus:
    """Authoritative payment state as reported by the provider."""

    status: str
    intent_id: str
    amount: int | None = None
    currency: str | None = None
    failure_reason: str | None = None


class PaymentProvider(ABC):
    """Abstract payment provider interface."""

    name: str = "unknown"

    @abstractmethod
    def create_session(
        self,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
        timeout: float,
    ) -> ProviderSession:
        """Create a payment session for ``amount`` minor units."""
        ...

    @abstractmethod
    def get_status(self, reference: str, timeout: float) -> ProviderStatus:
        """Fetch the payment state for a session or intent ID."""
        ...
