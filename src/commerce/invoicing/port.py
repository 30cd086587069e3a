"""Invoice dispatcher port.

Invoice generation and delivery is not idempotent downstream (it ends in an
email), so the order side records a marker only after ``request`` confirms.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DispatchResult:
    dispatched: bool
    reference: str | None = None
    failure_reason: str | None = None


class InvoiceDispatcher(ABC):
    @abstractmethod
    def request(self, order_id: str, notes: str | None, timeout: float) -> DispatchResult:
        """Queue invoice generation for ``order_id``."""
        ...
