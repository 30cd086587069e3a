"""Invoice requests: command and handler.

The invoice pipeline ends in an email, so dispatching twice is visible to
the customer. A request is dispatched at most once per order: the marker is
written only after the dispatcher confirms, and every later request returns
the original timestamp flagged as a duplicate without dispatching again.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier, String, Text

from commerce.domain import commerce
from commerce.errors import InvalidStateError, UpstreamFailureError
from commerce.invoicing import get_invoice_dispatcher
from commerce.order.markers import OPERATION_INVOICE_REQUEST, find_marker, record_marker
from commerce.order.order import Order
from commerce.order.status import OrderStatus
from commerce.settings import get_settings
from commerce.shared.clock import rfc3339_nano, utc_now
from commerce.shared.collaborators import call_upstream
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InvoiceRequestResult:
    order: Order
    requested_at: str
    duplicate: bool


@commerce.command(part_of="Order")
class RequestInvoice:
    order_id = Identifier(required=True)
    notes = Text()
    expected_status = String(max_length=32)
    requested_by = String(max_length=100)


@commerce.command_handler(part_of=Order)
class RequestInvoiceHandler:
    @handle(RequestInvoice)
    def request_invoice(self, command):
        order = fetch(Order, command.order_id, operation="request_invoice")

        marker = find_marker(order.id, OPERATION_INVOICE_REQUEST)
        if marker is not None:
            logger.info("Duplicate invoice request", order_id=str(order.id), requested_at=marker.token)
            return InvoiceRequestResult(order=order, requested_at=marker.token, duplicate=True)

        order.check_expected_status(command.expected_status)
        if order.current_status != OrderStatus.PAID:
            raise InvalidStateError(
                f"invoices can only be requested for paid orders, order is {order.status}",
                code="invoice_not_available",
                operation="request_invoice",
                entity_id=str(order.id),
            )

        requested_at = utc_now()
        token = rfc3339_nano(requested_at)
        result = call_upstream(
            "request_invoice",
            str(order.id),
            get_invoice_dispatcher().request,
            str(order.id),
            command.notes,
            timeout=get_settings().collaborator_timeout,
        )
        if not result.dispatched:
            raise UpstreamFailureError(
                result.failure_reason or "invoice dispatch was not confirmed",
                code="invoice_not_dispatched",
                operation="request_invoice",
                entity_id=str(order.id),
            )

        record_marker(
            order.id,
            OPERATION_INVOICE_REQUEST,
            token,
            requested_at,
            actor_id=command.requested_by,
            reference=result.reference,
        )
        order.mark_invoice_requested(token, requested_by=command.requested_by, notes=command.notes)
        persist(order, operation="request_invoice")
        logger.info("Invoice requested", order_id=str(order.id), requested_at=token, reference=result.reference)
        return InvoiceRequestResult(order=order, requested_at=token, duplicate=False)
