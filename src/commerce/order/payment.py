"""Payments recorded against orders: aggregate, command and handler.

A payment is recorded once per provider intent: recording the same intent
again returns the existing payment and leaves the order untouched.
"""

from enum import Enum
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import InvalidStateError
from commerce.order.events import PaymentRecorded
from commerce.order.order import Order
from commerce.order.status import OrderStatus
from commerce.shared.clock import utc_now
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


class PaymentStatus(Enum):
    SUCCEEDED = "succeeded"
    PENDING_CAPTURE = "pending_capture"
    FAILED = "failed"


@commerce.aggregate
class Payment:
    order_id = Identifier(required=True)
    provider = String(required=True, max_length=50)
    intent_id = String(required=True, max_length=255)
    session_id = String(max_length=255)
    amount = Integer(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    status = String(choices=PaymentStatus, default=PaymentStatus.SUCCEEDED.value)
    captured_at = DateTime()
    created_at = DateTime()

    @classmethod
    def record(cls, order_id, provider, intent_id, amount, currency, session_id=None):
        now = utc_now()
        payment = cls(
            id=f"pay_{uuid4().hex}",
            order_id=str(order_id),
            provider=provider,
            intent_id=intent_id,
            session_id=session_id,
            amount=amount,
            currency=currency,
            status=PaymentStatus.SUCCEEDED.value,
            captured_at=now,
            created_at=now,
        )
        payment.raise_(
            PaymentRecorded(
                payment_id=str(payment.id),
                order_id=str(order_id),
                provider=provider,
                intent_id=intent_id,
                amount=amount,
                currency=currency,
            )
        )
        return payment


def payments_for(order_id) -> list[Payment]:
    return current_domain.repository_for(Payment)._dao.query.filter(order_id=str(order_id)).all().items


def settle_payment(order_id, provider, intent_id, amount, currency, session_id=None, actor_id=None):
    """Record a successful payment and move the order to ``paid``.

    Returns ``(order, payment)``. Safe to call again for the same intent.
    """
    order = fetch(Order, order_id, operation="record_payment")

    existing = next((p for p in payments_for(order_id) if p.intent_id == intent_id), None)
    if existing is not None:
        return order, existing

    if order.current_status not in (OrderStatus.PENDING_PAYMENT, OrderStatus.PAID):
        raise InvalidStateError(
            f"cannot record payment for an order in status {order.status}",
            code="payment_not_accepted",
            operation="record_payment",
            entity_id=str(order.id),
        )

    expected_total = order.totals.total if order.totals else 0
    if amount != expected_total:
        logger.warning(
            "Payment amount differs from order total",
            order_id=str(order.id),
            amount=amount,
            order_total=expected_total,
        )

    payment = Payment.record(
        order_id=order.id,
        provider=provider,
        intent_id=intent_id,
        amount=amount,
        currency=currency,
        session_id=session_id,
    )
    order.transition_to(OrderStatus.PAID, actor_id=actor_id, reason="payment_succeeded")

    persist(payment, operation="record_payment")
    persist(order, operation="record_payment")
    logger.info("Payment recorded", order_id=str(order.id), payment_id=str(payment.id), amount=amount)
    return order, payment


@commerce.command(part_of="Payment")
class RecordPayment:
    order_id = Identifier(required=True)
    provider = String(required=True, max_length=50)
    intent_id = String(required=True, max_length=255)
    amount = Integer(required=True)
    currency = String(required=True, max_length=3)
    session_id = String(max_length=255)
    actor_id = String(max_length=100)


@commerce.command_handler(part_of=Payment)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        order, _ = settle_payment(
            order_id=command.order_id,
            provider=command.provider,
            intent_id=command.intent_id,
            amount=command.amount,
            currency=command.currency.upper(),
            session_id=command.session_id,
            actor_id=command.actor_id,
        )
        return order
