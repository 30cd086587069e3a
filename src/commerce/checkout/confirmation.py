"""Client-reported payment completion: command and handler.

The client only tells us *which* session finished. The outcome always comes
from the provider, so a client claiming success for a failed payment cannot
move the order to ``paid``.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.checkout.session import CheckoutSession, CheckoutStatus
from commerce.domain import commerce
from commerce.errors import InvalidInputError, InvalidStateError, NotFoundError, UpstreamFailureError
from commerce.gateway import get_payment_provider
from commerce.gateway.port import (
    STATUS_CANCELED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_REQUIRES_CAPTURE,
    STATUS_SUCCEEDED,
)
from commerce.order.cancellation import cancel_order
from commerce.order.order import Order
from commerce.order.payment import settle_payment
from commerce.order.permissions import ActorRole
from commerce.order.status import OrderStatus
from commerce.settings import get_settings
from commerce.shared.collaborators import call_upstream
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)

_PENDING_STATUSES = frozenset({STATUS_PROCESSING, STATUS_REQUIRES_CAPTURE, STATUS_PENDING})
_FAILED_STATUSES = frozenset({STATUS_FAILED, STATUS_CANCELED})

PAYMENT_FAILED_REASON = "payment_failed"


@dataclass(frozen=True)
class CheckoutConfirmation:
    status: str
    order_id: str


@commerce.command(part_of="CheckoutSession")
class ConfirmClientCompletion:
    user_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    intent_id = String(max_length=255)


@commerce.command_handler(part_of=CheckoutSession)
class ConfirmClientCompletionHandler:
    @handle(ConfirmClientCompletion)
    def confirm_client_completion(self, command):
        session = current_domain.repository_for(CheckoutSession).find_by_session_id(command.session_id)
        # Another user's session is indistinguishable from a missing one
        if session is None or str(session.user_id) != str(command.user_id):
            raise NotFoundError(
                "checkout session not found",
                code="checkout_session_not_found",
                operation="confirm_checkout",
                entity_id=command.session_id,
            )
        if command.intent_id and session.intent_id and command.intent_id != session.intent_id:
            raise InvalidInputError(
                "payment intent does not belong to this session",
                code="intent_mismatch",
                operation="confirm_checkout",
                entity_id=command.session_id,
            )

        if session.current_status in (CheckoutStatus.CONFIRMED, CheckoutStatus.FAILED):
            return CheckoutConfirmation(status=session.status, order_id=str(session.order_id))
        if session.is_expired():
            raise InvalidStateError(
                "checkout session has expired",
                code="session_expired",
                operation="confirm_checkout",
                entity_id=command.session_id,
            )

        provider = get_payment_provider()
        reported = call_upstream(
            "get_payment_status",
            session.session_id,
            provider.get_status,
            session.intent_id or session.session_id,
            timeout=get_settings().payment_timeout,
        )

        if reported.status == STATUS_SUCCEEDED:
            settle_payment(
                session.order_id,
                provider=session.provider,
                intent_id=reported.intent_id or session.intent_id,
                amount=reported.amount if reported.amount is not None else session.amount,
                currency=(reported.currency or session.currency).upper(),
                session_id=session.session_id,
                actor_id=str(command.user_id),
            )
            outcome = CheckoutStatus.CONFIRMED
        elif reported.status in _PENDING_STATUSES:
            outcome = CheckoutStatus.PENDING_CAPTURE
        elif reported.status in _FAILED_STATUSES:
            order = fetch(Order, session.order_id, operation="confirm_checkout")
            # A customer cancel already released the reservation
            if order.current_status == OrderStatus.CANCELED:
                logger.info(
                    "Order already cancelled",
                    session_id=session.session_id,
                    order_id=str(order.id),
                    cancel_reason=order.cancel_reason,
                )
            else:
                cancel_order(
                    order,
                    reason=PAYMENT_FAILED_REASON,
                    reservation_id=session.reservation_id,
                    actor_id="checkout",
                    actor_role=ActorRole.SYSTEM.value,
                    release_reason=PAYMENT_FAILED_REASON,
                )
            outcome = CheckoutStatus.FAILED
        else:
            raise UpstreamFailureError(
                f"unknown payment status {reported.status!r}",
                code="unknown_payment_status",
                operation="confirm_checkout",
                entity_id=session.session_id,
            )

        session.resolve(outcome, provider_status=reported.status)
        persist(session, operation="confirm_checkout")
        logger.info(
            "Checkout session resolved",
            session_id=session.session_id,
            order_id=str(session.order_id),
            status=outcome.value,
            provider_status=reported.status,
        )
        return CheckoutConfirmation(status=outcome.value, order_id=str(session.order_id))
