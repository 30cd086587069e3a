"""CheckoutSession aggregate: bridges a cart, its order and a provider session."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from protean.fields import DateTime, Identifier, Integer, String

from commerce.checkout.events import CheckoutSessionCreated, CheckoutSessionResolved
from commerce.domain import commerce
from commerce.shared.clock import as_utc, utc_now


class CheckoutStatus(Enum):
    PENDING = "pending"
    PENDING_CAPTURE = "pending_capture"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@commerce.aggregate
class CheckoutSession:
    session_id = String(required=True, max_length=255)  # provider session ID
    provider = String(required=True, max_length=50)
    user_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    intent_id = String(max_length=255)
    amount = Integer(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.PENDING.value)
    reservation_id = String(max_length=100)
    idempotency_key = String(max_length=128)
    redirect_url = String(max_length=1024)
    expires_at = DateTime()
    confirmed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(
        cls,
        session_id,
        provider,
        user_id,
        cart_id,
        order_id,
        amount,
        currency,
        intent_id=None,
        reservation_id=None,
        idempotency_key=None,
        redirect_url=None,
        expires_at=None,
    ):
        now = utc_now()
        session = cls(
            id=f"chk_{uuid4().hex}",
            session_id=session_id,
            provider=provider,
            user_id=str(user_id),
            cart_id=str(cart_id),
            order_id=str(order_id),
            intent_id=intent_id,
            amount=amount,
            currency=currency,
            status=CheckoutStatus.PENDING.value,
            reservation_id=reservation_id,
            idempotency_key=idempotency_key,
            redirect_url=redirect_url,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        session.raise_(
            CheckoutSessionCreated(
                checkout_id=str(session.id),
                session_id=session_id,
                provider=provider,
                user_id=str(user_id),
                order_id=str(order_id),
                amount=amount,
                currency=currency,
                reservation_id=reservation_id,
                expires_at=expires_at,
            )
        )
        return session

    @property
    def current_status(self) -> CheckoutStatus:
        return CheckoutStatus(self.status)

    def is_expired(self, at: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(at or utc_now()) >= as_utc(self.expires_at)

    def resolve(self, status: CheckoutStatus, provider_status=None):
        now = utc_now()
        self.status = status.value
        if status == CheckoutStatus.CONFIRMED and self.confirmed_at is None:
            self.confirmed_at = now
        self.updated_at = now
        self.raise_(
            CheckoutSessionResolved(
                checkout_id=str(self.id),
                session_id=self.session_id,
                order_id=str(self.order_id),
                status=status.value,
                provider_status=provider_status,
            )
        )


@commerce.repository(part_of=CheckoutSession)
class CheckoutSessionRepository:
    def find_by_session_id(self, session_id: str) -> CheckoutSession | None:
        results = self._dao.query.filter(session_id=session_id).all().items
        return results[0] if results else None
