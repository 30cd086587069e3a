"""Checkout session creation: command and handler.

The amount sent to the provider is always the total of a fresh estimate of
the stored cart; nothing the client computed is trusted. Steps run in a
fixed order and each external side effect is undone when a later step
fails:

    1. Re-estimate the cart (an empty cart cannot be checked out)
    2. Reserve stock for every line
    3. Create the provider session, releasing the reservation on failure
    4. Place the order at ``pending_payment`` referencing the reservation
    5. Store the session and clear the cart
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from protean import handle
from protean.fields import Dict, Identifier, String

from commerce.cart.cart import Cart
from commerce.cart.estimation import price_cart
from commerce.checkout.session import CheckoutSession
from commerce.domain import commerce
from commerce.errors import ConflictError, InvalidStateError, UpstreamFailureError
from commerce.gateway import get_payment_provider
from commerce.inventory import get_inventory
from commerce.inventory.port import InsufficientStock, ReservationLine
from commerce.order.placement import place_order
from commerce.settings import get_settings
from commerce.shared.clock import rfc3339_nano, utc_now
from commerce.shared.collaborators import call_upstream
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)

RELEASE_REASON_PAYMENT_FAILED = "checkout_payment_failed"


@dataclass(frozen=True)
class CheckoutSessionResult:
    session_id: str
    psp: str
    client_secret: str | None
    redirect_url: str | None
    expires_at: datetime | None
    order_id: str
    amount: int
    currency: str


def default_idempotency_key(psp: str, cart: Cart, total: int) -> str:
    raw = f"{psp}|{cart.id}|{rfc3339_nano(cart.updated_at)}|{total}"
    return hashlib.sha256(raw.encode()).hexdigest()


@commerce.command(part_of="CheckoutSession")
class CreateCheckoutSession:
    user_id = Identifier(required=True)
    idempotency_key = String(max_length=128)
    session_metadata = Dict()
    actor_id = String(max_length=100)


def _reserve(lines, ttl_seconds, idempotency_key, timeout, cart_id):
    try:
        return get_inventory().reserve(lines, ttl_seconds, idempotency_key, timeout)
    except InsufficientStock as exc:
        raise ConflictError(
            str(exc), code="insufficient_stock", operation="create_checkout_session", entity_id=cart_id
        ) from exc


@commerce.command_handler(part_of=CheckoutSession)
class CreateCheckoutSessionHandler:
    @handle(CreateCheckoutSession)
    def create_checkout_session(self, command):
        settings = get_settings()
        provider = get_payment_provider()

        cart = fetch(Cart, command.user_id, operation="create_checkout_session")
        cart_id = str(cart.id)
        if not cart.items:
            raise InvalidStateError(
                "cannot check out an empty cart",
                code="empty_cart",
                operation="create_checkout_session",
                entity_id=cart_id,
            )

        # 1. Authoritative amount
        pricing = price_cart(cart)
        amount = pricing.estimate.total
        idempotency_key = command.idempotency_key or default_idempotency_key(provider.name, cart, amount)

        # 2. Stock
        reservation = call_upstream(
            "reserve_inventory",
            cart_id,
            _reserve,
            [
                ReservationLine(sku=item.sku, product_id=str(item.product_id), quantity=item.quantity)
                for item in cart.items
            ],
            settings.reservation_ttl,
            idempotency_key,
            settings.collaborator_timeout,
            cart_id,
        )

        # 3. Provider session
        metadata = dict(command.session_metadata or {})
        metadata.update(
            {
                "cart_id": cart_id,
                "user_id": str(cart.user_id),
                "reservation_id": reservation.reservation_id,
            }
        )
        try:
            provider_session = call_upstream(
                "create_payment_session",
                cart_id,
                provider.create_session,
                amount,
                pricing.currency,
                metadata,
                idempotency_key,
                timeout=settings.payment_timeout,
            )
        except UpstreamFailureError:
            call_upstream(
                "release_reservation",
                reservation.reservation_id,
                get_inventory().release,
                reservation.reservation_id,
                RELEASE_REASON_PAYMENT_FAILED,
                timeout=settings.collaborator_timeout,
            )
            raise

        # 4. Order
        order = place_order(
            cart,
            pricing,
            reservation_id=reservation.reservation_id,
            created_by=command.actor_id or str(cart.user_id),
            metadata={"checkoutSessionId": provider_session.session_id, "psp": provider.name},
        )

        # 5. Session and cart
        expires_at = provider_session.expires_at or utc_now() + timedelta(seconds=settings.checkout_session_ttl)
        session = CheckoutSession.open(
            session_id=provider_session.session_id,
            provider=provider.name,
            user_id=cart.user_id,
            cart_id=cart.id,
            order_id=order.id,
            amount=amount,
            currency=pricing.currency,
            intent_id=provider_session.intent_id,
            reservation_id=reservation.reservation_id,
            idempotency_key=idempotency_key,
            redirect_url=provider_session.redirect_url,
            expires_at=expires_at,
        )
        persist(session, operation="create_checkout_session")

        cart.clear(reason="checkout")
        persist(cart, operation="create_checkout_session")

        logger.info(
            "Checkout session created",
            session_id=provider_session.session_id,
            psp=provider.name,
            order_id=str(order.id),
            amount=amount,
            currency=pricing.currency,
            reservation_id=reservation.reservation_id,
        )
        return CheckoutSessionResult(
            session_id=provider_session.session_id,
            psp=provider.name,
            client_secret=provider_session.client_secret,
            redirect_url=provider_session.redirect_url,
            expires_at=expires_at,
            order_id=str(order.id),
            amount=amount,
            currency=pricing.currency,
        )
