"""Domain events for checkout sessions."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="CheckoutSession")
class CheckoutSessionCreated:
    """A payment session was opened for a cart and its order placed."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    provider = String(required=True, max_length=50)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Integer(required=True)
    currency = String(required=True, max_length=3)
    reservation_id = String(max_length=100)
    expires_at = DateTime()


@commerce.event(part_of="CheckoutSession")
class CheckoutSessionResolved:
    """The provider reported a final or pending outcome for the session."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    provider_status = String(max_length=32)
