"""Order creation from a cart snapshot: command and handler.

Placing an order does not clear the cart. Checkout clears it only after the
payment session exists, so a failed session leaves the cart for a retry.
"""

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Dict, Identifier, String

from commerce.cart.cart import Cart
from commerce.cart.estimation import CartEstimateResult, price_cart, resolve_address
from commerce.domain import commerce
from commerce.errors import InvalidInputError, InvalidStateError
from commerce.order.numbering import next_order_number
from commerce.order.order import (
    RESERVATION_ID_KEY,
    ContactInfo,
    Order,
    OrderAddress,
    OrderFulfillment,
    OrderPromotion,
    OrderTotals,
)
from commerce.order.status import OrderStatus
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


def place_order(
    cart: Cart,
    pricing: CartEstimateResult,
    status=OrderStatus.PENDING_PAYMENT,
    reservation_id=None,
    created_by=None,
    contact=None,
    fulfillment=None,
    is_gift=False,
    requires_manual_review=False,
    metadata=None,
) -> Order:
    """Snapshot ``cart`` priced as ``pricing`` into a new order and store it."""
    if not cart.items:
        raise InvalidStateError(
            "cannot create an order from an empty cart",
            code="empty_cart",
            operation="create_order",
            entity_id=str(cart.id),
        )

    shipping_address = resolve_address(cart.user_id, cart.shipping_address_id, "create_order")
    billing_address = resolve_address(cart.user_id, cart.billing_address_id, "create_order")

    promotion = None
    if pricing.promotion is not None and pricing.promotion.applied:
        promotion = OrderPromotion(
            code=pricing.promotion.code,
            discount_amount=pricing.promotion.discount_amount,
            description=pricing.promotion.description,
        )

    metadata = dict(metadata or {})
    if reservation_id:
        metadata[RESERVATION_ID_KEY] = reservation_id

    estimate = pricing.estimate
    order = Order.create(
        user_id=cart.user_id,
        order_number=next_order_number(),
        currency=pricing.currency,
        items_data=[
            {
                "product_id": str(item.product_id),
                "sku": item.sku,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "options": item.customization,
                "source_item_id": str(item.id),
            }
            for item in cart.items
        ],
        totals=OrderTotals(
            subtotal=estimate.subtotal,
            discount=estimate.discount,
            tax=estimate.tax,
            shipping=estimate.shipping,
            fees=0,
            total=estimate.total,
        ),
        status=status,
        cart_id=cart.id,
        promotion=promotion,
        shipping_address=OrderAddress.from_address(shipping_address),
        billing_address=OrderAddress.from_address(billing_address or shipping_address),
        contact=contact,
        fulfillment=fulfillment,
        is_gift=is_gift,
        requires_manual_review=requires_manual_review,
        created_by=created_by,
        metadata=metadata,
        notes={"customer": cart.notes} if cart.notes else None,
    )
    persist(order, operation="create_order")
    logger.info(
        "Order created",
        order_id=str(order.id),
        order_number=order.order_number,
        user_id=str(cart.user_id),
        total=estimate.total,
        status=order.status,
    )
    return order


@commerce.command(part_of="Order")
class CreateOrderFromCart:
    user_id = Identifier(required=True)
    status = String(max_length=32, default=OrderStatus.PENDING_PAYMENT.value)
    reservation_id = String(max_length=100)
    contact_email = String(max_length=255)
    contact_phone = String(max_length=30)
    contact_name = String(max_length=255)
    requested_ship_date = DateTime()
    requested_delivery_date = DateTime()
    is_gift = Boolean(default=False)
    requires_manual_review = Boolean(default=False)
    order_metadata = Dict()
    actor_id = String(max_length=100)


@commerce.command_handler(part_of=Order)
class CreateOrderFromCartHandler:
    @handle(CreateOrderFromCart)
    def create_order_from_cart(self, command):
        status = (command.status or OrderStatus.PENDING_PAYMENT.value).strip().lower()
        if status not in (OrderStatus.DRAFT.value, OrderStatus.PENDING_PAYMENT.value):
            raise InvalidInputError(
                "orders start as draft or pending_payment", code="invalid_initial_status", operation="create_order"
            )

        cart = fetch(Cart, command.user_id, operation="create_order")
        pricing = price_cart(cart)

        contact = None
        if command.contact_email or command.contact_phone or command.contact_name:
            contact = ContactInfo(
                email=command.contact_email, phone=command.contact_phone, name=command.contact_name
            )
        fulfillment = None
        if command.requested_ship_date or command.requested_delivery_date:
            fulfillment = OrderFulfillment(
                requested_ship_date=command.requested_ship_date,
                requested_delivery_date=command.requested_delivery_date,
            )

        return place_order(
            cart,
            pricing,
            status=status,
            reservation_id=command.reservation_id,
            created_by=command.actor_id or str(command.user_id),
            contact=contact,
            fulfillment=fulfillment,
            is_gift=bool(command.is_gift),
            requires_manual_review=bool(command.requires_manual_review),
            metadata=command.order_metadata,
        )
