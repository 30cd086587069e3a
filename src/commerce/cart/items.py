"""Cart item management: commands and handler.

Both handlers return the whole refreshed cart rather than the touched item,
so callers always see totals that match the items they hold.
"""

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Dict, Identifier, Integer, String

from commerce.cart.cart import Cart
from commerce.cart.management import get_or_create_cart
from commerce.domain import commerce
from commerce.shared.storage import persist

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Cart")
class AddOrUpdateCartItem:
    user_id = Identifier(required=True)
    item_id = Identifier()
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=255)
    quantity = Integer()
    unit_price = Integer()
    currency = String(max_length=16)
    customization = Dict()
    item_metadata = Dict()
    requires_shipping = Boolean(default=True)
    expected_updated_at = DateTime()


@commerce.command(part_of="Cart")
class RemoveCartItem:
    user_id = Identifier(required=True)
    item_id = Identifier(required=True)
    expected_updated_at = DateTime()


@commerce.command_handler(part_of=Cart)
class CartItemsHandler:
    @handle(AddOrUpdateCartItem)
    def add_or_update_item(self, command):
        cart = get_or_create_cart(command.user_id, operation="add_or_update_item")
        cart.check_token(command.expected_updated_at)

        item = cart.upsert_item(
            product_id=command.product_id,
            sku=command.sku,
            quantity=command.quantity,
            unit_price=command.unit_price,
            item_id=command.item_id,
            currency=command.currency,
            customization=command.customization,
            metadata=command.item_metadata,
            requires_shipping=command.requires_shipping is not False,
        )
        persist(cart, operation="add_or_update_item")
        logger.info(
            "Cart item upserted",
            user_id=str(command.user_id),
            item_id=str(item.id),
            sku=item.sku,
            quantity=item.quantity,
        )
        return cart

    @handle(RemoveCartItem)
    def remove_item(self, command):
        cart = get_or_create_cart(command.user_id, operation="remove_item")
        cart.check_token(command.expected_updated_at)

        if cart.remove_item(command.item_id):
            persist(cart, operation="remove_item")
            logger.info("Cart item removed", user_id=str(command.user_id), item_id=str(command.item_id))
        return cart
