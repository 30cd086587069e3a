"""Promotion application on carts: commands and handler."""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String

from commerce.cart.cart import Cart
from commerce.cart.estimation import price_cart
from commerce.cart.management import get_or_create_cart
from commerce.domain import commerce
from commerce.errors import InvalidInputError
from commerce.promotion.promotion import normalize_code
from commerce.promotion.validator import PromotionContext, validate_promotion
from commerce.shared.storage import fetch, persist

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Cart")
class ApplyPromotion:
    user_id = Identifier(required=True)
    code = String(required=True, max_length=64)
    idempotency_key = String(max_length=255)
    source = String(max_length=50)
    expected_updated_at = DateTime()


@commerce.command(part_of="Cart")
class RemovePromotion:
    user_id = Identifier(required=True)
    expected_updated_at = DateTime()


@commerce.command_handler(part_of=Cart)
class CartPromotionsHandler:
    @handle(ApplyPromotion)
    def apply_promotion(self, command):
        if not normalize_code(command.code):
            raise InvalidInputError("promotion code is required", code="invalid_promotion_code")

        cart = get_or_create_cart(command.user_id, operation="apply_promotion")
        cart.check_token(command.expected_updated_at)

        subtotal = sum(item.line_subtotal for item in cart.items)
        validation = validate_promotion(
            command.code,
            PromotionContext(subtotal=subtotal, currency=cart.currency, user_id=str(command.user_id)),
        )
        if not validation.valid:
            raise InvalidInputError(
                f"promotion {validation.code} cannot be applied: {validation.reason}",
                code=f"promotion_{validation.reason}",
                operation="apply_promotion",
                entity_id=str(cart.id),
            )

        result = price_cart(cart, promotion_code=validation.code)
        cart.apply_promotion(
            result.promotion,
            result.estimate,
            idempotency_key=command.idempotency_key,
            source=command.source,
        )
        cart.record_item_estimates({line.item_id: line.to_estimates() for line in result.breakdown.items})
        persist(cart, operation="apply_promotion")

        logger.info(
            "Promotion applied",
            user_id=str(command.user_id),
            code=validation.code,
            discount=result.promotion.discount_amount,
            idempotency_key=command.idempotency_key,
        )
        return cart

    @handle(RemovePromotion)
    def remove_promotion(self, command):
        cart = fetch(Cart, command.user_id, operation="remove_promotion")
        cart.check_token(command.expected_updated_at)

        if cart.promotion is not None:
            code = cart.promotion.code
            result = price_cart(cart, include_stored_promotion=False)
            cart.remove_promotion(result.estimate)
            persist(cart, operation="remove_promotion")
            logger.info("Promotion removed", user_id=str(command.user_id), code=code)
        return cart
