"""Cart estimates: collaborator lookups feeding the pricing calculator.

``estimate_cart`` is read-only: overrides for the shipping address and the
promotion code price a "what if" without touching the stored cart. Problems
the customer can fix (no address, a promotion that no longer applies) are
reported as warnings, never as errors.
"""

from dataclasses import dataclass

import structlog

from commerce.addresses import get_address_book
from commerce.addresses.port import Address
from commerce.cart.cart import Cart, CartEstimate, CartPromotion
from commerce.cart.pricing import (
    DISCOUNT_SOURCE_PROMOTION,
    DISCOUNT_TYPE_PROMOTION,
    DiscountBreakdown,
    PricedLine,
    PricingBreakdown,
    clamp_discount,
    compose,
    subtotal_of,
)
from commerce.cart.quotes import get_quote_cache, quote_key
from commerce.errors import InvalidInputError
from commerce.promotion.validator import PromotionContext, validate_promotion
from commerce.rates import get_shipping_rates, get_tax_calculator
from commerce.rates.port import RateLine, ShippingRequest
from commerce.settings import get_settings
from commerce.shared.collaborators import call_upstream
from commerce.shared.storage import fetch

logger = structlog.get_logger(__name__)

WARNING_MISSING_SHIPPING_ADDRESS = "missing_shipping_address"
WARNING_PROMOTION_NOT_APPLIED = "promotion_not_applied"
WARNING_SHIPPING_UNAVAILABLE = "shipping_unavailable"


@dataclass(frozen=True)
class CartEstimateResult:
    currency: str
    estimate: CartEstimate
    breakdown: PricingBreakdown
    promotion: CartPromotion | None = None
    warnings: tuple[str, ...] = ()


def estimate_cart(user_id, shipping_address_id=None, promotion_code=None, bypass_shipping_cache=False):
    """Estimate the user's cart, optionally with a different address or code."""
    cart = fetch(Cart, user_id, operation="estimate_cart")
    return price_cart(
        cart,
        shipping_address_id=shipping_address_id,
        promotion_code=promotion_code,
        bypass_shipping_cache=bypass_shipping_cache,
    )


def resolve_address(user_id, address_id, operation) -> Address | None:
    if not address_id:
        return None
    settings = get_settings()
    return call_upstream(
        operation,
        str(address_id),
        get_address_book().get,
        str(user_id),
        str(address_id),
        timeout=settings.collaborator_timeout,
    )


def price_cart(
    cart: Cart,
    shipping_address_id=None,
    promotion_code=None,
    bypass_shipping_cache=False,
    include_stored_promotion=True,
):
    settings = get_settings()
    currency = cart.currency
    cart_id = str(cart.id)

    mismatched = [item.sku for item in cart.items if item.currency != currency]
    if mismatched:
        raise InvalidInputError(
            f"items {', '.join(mismatched)} are not priced in {currency}",
            code="currency_mismatch",
            operation="estimate_cart",
            entity_id=cart_id,
        )

    lines = [
        PricedLine(
            item_id=str(item.id),
            product_id=str(item.product_id),
            sku=item.sku,
            quantity=item.quantity,
            unit_price=item.unit_price,
            requires_shipping=bool(item.requires_shipping),
        )
        for item in cart.items
    ]
    warnings = []

    # 1. Subtotal
    subtotal = subtotal_of(lines)

    # 2. Discount, re-validated against the current subtotal
    discount = 0
    promotion = None
    discounts = ()
    code = promotion_code
    if not code and include_stored_promotion and cart.promotion is not None:
        code = cart.promotion.code
    if code:
        validation = validate_promotion(
            code, PromotionContext(subtotal=subtotal, currency=currency, user_id=str(cart.user_id))
        )
        if validation.valid:
            discount = clamp_discount(validation.discount_amount, subtotal)
            promotion = CartPromotion(
                code=validation.code,
                discount_amount=discount,
                applied=True,
                description=validation.description,
            )
            discounts = (
                DiscountBreakdown(
                    type=DISCOUNT_TYPE_PROMOTION,
                    code=validation.code,
                    source=DISCOUNT_SOURCE_PROMOTION,
                    description=validation.description,
                    amount=discount,
                ),
            )
        else:
            promotion = CartPromotion(
                code=validation.code, discount_amount=0, applied=False, description=validation.description
            )
            warnings.append(WARNING_PROMOTION_NOT_APPLIED)
            logger.info("Promotion not applied", cart_id=cart_id, code=validation.code, reason=validation.reason)

    if not lines:
        empty = compose([])
        return CartEstimateResult(
            currency=currency,
            estimate=_to_estimate(empty),
            breakdown=empty,
            promotion=promotion,
            warnings=tuple(warnings),
        )

    address = resolve_address(cart.user_id, shipping_address_id or cart.shipping_address_id, "estimate_cart")

    # 3. Tax on the discounted subtotal
    tax = call_upstream(
        "compute_tax",
        cart_id,
        get_tax_calculator().compute,
        subtotal - discount,
        address,
        currency,
        timeout=settings.collaborator_timeout,
    )

    # 4. Shipping
    shipping = 0
    if cart.requires_shipping:
        if address is None:
            warnings.append(WARNING_MISSING_SHIPPING_ADDRESS)
        else:
            request = ShippingRequest(
                lines=tuple(
                    RateLine(
                        item_id=str(item.id),
                        product_id=str(item.product_id),
                        sku=item.sku,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        weight_grams=int(item.metadata.get("weight_grams") or 0),
                        requires_shipping=bool(item.requires_shipping),
                    )
                    for item in cart.items
                ),
                address=address,
                currency=currency,
                subtotal=subtotal,
                discount=discount,
                promotion_code=promotion.code if promotion and promotion.applied else None,
            )
            quoted = _quote_shipping(request, cart_id, bypass_shipping_cache)
            if quoted is None:
                warnings.append(WARNING_SHIPPING_UNAVAILABLE)
            else:
                shipping = quoted

    # 5. Total, with per-item apportionment
    breakdown = compose(lines, discount=discount, tax=tax, shipping=shipping, discounts=discounts)
    return CartEstimateResult(
        currency=currency,
        estimate=_to_estimate(breakdown),
        breakdown=breakdown,
        promotion=promotion,
        warnings=tuple(warnings),
    )


def _quote_shipping(request: ShippingRequest, cart_id: str, bypass_cache: bool) -> int | None:
    cache = get_quote_cache()
    key = quote_key(request)
    if not bypass_cache:
        cached = cache.get(key)
        if cached is not None:
            return cached

    amount = call_upstream(
        "quote_shipping",
        cart_id,
        get_shipping_rates().quote,
        request,
        timeout=get_settings().collaborator_timeout,
    )
    if amount is not None:
        cache.put(key, amount)
    return amount


def _to_estimate(breakdown: PricingBreakdown) -> CartEstimate:
    return CartEstimate(
        subtotal=breakdown.subtotal,
        discount=breakdown.discount,
        tax=breakdown.tax,
        shipping=breakdown.shipping,
        total=breakdown.total,
    )
