"""Cart management: lazy creation, detail updates and clearing.

``UpdateCart`` is a patch: a field left as None is unchanged, a field named
in ``clear_fields`` is cleared, anything else is set. Setting and clearing
the same field is rejected.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, List, String, Text

from commerce.cart.cart import _UNSET, Cart
from commerce.cart.estimation import resolve_address
from commerce.domain import commerce
from commerce.errors import InvalidInputError
from commerce.settings import get_settings
from commerce.shared.storage import find, persist

logger = structlog.get_logger(__name__)

CLEARABLE_FIELDS = ("shipping_address_id", "billing_address_id", "notes", "promotion_hint")
PATCHABLE_FIELDS = ("currency",) + CLEARABLE_FIELDS


def get_or_create_cart(user_id, operation="get_or_create_cart") -> Cart:
    """Return the user's cart, creating an empty one on first access."""
    if not user_id:
        raise InvalidInputError("user is required", code="invalid_user", operation=operation)

    cart = find(Cart, user_id, operation=operation)
    if cart is None:
        cart = Cart.create(user_id=user_id, currency=get_settings().default_currency)
        persist(cart, operation=operation)
        logger.info("Cart created", user_id=str(user_id), currency=cart.currency)
    return cart


@commerce.command(part_of="Cart")
class UpdateCart:
    user_id = Identifier(required=True)
    currency = String(max_length=16)
    shipping_address_id = String(max_length=64)
    billing_address_id = String(max_length=64)
    notes = Text()
    promotion_hint = Text()
    clear_fields = List(content_type=String)
    expected_updated_at = DateTime()


@commerce.command(part_of="Cart")
class ClearCart:
    user_id = Identifier(required=True)
    reason = String(max_length=100)


def _patch_from(command) -> dict:
    clear = set(command.clear_fields or [])
    unknown = clear - set(CLEARABLE_FIELDS)
    if unknown:
        raise InvalidInputError(
            f"fields cannot be cleared: {', '.join(sorted(unknown))}",
            code="invalid_patch",
            operation="update_cart",
        )

    patch = {}
    for name in PATCHABLE_FIELDS:
        value = getattr(command, name)
        if name in clear:
            if value is not None:
                raise InvalidInputError(
                    f"{name} is both set and cleared", code="invalid_patch", operation="update_cart"
                )
            patch[name] = None
        elif value is not None:
            patch[name] = value

    if not patch:
        raise InvalidInputError("no fields to update", code="empty_patch", operation="update_cart")
    return patch


@commerce.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(UpdateCart)
    def update_cart(self, command):
        patch = _patch_from(command)

        cart = get_or_create_cart(command.user_id, operation="update_cart")
        cart.check_token(command.expected_updated_at)

        for name in ("shipping_address_id", "billing_address_id"):
            address_id = patch.get(name)
            if address_id and resolve_address(command.user_id, address_id, "update_cart") is None:
                raise InvalidInputError(
                    f"unknown address {address_id}",
                    code="invalid_address",
                    operation="update_cart",
                    entity_id=str(cart.id),
                )

        cart.update_details(**{name: patch.get(name, _UNSET) for name in PATCHABLE_FIELDS})
        persist(cart, operation="update_cart")
        logger.info("Cart updated", user_id=str(command.user_id), fields=sorted(patch))
        return cart

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = get_or_create_cart(command.user_id, operation="clear_cart")
        cart.clear(reason=command.reason)
        persist(cart, operation="clear_cart")
        return cart
