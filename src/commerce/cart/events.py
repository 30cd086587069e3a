"""Domain events for the Cart aggregate."""

from protean.fields import Boolean, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Cart")
class CartCreated:
    """A user's cart was created on first access."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    currency = String(required=True, max_length=3)


@commerce.event(part_of="Cart")
class CartUpdated:
    """Cart-level details (currency, addresses, notes, hint) changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    changed_fields = Text(required=True)  # JSON array of field names


@commerce.event(part_of="Cart")
class CartItemUpserted:
    """An item was added, replaced in place, or merged into an existing line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=100)
    quantity = Integer(required=True)
    merged = Boolean(default=False)


@commerce.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@commerce.event(part_of="Cart")
class CartPromotionApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True, max_length=64)
    discount_amount = Integer(required=True)
    idempotency_key = String(max_length=255)


@commerce.event(part_of="Cart")
class CartPromotionRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True, max_length=64)


@commerce.event(part_of="Cart")
class CartCleared:
    """All items and the promotion were removed, typically after checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    reason = String(max_length=100)
