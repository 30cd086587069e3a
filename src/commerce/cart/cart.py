"""Cart aggregate (CQRS): one mutable cart per user.

The cart identity is the user ID. ``updated_at`` doubles as the optimistic
concurrency token: it strictly increases on every mutation, and mutating
commands may carry the value they last saw. A stale token is a conflict.

The cart is never deleted. After an order is created from it, it is cleared
and reused.
"""

from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from commerce.cart.events import (
    CartCleared,
    CartCreated,
    CartItemRemoved,
    CartItemUpserted,
    CartPromotionApplied,
    CartPromotionRemoved,
    CartUpdated,
)
from commerce.domain import commerce
from commerce.errors import ConflictError, InvalidInputError, NotFoundError
from commerce.shared.clock import as_utc, next_timestamp, utc_now
from commerce.shared.money import normalize_currency
from commerce.shared.payload import decode_map, encode

_UNSET = object()

MAX_NOTES_LENGTH = 2000
MAX_PROMOTION_HINT_LENGTH = 120
MAX_SKU_LENGTH = 100

# Cart metadata keys written by promotion application
PROMOTION_SOURCE_KEY = "promotion_source"
PROMOTION_IDEMPOTENCY_KEY = "promotion_idempotency_key"


@commerce.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=MAX_SKU_LENGTH)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)  # minor units
    currency = String(required=True, max_length=3)
    customization_json = Text()
    metadata_json = Text()
    estimates_json = Text()
    requires_shipping = Boolean(default=True)
    added_at = DateTime()
    updated_at = DateTime()

    @property
    def customization(self) -> dict:
        return decode_map(self.customization_json)

    @property
    def metadata(self) -> dict:
        return decode_map(self.metadata_json)

    @property
    def estimates(self) -> dict:
        return decode_map(self.estimates_json)

    @property
    def line_subtotal(self) -> int:
        return self.unit_price * self.quantity

    def signature(self) -> tuple[str, str, str]:
        """Identity used to merge repeated adds of the same configured product."""
        return (str(self.product_id), self.sku, encode(self.customization))


@commerce.value_object(part_of="Cart")
class CartPromotion:
    code = String(required=True, max_length=64)  # upper-case for display
    discount_amount = Integer(default=0, min_value=0)
    applied = Boolean(default=True)
    description = String(max_length=255)

    @property
    def normalized_code(self) -> str:
        return self.code.strip().lower()


@commerce.value_object(part_of="Cart")
class CartEstimate:
    subtotal = Integer(default=0)
    discount = Integer(default=0)
    tax = Integer(default=0)
    shipping = Integer(default=0)
    total = Integer(default=0)


@commerce.aggregate
class Cart:
    user_id = Identifier(required=True)
    currency = String(max_length=3, default="JPY")
    items = HasMany(CartItem)
    shipping_address_id = String(max_length=64)
    billing_address_id = String(max_length=64)
    promotion = ValueObject(CartPromotion)
    estimate = ValueObject(CartEstimate)
    notes = Text()
    promotion_hint = String(max_length=MAX_PROMOTION_HINT_LENGTH)
    metadata_json = Text()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id, currency="JPY"):
        now = utc_now()
        cart = cls(
            id=str(user_id),
            user_id=str(user_id),
            currency=normalize_currency(currency),
            metadata_json=encode({}),
            created_at=now,
            updated_at=now,
        )
        cart.raise_(CartCreated(cart_id=str(cart.id), user_id=str(user_id), currency=cart.currency))
        return cart

    # -------------------------------------------------------------------
    # Concurrency
    # -------------------------------------------------------------------
    def check_token(self, expected_updated_at):
        """Fail with a conflict when the caller's token is stale."""
        if expected_updated_at is None:
            return
        if as_utc(expected_updated_at) != as_utc(self.updated_at):
            raise ConflictError(
                "cart was modified concurrently",
                code="cart_conflict",
                entity_id=str(self.id),
            )

    def _touch(self, keep_estimate=False):
        self.updated_at = next_timestamp(self.updated_at)
        if not keep_estimate:
            self.estimate = None

    @property
    def metadata(self) -> dict:
        return decode_map(self.metadata_json)

    def merge_metadata(self, values: dict):
        merged = self.metadata
        merged.update(values)
        self.metadata_json = encode(merged)

    def find_item(self, item_id) -> CartItem | None:
        return next((i for i in self.items if str(i.id) == str(item_id)), None)

    @property
    def requires_shipping(self) -> bool:
        return any(item.requires_shipping for item in self.items)

    # -------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------
    def update_details(
        self,
        currency=_UNSET,
        shipping_address_id=_UNSET,
        billing_address_id=_UNSET,
        notes=_UNSET,
        promotion_hint=_UNSET,
    ):
        """Partially update cart details.

        ``_UNSET`` leaves a field unchanged; ``None`` clears it. Currency can
        only change while every item is already priced in the new currency.
        """
        changed = []

        if currency is not _UNSET:
            if currency is None:
                raise InvalidInputError("currency cannot be cleared", code="invalid_currency")
            new_currency = normalize_currency(currency)
            mismatched = [i.sku for i in self.items if i.currency != new_currency]
            if mismatched:
                raise InvalidInputError(
                    f"cart holds items priced in {self.currency}",
                    code="currency_mismatch",
                    entity_id=str(self.id),
                )
            if new_currency != self.currency:
                self.currency = new_currency
                changed.append("currency")

        if notes is not _UNSET:
            if notes is not None and len(notes) > MAX_NOTES_LENGTH:
                raise InvalidInputError(f"notes exceed {MAX_NOTES_LENGTH} characters", code="notes_too_long")
            self.notes = notes
            changed.append("notes")

        if promotion_hint is not _UNSET:
            if promotion_hint is not None and len(promotion_hint) > MAX_PROMOTION_HINT_LENGTH:
                raise InvalidInputError(
                    f"promotion hint exceeds {MAX_PROMOTION_HINT_LENGTH} characters",
                    code="promotion_hint_too_long",
                )
            self.promotion_hint = promotion_hint
            changed.append("promotion_hint")

        if shipping_address_id is not _UNSET:
            self.shipping_address_id = shipping_address_id
            changed.append("shipping_address_id")

        if billing_address_id is not _UNSET:
            self.billing_address_id = billing_address_id
            changed.append("billing_address_id")

        self._touch()
        self.raise_(CartUpdated(cart_id=str(self.id), changed_fields=encode(changed)))

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def upsert_item(
        self,
        product_id,
        sku,
        quantity,
        unit_price,
        item_id=None,
        currency=None,
        customization=None,
        metadata=None,
        requires_shipping=True,
    ) -> CartItem:
        """Add an item, replace one in place by ID, or merge into a matching line.

        Without ``item_id`` a line with the same product, SKU and customization
        absorbs the quantity; anything else is appended as a new line.
        """
        if quantity is None or quantity <= 0:
            raise InvalidInputError("quantity must be greater than zero", code="invalid_quantity")
        if unit_price is None or unit_price < 0:
            raise InvalidInputError("unit price must not be negative", code="invalid_unit_price")
        sku = (sku or "").strip()
        if not sku or len(sku) > MAX_SKU_LENGTH:
            raise InvalidInputError("sku is required and at most 100 characters", code="invalid_sku")
        if not product_id:
            raise InvalidInputError("product is required", code="invalid_product")

        item_currency = normalize_currency(currency, default=self.currency)
        if item_currency != self.currency:
            raise InvalidInputError(
                f"item currency {item_currency} does not match cart currency {self.currency}",
                code="currency_mismatch",
                entity_id=str(self.id),
            )

        customization_json = encode(customization or {})
        now = utc_now()
        merged = False

        if item_id:
            item = self.find_item(item_id)
            if item is None:
                raise NotFoundError("cart item not found", code="item_not_found", entity_id=str(item_id))
            item.product_id = str(product_id)
            item.sku = sku
            item.quantity = quantity
            item.unit_price = unit_price
            item.currency = item_currency
            item.customization_json = customization_json
            item.metadata_json = encode(metadata or {})
            item.requires_shipping = requires_shipping
            item.estimates_json = None
            item.updated_at = now
        else:
            signature = (str(product_id), sku, customization_json)
            item = next((i for i in self.items if i.signature() == signature), None)
            if item is not None:
                item.quantity += quantity
                item.unit_price = unit_price
                if metadata:
                    item.metadata_json = encode({**item.metadata, **metadata})
                item.estimates_json = None
                item.updated_at = now
                merged = True
            else:
                item = CartItem(
                    product_id=str(product_id),
                    sku=sku,
                    quantity=quantity,
                    unit_price=unit_price,
                    currency=item_currency,
                    customization_json=customization_json,
                    metadata_json=encode(metadata or {}),
                    requires_shipping=requires_shipping,
                    added_at=now,
                    updated_at=now,
                )
                self.add_items(item)

        self._touch()
        self.raise_(
            CartItemUpserted(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
                sku=item.sku,
                quantity=item.quantity,
                merged=merged,
            )
        )
        return item

    def remove_item(self, item_id) -> bool:
        """Remove an item. Removing an absent item changes nothing."""
        item = self.find_item(item_id)
        if item is None:
            return False

        self.remove_items(item)
        self._touch()
        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))
        return True

    def record_item_estimates(self, estimates_by_item: dict):
        """Store per-item computed amounts (tax, shipping share...) from the last estimate."""
        for item in self.items:
            values = estimates_by_item.get(str(item.id))
            if values is not None:
                item.estimates_json = encode(values)

    # -------------------------------------------------------------------
    # Promotions and estimates
    # -------------------------------------------------------------------
    def apply_promotion(self, promotion: CartPromotion, estimate: CartEstimate, idempotency_key=None, source=None):
        self.promotion = promotion
        self.estimate = estimate

        updates = {}
        if idempotency_key:
            updates[PROMOTION_IDEMPOTENCY_KEY] = idempotency_key
        if source:
            updates[PROMOTION_SOURCE_KEY] = source
        if updates:
            self.merge_metadata(updates)

        self._touch(keep_estimate=True)
        self.raise_(
            CartPromotionApplied(
                cart_id=str(self.id),
                code=promotion.code,
                discount_amount=promotion.discount_amount,
                idempotency_key=idempotency_key,
            )
        )

    def remove_promotion(self, estimate: CartEstimate | None = None):
        if self.promotion is None:
            return
        code = self.promotion.code
        self.promotion = None
        self.estimate = estimate
        self._touch(keep_estimate=True)
        self.raise_(CartPromotionRemoved(cart_id=str(self.id), code=code))

    def clear(self, reason=None):
        """Empty the cart after checkout. Addresses and currency are kept."""
        for item in list(self.items):
            self.remove_items(item)
        self.promotion = None
        self._touch()
        self.raise_(CartCleared(cart_id=str(self.id), reason=reason))
