"""Promotion aggregate: discount codes redeemable against a cart.

Codes are matched case-insensitively: they are stored lower-case and shown
upper-case. A promotion is either a percentage (in basis points) of the
subtotal or a fixed amount in minor units of one currency.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Integer, String

from commerce.domain import commerce
from commerce.shared.clock import as_utc, utc_now


class PromotionStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code: str | None) -> str:
    return (code or "").strip().lower()


def display_code(code: str | None) -> str:
    return (code or "").strip().upper()


@commerce.aggregate
class Promotion:
    code = String(required=True, max_length=64)
    description = String(max_length=255)
    kind = String(choices=DiscountKind, required=True)
    value = Integer(required=True, min_value=0)
    currency = String(max_length=3)
    min_subtotal = Integer(default=0, min_value=0)
    status = String(choices=PromotionStatus, default=PromotionStatus.ACTIVE.value)
    starts_at = DateTime()
    ends_at = DateTime()
    created_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_whole(self):
        if self.kind == DiscountKind.PERCENTAGE.value and self.value > 10_000:
            raise ValidationError({"value": ["Percentage discounts are capped at 10000 basis points"]})

    @invariant.post
    def fixed_discount_needs_currency(self):
        if self.kind == DiscountKind.FIXED.value and not self.currency:
            raise ValidationError({"currency": ["Fixed discounts must name a currency"]})

    @invariant.post
    def window_must_be_ordered(self):
        if self.starts_at and self.ends_at and as_utc(self.ends_at) <= as_utc(self.starts_at):
            raise ValidationError({"ends_at": ["Promotion must end after it starts"]})

    @classmethod
    def create(
        cls,
        code,
        kind,
        value,
        currency=None,
        description=None,
        min_subtotal=0,
        starts_at=None,
        ends_at=None,
    ):
        return cls(
            code=normalize_code(code),
            kind=kind.value if isinstance(kind, DiscountKind) else kind,
            value=value,
            currency=currency.strip().upper() if currency else None,
            description=description,
            min_subtotal=min_subtotal,
            starts_at=starts_at,
            ends_at=ends_at,
            status=PromotionStatus.ACTIVE.value,
            created_at=utc_now(),
        )

    def deactivate(self):
        self.status = PromotionStatus.INACTIVE.value

    def is_active(self) -> bool:
        return (self.status or "").strip().lower() == PromotionStatus.ACTIVE.value

    def discount_for(self, subtotal: int) -> int:
        """Discount in minor units for ``subtotal``, never more than the subtotal."""
        if subtotal <= 0:
            return 0
        if self.kind == DiscountKind.PERCENTAGE.value:
            amount = subtotal * self.value // 10_000
        else:
            amount = self.value
        return max(0, min(amount, subtotal))


@commerce.repository(part_of=Promotion)
class PromotionRepository:
    def find_by_code(self, code: str) -> Promotion | None:
        results = self._dao.query.filter(code=normalize_code(code)).all().items
        return results[0] if results else None
