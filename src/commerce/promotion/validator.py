"""Promotion validation, shared by the cart and checkout paths.

Validation never trusts a previously stored discount: the code is looked up
again and the discount recomputed from the current subtotal.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from commerce.promotion.promotion import DiscountKind, Promotion, display_code, normalize_code
from commerce.shared.clock import as_utc, utc_now

logger = structlog.get_logger(__name__)

REASON_NOT_FOUND = "not_found"
REASON_INACTIVE = "inactive"
REASON_NOT_STARTED = "not_started"
REASON_EXPIRED = "expired"
REASON_CURRENCY_MISMATCH = "currency_mismatch"
REASON_MINIMUM_NOT_MET = "minimum_not_met"


@dataclass(frozen=True)
class PromotionContext:
    subtotal: int
    currency: str
    user_id: str | None = None
    at: datetime | None = None


@dataclass(frozen=True)
class PromotionValidation:
    valid: bool
    code: str
    discount_amount: int = 0
    reason: str | None = None
    description: str | None = None


def validate_promotion(code: str, context: PromotionContext) -> PromotionValidation:
    """Check ``code`` against the promotion store for the given cart context."""
    shown = display_code(code)
    normalized = normalize_code(code)
    if not normalized:
        return PromotionValidation(valid=False, code=shown, reason=REASON_NOT_FOUND)

    promotion = current_domain.repository_for(Promotion).find_by_code(normalized)
    if promotion is None:
        return PromotionValidation(valid=False, code=shown, reason=REASON_NOT_FOUND)

    reason = _ineligibility(promotion, context)
    if reason is not None:
        logger.debug("Promotion rejected", code=shown, reason=reason, user_id=context.user_id)
        return PromotionValidation(
            valid=False, code=shown, reason=reason, description=promotion.description
        )

    return PromotionValidation(
        valid=True,
        code=shown,
        discount_amount=promotion.discount_for(context.subtotal),
        description=promotion.description,
    )


def _ineligibility(promotion: Promotion, context: PromotionContext) -> str | None:
    if not promotion.is_active():
        return REASON_INACTIVE

    now = as_utc(context.at) or utc_now()
    if promotion.starts_at and now < as_utc(promotion.starts_at):
        return REASON_NOT_STARTED
    if promotion.ends_at and now >= as_utc(promotion.ends_at):
        return REASON_EXPIRED

    if promotion.kind == DiscountKind.FIXED.value and promotion.currency != context.currency.upper():
        return REASON_CURRENCY_MISMATCH
    if context.subtotal < (promotion.min_subtotal or 0):
        return REASON_MINIMUM_NOT_MET
    return None
