"""Currency handling. Money is always an integer count of minor units."""

import re

from commerce.errors import InvalidInputError

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def normalize_currency(code: str | None, default: str | None = None) -> str:
    """Trim and upper-case an ISO-4217 code, rejecting anything not three letters."""
    value = (code or "").strip().upper()
    if not value:
        if default is None:
            raise InvalidInputError("currency is required", code="invalid_currency")
        value = default.strip().upper()
    if not _CURRENCY_RE.match(value):
        raise InvalidInputError(f"invalid currency code {code!r}", code="invalid_currency")
    return value


def apportion(amount: int, weights: list[int]) -> list[int]:
    """Split ``amount`` across ``weights`` so the shares sum to ``amount`` exactly.

    Each share is the floor of its pro-rata portion; whatever the flooring
    leaves over lands on the last share. Callers order ``weights`` by the
    tie-break they want (item ID ascending for cart lines). Zero total weight
    splits evenly under the same rule.
    """
    if not weights:
        return []
    total_weight = sum(weights)
    if total_weight <= 0:
        weights = [1] * len(weights)
        total_weight = len(weights)

    shares = [amount * weight // total_weight for weight in weights]
    shares[-1] += amount - sum(shares)
    return shares
