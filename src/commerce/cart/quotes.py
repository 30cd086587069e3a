"""In-process TTL cache for shipping quotes.

Estimates are recomputed often while a customer edits a cart; shipping
quotes for an unchanged destination and basket are reused until the TTL
lapses. Unresolved quotes are not cached.
"""

import threading
import time

from commerce.rates.port import ShippingRequest
from commerce.settings import get_settings

DEFAULT_MAX_ENTRIES = 10_000


def quote_key(request: ShippingRequest) -> str:
    address = request.address
    lines = sorted(
        f"{line.product_id}:{line.sku}:{line.quantity}:{line.unit_price}" for line in request.lines
    )
    parts = [
        address.country.upper(),
        address.postal_code.replace(" ", "").upper(),
        (address.region or "").upper(),
        request.currency,
        str(request.weight_grams),
        str(request.subtotal),
        str(request.discount),
        (request.promotion_code or "").lower(),
        ",".join(lines),
    ]
    return "|".join(parts)


class ShippingQuoteCache:
    """Quotes keyed by destination and basket.

    Expired entries are swept on every ``put``. ``max_entries`` bounds the
    map; the oldest entries are evicted first.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: dict[str, tuple[float, int]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, amount = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return amount

    def put(self, key: str, amount: int) -> None:
        if self.ttl_seconds <= 0:
            return
        now = time.monotonic()
        with self._lock:
            self._sweep(now)
            self._entries.pop(key, None)
            while self._entries and len(self._entries) >= self.max_entries:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (now + self.ttl_seconds, amount)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_cache: ShippingQuoteCache | None = None


def get_quote_cache() -> ShippingQuoteCache:
    global _cache
    if _cache is None:
        _cache = ShippingQuoteCache(ttl_seconds=get_settings().shipping_cache_ttl)
    return _cache


def reset_quote_cache() -> None:
    global _cache
    _cache = None
