"""Runtime settings for the commerce core, read from the environment."""

import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    default_currency: str = "JPY"
    shipping_cache_ttl: int = 300  # seconds
    reservation_ttl: int = 900
    checkout_session_ttl: int = 1800
    collaborator_timeout: float = 5.0
    payment_timeout: float = 10.0
    tax_rate_bps: int = 1000
    flat_shipping: int = 800

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            default_currency=os.environ.get("COMMERCE_DEFAULT_CURRENCY", "JPY").strip().upper(),
            shipping_cache_ttl=_int_env("COMMERCE_SHIPPING_CACHE_TTL", 300),
            reservation_ttl=_int_env("COMMERCE_RESERVATION_TTL", 900),
            checkout_session_ttl=_int_env("COMMERCE_CHECKOUT_SESSION_TTL", 1800),
            collaborator_timeout=_float_env("COMMERCE_COLLABORATOR_TIMEOUT", 5.0),
            payment_timeout=_float_env("COMMERCE_PAYMENT_TIMEOUT", 10.0),
            tax_rate_bps=_int_env("COMMERCE_TAX_RATE_BPS", 1000),
            flat_shipping=_int_env("COMMERCE_FLAT_SHIPPING", 800),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
