"""Time helpers shared by carts, orders and checkout."""

from datetime import UTC, datetime, timedelta

_TICK = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def next_timestamp(previous: datetime | None) -> datetime:
    """A timestamp strictly later than ``previous`` (concurrency tokens must advance)."""
    now = utc_now()
    previous = as_utc(previous)
    if previous is not None and now <= previous:
        return previous + _TICK
    return now


def rfc3339_nano(value: datetime) -> str:
    """Format as RFC3339 with nanosecond precision, e.g. ``2026-01-02T03:04:05.123456000Z``."""
    value = as_utc(value)
    nanos = value.microsecond * 1000
    return f"{value:%Y-%m-%dT%H:%M:%S}.{nanos:09d}Z"


def parse_rfc3339(value: str) -> datetime:
    """Inverse of :func:`rfc3339_nano`; sub-microsecond digits are truncated."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    head, sep, tail = text.partition(".")
    if sep:
        digits = ""
        rest = ""
        for index, char in enumerate(tail):
            if not char.isdigit():
                rest = tail[index:]
                break
            digits += char
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    return as_utc(datetime.fromisoformat(text))
