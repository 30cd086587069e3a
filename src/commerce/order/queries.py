"""Order reads: single order with optional sub-records, and cursor-paged lists.

Ownership is not checked here; callers compare ``order.user_id`` with the
requesting user so one path serves both customer and staff reads.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime

from protean.utils.globals import current_domain

from commerce.errors import InvalidInputError, UnavailableError
from commerce.order.order import Order
from commerce.order.payment import Payment, payments_for
from commerce.order.production import ProductionEvent, production_events_for
from commerce.order.shipment import Shipment, shipments_for
from commerce.order.status import coerce_status
from commerce.shared.clock import as_utc
from commerce.shared.storage import fetch

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class OrderView:
    """An order plus whichever sub-records were asked for (None when not loaded)."""

    order: Order
    payments: tuple[Payment, ...] | None = None
    shipments: tuple[Shipment, ...] | None = None
    production_events: tuple[ProductionEvent, ...] | None = None


@dataclass(frozen=True)
class OrderPage:
    items: tuple[Order, ...]
    next_page_token: str  # empty on the last page


def get_order(order_id, include_payments=False, include_shipments=False, include_production_events=False):
    order = fetch(Order, order_id, operation="get_order")
    return OrderView(
        order=order,
        payments=tuple(payments_for(order.id)) if include_payments else None,
        shipments=tuple(shipments_for(order.id)) if include_shipments else None,
        production_events=tuple(production_events_for(order.id)) if include_production_events else None,
    )


def encode_page_token(offset: int) -> str:
    raw = json.dumps({"offset": offset}).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_page_token(token: str) -> int:
    if not token:
        return 0
    try:
        padded = token + "=" * (-len(token) % 4)
        offset = json.loads(base64.urlsafe_b64decode(padded.encode()))["offset"]
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise InvalidInputError("malformed page token", code="invalid_page_token", operation="list_orders") from exc
    if not isinstance(offset, int) or offset < 0:
        raise InvalidInputError("malformed page token", code="invalid_page_token", operation="list_orders")
    return offset


def list_orders(
    user_id=None,
    statuses=None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    page_token: str = "",
) -> OrderPage:
    """List orders matching every given filter; ``statuses`` match any of the set."""
    if page_size is None or page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(page_size, MAX_PAGE_SIZE)
    offset = decode_page_token(page_token)

    filters = {}
    if user_id:
        filters["user_id"] = str(user_id)
    if statuses:
        try:
            filters["status__in"] = sorted({coerce_status(status).value for status in statuses})
        except ValueError as exc:
            raise InvalidInputError("unknown order status in filter", code="invalid_status") from exc
    if created_from is not None:
        filters["created_at__gte"] = as_utc(created_from)
    if created_to is not None:
        filters["created_at__lte"] = as_utc(created_to)

    try:
        query = current_domain.repository_for(Order)._dao.query.filter(**filters)
        result = query.order_by("-created_at").offset(offset).limit(page_size).all()
    except OSError as exc:
        raise UnavailableError("storage unavailable", operation="list_orders") from exc

    items = tuple(result.items)
    next_offset = offset + len(items)
    has_more = bool(items) and result.total > next_offset
    return OrderPage(items=items, next_page_token=encode_page_token(next_offset) if has_more else "")
