"""Commerce bounded context: carts, pricing, promotions, orders and checkout.

Carts and orders are standard CQRS aggregates (not event sourced). Orders
follow a strict status graph; checkout bridges carts to orders through an
external payment provider.
"""

import structlog
from protean.domain import Domain

from commerce.utils.logging import configure_logging

configure_logging()

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
