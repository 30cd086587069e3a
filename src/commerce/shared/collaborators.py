"""Uniform handling of calls into external collaborators.

Every call is made exactly once. The caller passes ``timeout`` (seconds)
through to the adapter, and adapters must honour it by raising rather than
blocking past it. Failures, timeouts included, are re-raised as
``upstream_failure`` with the operation and entity attached; the original
exception stays chained as ``__cause__``.
"""

import structlog

from commerce.errors import CommerceError, UpstreamFailureError
from commerce.utils.logging import bound_context

logger = structlog.get_logger(__name__)


def call_upstream(operation: str, entity_id: str | None, func, *args, **kwargs):
    # Adapters logging inside the call inherit the operation and entity
    with bound_context(upstream_operation=operation, entity_id=entity_id):
        try:
            return func(*args, **kwargs)
        except CommerceError:
            raise
        except Exception as exc:
            logger.warning(
                "Collaborator call failed",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            code = "upstream_timeout" if isinstance(exc, TimeoutError) else "upstream_error"
            raise UpstreamFailureError(
                f"{type(exc).__name__}: {exc}",
                code=code,
                operation=operation,
                entity_id=entity_id,
            ) from exc
