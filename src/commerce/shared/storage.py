"""Repository access with storage failures mapped onto the error taxonomy."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import NotFoundError, UnavailableError


def fetch(aggregate_cls, identifier, *, operation: str):
    """Load an aggregate by ID, raising NotFoundError when it does not exist."""
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError as exc:
        raise NotFoundError(
            f"{aggregate_cls.__name__.lower()} not found",
            code=f"{aggregate_cls.__name__.lower()}_not_found",
            operation=operation,
            entity_id=str(identifier),
        ) from exc
    except OSError as exc:
        raise UnavailableError("storage unavailable", operation=operation, entity_id=str(identifier)) from exc


def find(aggregate_cls, identifier, *, operation: str):
    """Like :func:`fetch` but returns None for a missing aggregate."""
    try:
        return fetch(aggregate_cls, identifier, operation=operation)
    except NotFoundError:
        return None


def persist(aggregate, *, operation: str):
    try:
        current_domain.repository_for(type(aggregate)).add(aggregate)
    except OSError as exc:
        raise UnavailableError("storage unavailable", operation=operation, entity_id=str(aggregate.id)) from exc
    return aggregate
