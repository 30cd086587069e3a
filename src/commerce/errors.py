"""Error taxonomy for the commerce core.

Callers branch on ``kind`` (see :func:`error_kind`), never on message text.
The boundary layer maps kinds onto transport codes:

    invalid_input    -> 400
    not_found        -> 404
    conflict         -> 409
    invalid_state    -> 409
    upstream_failure -> 502
    unavailable      -> 503
"""

from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError


class ErrorKind(Enum):
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    INVALID_STATE = "invalid_state"
    UPSTREAM_FAILURE = "upstream_failure"


class CommerceError(Exception):
    """Base class for every error raised by the commerce core."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        operation: str | None = None,
        entity_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.operation = operation
        self.entity_id = entity_id

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.insert(0, f"{self.operation}:")
        if self.entity_id:
            parts.append(f"({self.entity_id})")
        return " ".join(parts)


class InvalidInputError(CommerceError):
    kind = ErrorKind.INVALID_INPUT


class ConflictError(CommerceError):
    kind = ErrorKind.CONFLICT


class NotFoundError(CommerceError):
    kind = ErrorKind.NOT_FOUND


class UnavailableError(CommerceError):
    kind = ErrorKind.UNAVAILABLE


class InvalidStateError(CommerceError):
    kind = ErrorKind.INVALID_STATE


class UpstreamFailureError(CommerceError):
    kind = ErrorKind.UPSTREAM_FAILURE


def error_kind(exc: BaseException) -> ErrorKind | None:
    """Classify an exception into the commerce error taxonomy.

    Field validation failures raised by protean while constructing commands or
    aggregates count as ``invalid_input``; repository misses as ``not_found``.
    Anything else is not a commerce error and returns ``None``.
    """
    if isinstance(exc, CommerceError):
        return exc.kind
    if isinstance(exc, ValidationError):
        return ErrorKind.INVALID_INPUT
    if isinstance(exc, ObjectNotFoundError):
        return ErrorKind.NOT_FOUND
    return None
