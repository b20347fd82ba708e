"""
Domain exceptions raised by the service layer.

Services signal failures with ``ValueError`` subclasses so that callers
which only care about "the operation was rejected" can keep catching
``ValueError``.  Endpoints translate them to HTTP errors with
``http_error``.
"""

from fastapi import HTTPException, status


class NotFoundError(ValueError):
    """The referenced record does not exist."""


class ConflictError(ValueError):
    """The operation clashes with the current state (duplicates, busy bay)."""


class PermissionDeniedError(ValueError):
    """The acting role may not perform this operation."""


class InvalidTransitionError(ValueError):
    """A status change that the workflow does not allow."""


def http_error(exc: ValueError) -> HTTPException:
    """Map a service exception to the matching ``HTTPException``."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, PermissionDeniedError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
