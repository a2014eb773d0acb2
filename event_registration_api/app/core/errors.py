"""
Domain error types and their HTTP mapping.

Services raise one of the ``DomainError`` subclasses with a
human-readable message.  The exception handler installed by
``register_exception_handlers`` turns them into JSON responses of the
form ``{"detail": <message>, "error": <kind>}`` so endpoints never
translate errors by hand.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class of all failures raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """A referenced user, event, registration or ticket does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class ValidationError(DomainError):
    """Input is well-formed but violates a business rule (past date, missing code)."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class ConflictError(DomainError):
    """The operation clashes with current state (duplicate, full, already cancelled)."""

    status_code = status.HTTP_409_CONFLICT
    error = "conflict"


class ForbiddenError(DomainError):
    """The acting user lacks the role or ownership required."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"


class InternalError(DomainError):
    """Unexpected persistence failure, e.g. a constraint violation on delete."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_error"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.error, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the ``DomainError`` handler on ``app``."""
    app.add_exception_handler(DomainError, domain_error_handler)
