"""Translate service exceptions into HTTP responses."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status

from backoffice.security import PermissionDeniedError
from backoffice.tickets.errors import TicketServiceError, TicketValidationError

SERVICE_ERRORS = (TicketServiceError, PermissionDeniedError)

_STATUS_BY_KIND = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "NotAssigned": status.HTTP_409_CONFLICT,
    "InvalidTransition": status.HTTP_409_CONFLICT,
    "StoreConflict": status.HTTP_409_CONFLICT,
    "ValidationError": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "Forbidden": status.HTTP_403_FORBIDDEN,
}


def to_http_exception(exc: TicketServiceError | PermissionDeniedError) -> HTTPException:
    detail: dict[str, Any] = {"error": exc.kind, "message": str(exc)}
    if isinstance(exc, TicketValidationError) and exc.errors:
        detail["errors"] = exc.errors
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=detail,
    )
