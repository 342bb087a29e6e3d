"""Per-request authentication and logging context."""

from __future__ import annotations

import logging
import uuid
from time import perf_counter
from typing import Awaitable, Callable

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from backoffice.core.logging import request_context
from backoffice.dependencies.auth import resolve_user_from_token

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger(__name__)


def bearer_token(authorization: str | None) -> str | None:
    """Return the bearer credential, ``None`` when absent; other schemes are a 401."""

    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return credentials.strip() or None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Resolve the caller once, tag the request with an id and log its outcome.

    The user is stored on ``request.state.user`` for ``get_current_user``; the
    request id and username are bound to every log record written while the
    request is handled and echoed back in ``X-Request-ID``.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        try:
            user = resolve_user_from_token(bearer_token(request.headers.get("Authorization")))
        except HTTPException as exc:
            logger.info("Rejected credentials on %s %s [%s]", request.method, request.url.path, request_id)
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail},
                headers={REQUEST_ID_HEADER: request_id},
            )
        request.state.user = user

        started = perf_counter()
        with request_context(request_id, user.username):
            response = await call_next(request)
            logger.info(
                "%s %s -> %d (%.1f ms)",
                request.method,
                request.url.path,
                response.status_code,
                (perf_counter() - started) * 1000,
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
