"""API error handling middleware with consistent error responses.

Registers FastAPI exception handlers that convert domain exceptions into
standardised ``{"error": {"code": "...", "message": "..."}}`` JSON responses.

Status code mapping:
- ``KeyError`` (unknown provider lookup) → 404 Not Found
- ``ValueError`` (malformed boundaries, payloads, inputs) → 400 Bad Request
- Any other ``Exception`` → 500 Internal Server Error

Every request also gets a request id, echoed in ``X-Request-ID`` and bound
into log records for the duration of the request.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from calkit.api.models import ErrorDetail, ErrorResponse
from calkit.core.logging import reset_request_context, set_request_context
from calkit.providers import UnknownProviderError

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def _handle_key_error(
    request: Request,
    exc: KeyError,
) -> JSONResponse:
    """Return 404 when a provider (or other keyed resource) is not registered."""
    logger.info("Not found: %s", exc)
    if isinstance(exc, UnknownProviderError):
        message = str(exc)
    else:
        message = f"Not found: {exc.args[0] if exc.args else None}"
    body = ErrorResponse(
        error=ErrorDetail(
            code="NOT_FOUND",
            message=message,
        )
    )
    return JSONResponse(status_code=404, content=body.model_dump())


async def _handle_value_error(
    request: Request,
    exc: ValueError,
) -> JSONResponse:
    """Return 400 for validation / value errors."""
    logger.info("Validation error: %s", exc)
    body = ErrorResponse(
        error=ErrorDetail(
            code="VALIDATION_ERROR",
            message=str(exc),
            details={"type": type(exc).__name__},
        )
    )
    return JSONResponse(status_code=400, content=body.model_dump())


class CatchAllErrorMiddleware(BaseHTTPMiddleware):
    """ASGI middleware that catches any unhandled exception and returns a 500."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=True,
            )
            body = ErrorResponse(
                error=ErrorDetail(
                    code="INTERNAL_ERROR",
                    message="Internal server error",
                )
            )
            return JSONResponse(status_code=500, content=body.model_dump())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id into the logging context and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_context(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def register_error_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI application.

    Call this from ``create_app()`` after constructing the ``FastAPI`` instance.
    The catch-all is an ASGI middleware so that exceptions not covered by
    ``add_exception_handler`` still produce the standard error envelope.
    """
    app.add_exception_handler(KeyError, _handle_key_error)  # type: ignore[arg-type]
    app.add_exception_handler(ValueError, _handle_value_error)  # type: ignore[arg-type]
    app.add_middleware(CatchAllErrorMiddleware)
    app.add_middleware(RequestContextMiddleware)
