"""Exception handlers producing the ``{"success": false, "detail": ...}`` envelope."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException

from .errors import UpstreamError

logger = logging.getLogger("tixport.errors")

# Provider statuses passed through to the storefront; everything else is a 502.
_PASSTHROUGH_UPSTREAM_STATUSES = frozenset(
    {status.HTTP_404_NOT_FOUND, status.HTTP_429_TOO_MANY_REQUESTS}
)


def _error_response(
    request: Request,
    status_code: int,
    detail: Any,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    response = ORJSONResponse(
        status_code=status_code,
        content={"success": False, "detail": detail},
        headers=headers,
    )
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def _log_failure(
    request: Request, message: str, status_code: int, exc: Exception, **fields: Any
) -> None:
    logger.log(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        message,
        extra={
            "http_status_code": status_code,
            "http_request_method": request.method,
            "url_path": request.url.path,
            "error_type": type(exc).__name__,
            **fields,
        },
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    errors = exc.errors()
    _log_failure(
        request,
        "Request validation failed",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        exc,
        event_action="validation_failed",
        error_message=",".join(sorted({err.get("type", "unknown") for err in errors}))[:128],
        validation_error_count=len(errors),
    )
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


async def handle_http_exception(request: Request, exc: HTTPException) -> ORJSONResponse:
    _log_failure(
        request,
        "HTTP exception raised",
        exc.status_code,
        exc,
        event_action="http_exception",
        error_message=str(exc.detail)[:256],
    )
    return _error_response(request, exc.status_code, exc.detail, exc.headers)


async def handle_upstream_error(request: Request, exc: UpstreamError) -> ORJSONResponse:
    """Map provider failures to 404, 429 or 502 without leaking provider detail."""

    if exc.status_code in _PASSTHROUGH_UPSTREAM_STATUSES:
        status_code = exc.status_code
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    _log_failure(
        request,
        "Upstream ticketing request failed",
        status_code,
        exc,
        event_action="upstream_failure",
        upstream_status_code=exc.status_code,
        error_message=exc.message[:256],
    )
    return _error_response(
        request, status_code, exc.message, headers={"Cache-Control": "no-store"}
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> ORJSONResponse:
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(UpstreamError, handle_upstream_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
