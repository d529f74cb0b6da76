"""Access logging middleware for the storefront API."""

from __future__ import annotations

import logging
import os
import random
import time
import traceback
import uuid
from dataclasses import dataclass, field
from typing import Any

from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ..logging import anonymize_ip, bind_request_context, reset_request_context
from ..utils.network import get_client_ip

REQUEST_ID_HEADER = "X-Request-ID"


def _env_float(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, default))
    except ValueError:
        return default
    return value if value >= 0 else default


@dataclass
class _Outcome:
    status_code: int = 500
    extra: dict[str, Any] = field(default_factory=dict)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one ECS record per request and propagate ``X-Request-ID``.

    Successful health probes are not logged. Other successful requests are
    sampled with ``ACCESS_LOG_SAMPLE``; failures and requests slower than
    ``SLOW_REQUEST_MS`` are always logged.
    """

    quiet_paths = frozenset({"/health", "/api/health"})

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("tixport.access")
        self.sample_rate = min(1.0, _env_float("ACCESS_LOG_SAMPLE", 1.0))
        self.slow_request_ns = int(_env_float("SLOW_REQUEST_MS", 1000.0) * 1_000_000)
        self._random = random.SystemRandom()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter_ns()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        client_ip = get_client_ip(request)
        logged_ip = anonymize_ip(client_ip)
        request.state.request_id = request_id
        request.state.client_ip = client_ip

        tokens = bind_request_context(request_id=request_id, client_ip=logged_ip)
        outcome = _Outcome()
        try:
            response = await call_next(request)
            outcome.status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except HTTPException as exc:
            outcome.status_code = exc.status_code
            outcome.extra["error_type"] = type(exc).__name__
            if isinstance(exc.detail, str):
                outcome.extra["error_message"] = exc.detail
            raise
        except Exception as exc:
            outcome.extra.update(
                error_type=type(exc).__name__,
                error_message=str(exc),
                error_stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            )
            raise
        finally:
            self._log(request, request_id, logged_ip, outcome, time.perf_counter_ns() - started)
            reset_request_context(tokens)

    def _log(
        self,
        request: Request,
        request_id: str,
        client_ip: str | None,
        outcome: _Outcome,
        duration_ns: int,
    ) -> None:
        status_code = outcome.status_code
        slow = duration_ns >= self.slow_request_ns
        if not self._should_log(request.url.path, status_code, slow):
            return

        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        extra: dict[str, Any] = {
            "request_id": request_id,
            "http_request_method": request.method,
            "url_path": request.url.path,
            "url_query": request.url.query or None,
            "http_status_code": status_code,
            "event_duration": duration_ns,
            "client_ip": client_ip,
            "user_agent": request.headers.get("User-Agent") or None,
            "event_dataset": "tixport-api.access",
            **outcome.extra,
        }
        if slow:
            extra["event_action"] = "slow_request"
        self.logger.log(
            level, f"{request.method} {request.url.path} -> {status_code}", extra=extra
        )

    def _should_log(self, path: str, status_code: int, slow: bool) -> bool:
        if status_code >= 400 or slow:
            return True
        if path in self.quiet_paths:
            return False
        return self.sample_rate >= 1.0 or self._random.random() < self.sample_rate


__all__ = ["LoggingMiddleware", "REQUEST_ID_HEADER"]
