"""Middleware adding the configured security headers to every response."""

from collections.abc import Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

_HSTS = "strict-transport-security"


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses, error responses included.

    ``Strict-Transport-Security`` is only sent when the request arrived over
    HTTPS, either directly or according to ``X-Forwarded-Proto``. Headers a
    route already set are left untouched.
    """

    def __init__(self, app: ASGIApp, headers: Mapping[str, str | None] | None = None) -> None:
        super().__init__(app)
        configured = {name: value for name, value in (headers or {}).items() if value}
        self._hsts = {name: value for name, value in configured.items() if name.lower() == _HSTS}
        self._always = {name: value for name, value in configured.items() if name.lower() != _HSTS}

    async def dispatch(self, request, call_next):  # type: ignore[override]
        response = await call_next(request)
        headers = dict(self._always)
        if "https" in (request.url.scheme, request.headers.get("x-forwarded-proto", "").lower()):
            headers.update(self._hsts)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response
