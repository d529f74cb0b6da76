"""Request signing for the Ticket Evolution API.

Every call to the upstream API carries an ``X-Signature`` header holding a
base64 encoded HMAC-SHA256 of the canonical string::

    "{METHOD} {host}{path}?{suffix}"

``suffix`` is the compact JSON body for write requests, otherwise the query
parameters sorted by key. The provider recomputes the same string server side,
so the bytes must match exactly: the query string and body produced here are
also the ones transmitted (see :mod:`tixport.services.ticket_evolution`).
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Literal
from urllib.parse import quote, urlsplit

from .errors import ConfigurationError, InvalidUrlError

logger = logging.getLogger(__name__)

ApiVersion = Literal["v9", "v10"]

_MEDIA_TYPE: Final[str] = "application/vnd.ticketevolution.api+json; version={version}"
# Characters left unescaped by JavaScript's encodeURIComponent besides alphanumerics.
_COMPONENT_SAFE: Final[str] = "-_.!~*'()"
_DEFAULT_PORTS: Final[dict[str, int]] = {"http": 80, "https": 443}


@dataclass(frozen=True)
class SignatureRequest:
    """Description of one outbound request to be signed."""

    method: str
    host: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any | None = None


@dataclass(frozen=True)
class ConfigurationStatus:
    is_valid: bool
    errors: list[str]


def _render_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def canonical_query(params: Mapping[str, Any] | None) -> str:
    """Return ``params`` as a sorted, percent-encoded query string.

    Keys whose value is ``None`` are omitted.
    """

    if not params:
        return ""
    parts = []
    for key in sorted(params):
        value = params[key]
        if value is None:
            continue
        encoded_key = quote(str(key), safe=_COMPONENT_SAFE)
        encoded_value = quote(_render_scalar(value), safe=_COMPONENT_SAFE)
        parts.append(f"{encoded_key}={encoded_value}")
    return "&".join(parts)


def _integral_floats_as_ints(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Mapping):
        return {key: _integral_floats_as_ints(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_integral_floats_as_ints(item) for item in value]
    return value


def serialize_body(body: Any) -> str:
    """Serialize a request body to compact JSON, keeping key order.

    Integral floats render without a fractional part (``100.0`` becomes
    ``100``), the way the provider serializes numbers. NaN and infinity raise
    ``ValueError``.
    """

    return json.dumps(
        _integral_floats_as_ints(body),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_string(request: SignatureRequest) -> str:
    """Build the exact string that gets signed for ``request``."""

    if request.body is not None:
        suffix = serialize_body(request.body)
    else:
        suffix = canonical_query(request.query)
    return f"{request.method.upper()} {request.host}{request.path}?{suffix}"


def _split_url(url: str):
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(url)
    try:
        parts = urlsplit(url.strip())
        # Accessing ``port`` validates it and raises ValueError when malformed.
        port = parts.port
    except ValueError as exc:
        raise InvalidUrlError(url) from exc
    if not parts.scheme or not parts.hostname:
        raise InvalidUrlError(url)
    return parts, port


def extract_host(url: str) -> str:
    """Return the authority of ``url`` (host plus any non-default port)."""

    parts, port = _split_url(url)
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    if port is not None and _DEFAULT_PORTS.get(parts.scheme.lower()) != port:
        return f"{host}:{port}"
    return host


def extract_path(url: str) -> str:
    """Return the path component of ``url`` without its query string."""

    parts, _port = _split_url(url)
    return parts.path or "/"


class RequestSigner:
    """Produce signatures and authentication headers for upstream calls.

    The signer holds only the immutable token and secret, so one instance can
    be shared by all concurrent requests.
    """

    def __init__(self, api_token: str | None, api_secret: str | None) -> None:
        if not api_secret or not api_secret.strip():
            raise ConfigurationError(
                "TICKET_EVOLUTION_API_SECRET is required for signing requests"
            )
        self._token = api_token.strip() if api_token else None
        self._secret = api_secret.strip().encode("utf-8")

    def sign(self, request: SignatureRequest) -> str:
        message = canonical_string(request)
        digest = hmac.new(self._secret, message.encode("utf-8"), hashlib.sha256).digest()
        signature = base64.b64encode(digest).decode("ascii")
        if request.body is not None:
            # Bodies carry customer details; only the target is logged.
            logged_request = f"{request.method.upper()} {request.host}{request.path}"
        else:
            logged_request = message
        logger.debug(
            "Signed upstream request",
            extra={
                "event_action": "request_signed",
                "canonical_request": logged_request,
                "signature": signature,
            },
        )
        return signature

    def build_headers(
        self, request: SignatureRequest, api_version: ApiVersion = "v9"
    ) -> dict[str, str]:
        """Return the headers required by the provider for ``request``."""

        version = "10" if api_version == "v10" else "9"
        return {
            "X-Token": self._token or "",
            "X-Signature": self.sign(request),
            "Content-Type": "application/json",
            "Accept": _MEDIA_TYPE.format(version=version),
        }

    def validate_configuration(self) -> ConfigurationStatus:
        errors = []
        if not self._token:
            errors.append("TICKET_EVOLUTION_API_TOKEN is required")
        if not self._secret:
            errors.append("TICKET_EVOLUTION_API_SECRET is required")
        return ConfigurationStatus(is_valid=not errors, errors=errors)


__all__ = [
    "ApiVersion",
    "ConfigurationStatus",
    "RequestSigner",
    "SignatureRequest",
    "canonical_query",
    "canonical_string",
    "extract_host",
    "extract_path",
    "serialize_body",
]
