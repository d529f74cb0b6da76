"""Redaction rules applied to log records before they are written.

Three kinds of values never reach the log output verbatim:

* upstream credentials such as ``X-Token``, ``X-Signature`` and the API secret,
* precise coordinates, which are rounded to one decimal (about 11 km),
* caller addresses carried in query strings (``ip=203.0.113.5``).
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qsl, urlencode

MASKED_VALUE = "<redacted>"
MAX_FIELD_LENGTH = 1024

# Substrings of a normalised field name. Token-like fields keep a short prefix
# and suffix so operators can tell which credential was used.
TOKEN_MARKERS = ("token", "api_key", "apikey")
SECRET_MARKERS = ("secret", "signature", "password", "cookie", "authorization")

QUERY_STRING_KEYS = frozenset({"url_query", "query_string", "canonical_request"})

_LAT_NAMES = frozenset({"lat", "latitude"})
_LON_NAMES = frozenset({"lon", "lng", "longitude"})
_IP_PARAM_NAMES = frozenset({"ip", "client_ip"})

_LAT_BOUNDS = (-90.0, 90.0)
_LON_BOUNDS = (-180.0, 180.0)


def normalize_key(key: str) -> str:
    """Return ``key`` in lower snake case, e.g. ``X-Signature`` -> ``x_signature``."""

    snake = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", key)
    snake = re.sub(r"[^a-zA-Z0-9]+", "_", snake)
    return snake.strip("_").lower()


def _coordinate_bounds(name: str) -> tuple[float, float] | None:
    parts = set(name.split("_"))
    if parts & _LAT_NAMES:
        return _LAT_BOUNDS
    if parts & _LON_NAMES:
        return _LON_BOUNDS
    return None


def _credential_kind(name: str) -> str | None:
    if any(marker in name for marker in TOKEN_MARKERS):
        return "token"
    if any(marker in name for marker in SECRET_MARKERS):
        return "secret"
    return None


def mask_token(value: str) -> str:
    value = value.strip()
    if not value:
        return MASKED_VALUE
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}…{value[-4:]}"


def coarsen_coordinate(value: Any, bounds: tuple[float, float]) -> Any:
    """Round an in-range coordinate to one decimal; leave anything else alone."""

    low, high = bounds
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return round(float(value), 1) + 0.0 if low <= value <= high else value
    if isinstance(value, str):
        try:
            numeric = float(value.strip())
        except ValueError:
            return value
        if low <= numeric <= high:
            return f"{round(numeric, 1) + 0.0:.1f}"
    return value


def _sanitize_query_param(name: str, value: str) -> str:
    if name in _IP_PARAM_NAMES or _credential_kind(name):
        return MASKED_VALUE
    bounds = _coordinate_bounds(name)
    return coarsen_coordinate(value, bounds) if bounds else value


def sanitize_query_string(query: str) -> str:
    """Sanitize the parameters of ``query``.

    Anything before the last ``?`` is kept as is, so a full canonical request
    such as ``GET host/v9/events?lat=40.7128`` can be passed directly.
    """

    head, sep, raw = query.rpartition("?")
    pairs = parse_qsl(raw, keep_blank_values=True)
    if not pairs:
        return query
    cleaned = [(key, _sanitize_query_param(normalize_key(key), value)) for key, value in pairs]
    if cleaned == pairs:
        return query
    return f"{head}{sep}{urlencode(cleaned)}"


def sanitize_value(key: Any, value: Any) -> Any:
    """Return ``value`` with the redaction rules for field ``key`` applied."""

    if isinstance(key, bytes):
        key = key.decode("utf-8", "ignore")
    name = normalize_key(key) if isinstance(key, str) else ""

    if isinstance(value, dict):
        return {k: sanitize_value(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        items = [sanitize_value(key, item) for item in value]
        return tuple(items) if isinstance(value, tuple) else items

    if name in QUERY_STRING_KEYS and isinstance(value, str):
        value = sanitize_query_string(value)
    else:
        bounds = _coordinate_bounds(name)
        if bounds:
            value = coarsen_coordinate(value, bounds)

    if not isinstance(value, str):
        return value
    kind = _credential_kind(name)
    if kind == "token":
        return mask_token(value)
    if kind == "secret":
        return MASKED_VALUE
    if len(value) > MAX_FIELD_LENGTH:
        return value[:MAX_FIELD_LENGTH] + "…[truncated]"
    return value
