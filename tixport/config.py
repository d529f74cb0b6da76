"""Environment-driven configuration for the FastAPI application."""

from __future__ import annotations

import os
from typing import Final

from .errors import ConfigurationError


def _get_env(name: str, *, default: str | None = None) -> str | None:
    value = os.getenv(name)
    return default if value is None else value.strip()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _get_int(name: str, default: int) -> int:
    value = _get_env(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer") from exc


APP_ENV = _get_env("APP_ENV", default="development") or "development"

TICKET_EVOLUTION_API_TOKEN = _get_env("TICKET_EVOLUTION_API_TOKEN") or None
TICKET_EVOLUTION_API_SECRET = _get_env("TICKET_EVOLUTION_API_SECRET") or None
TICKET_EVOLUTION_ENV = _get_env("TICKET_EVOLUTION_ENV", default="sandbox") or "sandbox"
# Sandbox unless explicitly pointed elsewhere.
TICKET_EVOLUTION_API_URL = (
    _get_env(
        "TICKET_EVOLUTION_API_URL",
        default="https://api.sandbox.ticketevolution.com/v9",
    )
    or "https://api.sandbox.ticketevolution.com/v9"
).rstrip("/")
TICKET_EVOLUTION_TIMEOUT = _get_int("TICKET_EVOLUTION_TIMEOUT", 10)

GEOIP_DATABASE_PATH = _get_env("GEOIP_DATABASE_PATH") or None
DEFAULT_SEARCH_RADIUS_MILES = _get_int("DEFAULT_SEARCH_RADIUS_MILES", 50)

DEFAULT_PAGE_LIMIT: Final[int] = 20
MAX_PAGE_LIMIT: Final[int] = 100

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in (_get_env("ALLOWED_ORIGINS", default="http://localhost:3000") or "").split(",")
    if origin.strip()
]

# In-process rate limits; the event search limit is stricter than the general one.
RATE_LIMIT_ENABLED = _get_bool("RATE_LIMIT_ENABLED", default=APP_ENV != "development")
GENERAL_RATE_LIMIT = _get_int("GENERAL_RATE_LIMIT", 100)
SEARCH_RATE_LIMIT = _get_int("SEARCH_RATE_LIMIT", 30)
RATE_PERIOD = _get_int("RATE_PERIOD", 60)


def _header_override(name: str, default: str) -> str | None:
    """Return the env override for a security header; an empty value disables it."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip() or None


def _security_headers() -> dict[str, str]:
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        # Event artwork is embedded by the storefront from another origin.
        "Cross-Origin-Resource-Policy": "cross-origin",
        "Strict-Transport-Security": _header_override(
            "STRICT_TRANSPORT_SECURITY", "max-age=63072000; includeSubDomains"
        ),
        "Referrer-Policy": _header_override("REFERRER_POLICY", "no-referrer"),
    }
    return {name: value for name, value in headers.items() if value}


SECURITY_HEADERS = _security_headers()
