"""Structured JSON logging with request context and privacy redaction."""

from .config import build_logging_config, configure_logging
from .context import (
    RequestContextTokens,
    bind_request_context,
    client_ip_ctx_var,
    request_id_ctx_var,
    reset_request_context,
)
from .filters import PrivacyFilter, RequestContextFilter
from .formatter import FIELD_MAP, SERVICE_NAME, ECSJsonFormatter
from .ip_utils import anonymize_ip
from .privacy import sanitize_query_string, sanitize_value

__all__ = [
    "ECSJsonFormatter",
    "FIELD_MAP",
    "PrivacyFilter",
    "RequestContextFilter",
    "RequestContextTokens",
    "SERVICE_NAME",
    "anonymize_ip",
    "bind_request_context",
    "build_logging_config",
    "client_ip_ctx_var",
    "configure_logging",
    "request_id_ctx_var",
    "reset_request_context",
    "sanitize_query_string",
    "sanitize_value",
]
