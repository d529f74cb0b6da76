"""Handler filters that enrich and sanitise records."""

from __future__ import annotations

import logging

from .context import client_ip_ctx_var, request_id_ctx_var
from .privacy import sanitize_value

# Attributes every LogRecord carries; only ``extra`` fields are sanitised.
_BUILTIN_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_CONTEXT_FIELDS = (
    ("request_id", request_id_ctx_var),
    ("client_ip", client_ip_ctx_var),
)


class PrivacyFilter(logging.Filter):
    """Redact credentials and coarsen locations on every record, in place."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in list(vars(record).items()):
            if key not in _BUILTIN_ATTRIBUTES:
                setattr(record, key, sanitize_value(key, value))
        if isinstance(record.args, dict):
            record.args = {k: sanitize_value(k, v) for k, v in record.args.items()}
        elif record.args:
            record.args = tuple(sanitize_value(None, arg) for arg in record.args)
        return True


class RequestContextFilter(logging.Filter):
    """Copy the request id and client address onto records that lack them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for attr, context_var in _CONTEXT_FIELDS:
            value = context_var.get()
            if value and not getattr(record, attr, None):
                setattr(record, attr, value)
        return True
