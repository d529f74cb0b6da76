"""Context variables carrying per request logging fields."""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
# Holds the address as it may be logged, i.e. after anonymisation.
client_ip_ctx_var: ContextVar[str | None] = ContextVar("client_ip", default=None)


@dataclass(frozen=True)
class RequestContextTokens:
    request_id: Token[str | None]
    client_ip: Token[str | None]


def bind_request_context(request_id: str, client_ip: str | None = None) -> RequestContextTokens:
    """Set the context for the current request and return reset tokens."""

    return RequestContextTokens(
        request_id=request_id_ctx_var.set(request_id),
        client_ip=client_ip_ctx_var.set(client_ip),
    )


def reset_request_context(tokens: RequestContextTokens) -> None:
    client_ip_ctx_var.reset(tokens.client_ip)
    request_id_ctx_var.reset(tokens.request_id)
