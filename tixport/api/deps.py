"""FastAPI dependencies exposing the services built at startup."""

from fastapi import Request

from ..geo import CoordinateResolver
from ..services.ticket_evolution import TicketEvolutionClient
from ..signing import RequestSigner
from ..utils.network import get_client_ip


def get_signer(request: Request) -> RequestSigner:
    return request.app.state.services.signer


def get_resolver(request: Request) -> CoordinateResolver:
    return request.app.state.services.resolver


def get_ticket_client(request: Request) -> TicketEvolutionClient:
    return request.app.state.services.ticket_client


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def get_caller_ip(request: Request) -> str | None:
    """Return the caller IP, or ``None`` when it cannot be determined."""

    client_ip = getattr(request.state, "client_ip", None) or get_client_ip(request)
    if client_ip == "unknown":
        return None
    return client_ip
