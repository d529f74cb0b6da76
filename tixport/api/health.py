"""Liveness and dependency health endpoints."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse

from .. import __version__, schemas
from ..geo import CoordinateResolver
from ..services.ticket_evolution import TicketEvolutionClient
from ..signing import RequestSigner
from .deps import get_resolver, get_signer, get_ticket_client

router = APIRouter()


@router.get("/api/health", response_model=schemas.Liveness)
def liveness() -> schemas.Liveness:
    return schemas.Liveness(
        message="TixPort API is running",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
    )


@router.get("/health")
async def health(
    request: Request,
    signer: RequestSigner = Depends(get_signer),
    resolver: CoordinateResolver = Depends(get_resolver),
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> ORJSONResponse:
    """Report upstream reachability, signer configuration and GeoIP status."""

    start_ns = time.perf_counter_ns()
    upstream = await client.health_check()
    signing = signer.validate_configuration()
    payload = {
        **upstream,
        "signing": {"is_valid": signing.is_valid, "errors": signing.errors},
        "coordinate_resolver": resolver.health_check(),
        "server": {
            "status": "running",
            "uptime_seconds": round(time.monotonic() - request.app.state.started_at, 3),
            "response_time_ms": round((time.perf_counter_ns() - start_ns) / 1_000_000, 3),
        },
    }
    status_code = 200 if upstream["status"] == "healthy" else 503
    return ORJSONResponse(status_code=status_code, content=payload)
