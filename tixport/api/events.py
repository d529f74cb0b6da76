"""Event search and detail endpoints backed by Ticket Evolution."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Path, Query

from .. import config, schemas
from ..errors import UpstreamError
from ..geo import CoordinateResolver, ResolvedCoordinate, build_tevo_params
from ..services.ticket_evolution import TicketEvolutionClient
from .deps import get_caller_ip, get_request_id, get_resolver, get_ticket_client

router = APIRouter(prefix="/api")

logger = logging.getLogger(__name__)


def resolve_request_location(
    resolver: CoordinateResolver,
    *,
    lat: str | None,
    lon: str | None,
    ip: str | None,
    caller_ip: str | None,
) -> ResolvedCoordinate | None:
    """Resolve the search location; ``ip="auto"`` means the caller's address."""

    lookup_ip = caller_ip if ip == "auto" else ip
    return resolver.resolve_coordinates(lat=lat, lon=lon, ip=lookup_ip)


async def search_events(
    client: TicketEvolutionClient,
    resolver: CoordinateResolver,
    *,
    page: int,
    limit: int,
    category_id: str | None,
    category_slug: str | None,
    lat: str | None,
    lon: str | None,
    ip: str | None,
    within: int,
    caller_ip: str | None,
    request_id: str | None,
) -> schemas.EventSearchResponse:
    filters: dict[str, Any] = {}
    if category_id:
        filters["category_id"] = category_id
    elif category_slug:
        try:
            mapped_id = await client.find_category_id(category_slug)
        except UpstreamError as exc:
            # Search without the category rather than failing the request.
            logger.warning(
                "Category slug lookup failed",
                extra={"event_action": "category_slug_error", "error_message": exc.message},
            )
            mapped_id = None
        if mapped_id is not None:
            filters["category_id"] = mapped_id
        else:
            logger.info(
                "Unknown category slug; searching without category filter",
                extra={"event_action": "category_slug_unknown"},
            )

    coordinate = resolve_request_location(
        resolver, lat=lat, lon=lon, ip=ip, caller_ip=caller_ip
    )
    params = build_tevo_params(coordinate, within, filters)
    result = await client.get_events(params, page, limit)

    return schemas.EventSearchResponse(
        data=schemas.EventSearchData(
            events=result["events"],
            pagination=schemas.Pagination(**result["pagination"]),
            filters=params,
            location=(
                schemas.ResolvedLocation(**coordinate.as_dict()) if coordinate else None
            ),
            request_id=request_id,
        )
    )


@router.get("/events", response_model=schemas.EventSearchResponse)
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT, ge=1, le=config.MAX_PAGE_LIMIT),
    category_id: str | None = Query(None, max_length=32),
    category_slug: str | None = Query(None, max_length=128),
    lat: str | None = Query(None, max_length=32),
    lon: str | None = Query(None, max_length=32),
    ip: str | None = Query(None, max_length=64, description='IP literal or "auto"'),
    within: int = Query(config.DEFAULT_SEARCH_RADIUS_MILES, ge=1, le=500),
    caller_ip: str | None = Depends(get_caller_ip),
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
    resolver: CoordinateResolver = Depends(get_resolver),
) -> schemas.EventSearchResponse:
    """Search events with optional category and location filtering.

    ``lat``/``lon`` come from the browser and win when valid. Otherwise the
    address given in ``ip`` is located via GeoIP. Without a coordinate no
    location parameters are sent upstream at all.
    """

    return await search_events(
        client,
        resolver,
        page=page,
        limit=limit,
        category_id=category_id,
        category_slug=category_slug,
        lat=lat,
        lon=lon,
        ip=ip,
        within=within,
        caller_ip=caller_ip,
        request_id=request_id,
    )


@router.get("/events/{event_id}", response_model=schemas.EventResponse)
async def get_event(
    event_id: int = Path(..., ge=1),
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.EventResponse:
    event = await client.get_event(event_id)
    return schemas.EventResponse(data=event, request_id=request_id)
