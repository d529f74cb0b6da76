"""Endpoints that expose coordinate resolution to the storefront."""

from fastapi import APIRouter, Depends, Query, Response

from .. import config, schemas
from ..geo import CoordinateResolver, build_tevo_params
from ..utils.http import set_private_no_store
from .deps import get_caller_ip, get_request_id, get_resolver
from .events import resolve_request_location

router = APIRouter(prefix="/api/public")


@router.get(
    "/location-demo",
    response_model=schemas.LocationDemoResponse,
    summary="Show how a request would be located for event search",
    description=(
        "Resolve coordinates from browser supplied ``lat``/``lon`` or from "
        "``ip`` (``auto`` uses the caller address) and return the Ticket "
        "Evolution parameters an event search would send. ``within`` only "
        "appears together with ``lat`` and ``lon``."
    ),
)
def location_demo(
    response: Response,
    lat: str | None = Query(None, max_length=32),
    lon: str | None = Query(None, max_length=32),
    ip: str | None = Query(None, max_length=64),
    caller_ip: str | None = Depends(get_caller_ip),
    request_id: str | None = Depends(get_request_id),
    resolver: CoordinateResolver = Depends(get_resolver),
) -> schemas.LocationDemoResponse:
    set_private_no_store(response)

    coordinate = resolve_request_location(
        resolver, lat=lat, lon=lon, ip=ip, caller_ip=caller_ip
    )
    params = build_tevo_params(
        coordinate, config.DEFAULT_SEARCH_RADIUS_MILES, {"category_id": "test"}
    )
    lookup_ip = caller_ip if ip == "auto" else ip
    country = None if coordinate else resolver.get_country_from_ip(lookup_ip)

    return schemas.LocationDemoResponse(
        data=schemas.LocationDemoData(
            input=schemas.LocationInput(lat=lat, lon=lon, ip=ip, client_ip=caller_ip),
            resolved_coordinates=(
                schemas.ResolvedLocation(**coordinate.as_dict()) if coordinate else None
            ),
            tevo_parameters=params,
            fallback_country=country,
            explanation=schemas.LocationExplanation(
                coordinate_source=coordinate.source if coordinate else "none",
                will_send_within="within" in params,
                safe_for_tevo="within" not in params or ("lat" in params and "lon" in params),
            ),
            request_id=request_id,
        )
    )
