"""Category listings and category scoped event search."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path, Query, Response

from .. import config, schemas
from ..geo import CoordinateResolver
from ..services.ticket_evolution import TicketEvolutionClient, category_slug
from .deps import get_caller_ip, get_request_id, get_resolver, get_ticket_client
from .events import search_events

router = APIRouter(prefix="/api/categories")

POPULAR_CATEGORY_LIMIT = 6


def _category_ref(category: dict[str, Any]) -> schemas.CategoryRef:
    return schemas.CategoryRef(
        id=str(category.get("id")),
        name=category.get("name"),
        slug=category_slug(category.get("name"), category.get("id")),
    )


@router.get("", response_model=schemas.CategoriesResponse)
async def list_categories(
    response: Response,
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.CategoriesResponse:
    """Return upstream categories with storefront slugs."""

    categories = []
    for category in await client.get_categories():
        ref = _category_ref(category)
        parent = category.get("parent")
        categories.append(
            schemas.Category(
                **ref.model_dump(),
                parent=_category_ref(parent) if isinstance(parent, dict) else None,
            )
        )
    response.headers["Cache-Control"] = "public, max-age=300"
    return schemas.CategoriesResponse(data=categories)


@router.get("/popular", response_model=schemas.CategoriesResponse)
async def list_popular_categories(
    response: Response,
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.CategoriesResponse:
    """Return up to six top level categories ordered by name."""

    top_level = [
        category for category in await client.get_categories() if not category.get("parent")
    ]
    top_level.sort(key=lambda category: (category.get("name") or "").casefold())
    response.headers["Cache-Control"] = "public, max-age=300"
    return schemas.CategoriesResponse(
        data=[
            schemas.Category(**_category_ref(category).model_dump())
            for category in top_level[:POPULAR_CATEGORY_LIMIT]
        ]
    )


@router.get("/{category_id}/events", response_model=schemas.EventSearchResponse)
async def list_category_events(
    category_id: str = Path(..., max_length=32, description='Category id or "all"'),
    page: int = Query(1, ge=1),
    limit: int = Query(config.DEFAULT_PAGE_LIMIT, ge=1, le=config.MAX_PAGE_LIMIT),
    lat: str | None = Query(None, max_length=32),
    lon: str | None = Query(None, max_length=32),
    ip: str | None = Query(None, max_length=64),
    within: int = Query(config.DEFAULT_SEARCH_RADIUS_MILES, ge=1, le=500),
    caller_ip: str | None = Depends(get_caller_ip),
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
    resolver: CoordinateResolver = Depends(get_resolver),
) -> schemas.EventSearchResponse:
    return await search_events(
        client,
        resolver,
        page=page,
        limit=limit,
        category_id=None if category_id == "all" else category_id,
        category_slug=None,
        lat=lat,
        lon=lon,
        ip=ip,
        within=within,
        caller_ip=caller_ip,
        request_id=request_id,
    )
