"""Ticket group listings, seatmaps and single tickets."""

from fastapi import APIRouter, Depends, Path, Query

from .. import schemas
from ..services.ticket_evolution import TicketEvolutionClient
from .deps import get_request_id, get_ticket_client

router = APIRouter(prefix="/api/tickets")


@router.get("/event/{event_id}", response_model=schemas.TicketGroupsResponse)
async def list_event_ticket_groups(
    event_id: int = Path(..., ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=100),
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.TicketGroupsResponse:
    """Return the ticket groups currently listed for ``event_id``."""

    result = await client.get_ticket_groups(event_id, page, limit)
    return schemas.TicketGroupsResponse(
        data=schemas.TicketGroupsData(
            ticket_groups=result["ticket_groups"],
            pagination=schemas.Pagination(**result["pagination"]),
        ),
        request_id=request_id,
    )


@router.get("/event/{event_id}/seatmap", response_model=schemas.SeatmapResponse)
async def get_event_seatmap(
    event_id: int = Path(..., ge=1),
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.SeatmapResponse:
    seatmap = await client.get_event_seatmap(event_id)
    return schemas.SeatmapResponse(data=schemas.Seatmap(**seatmap), request_id=request_id)


@router.get("/{ticket_id}", response_model=schemas.TicketResponse)
async def get_ticket(
    ticket_id: int = Path(..., ge=1),
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.TicketResponse:
    return schemas.TicketResponse(data=await client.get_ticket(ticket_id), request_id=request_id)
