"""Order calculation for the checkout page."""

from fastapi import APIRouter, Depends, Response

from .. import schemas
from ..services.checkout import calculate_order
from ..services.ticket_evolution import TicketEvolutionClient
from ..utils.http import set_private_no_store
from .deps import get_request_id, get_ticket_client

router = APIRouter(prefix="/api/checkout")


@router.post("/calculate", response_model=schemas.OrderCalculationResponse)
async def calculate_order_details(
    payload: schemas.CheckoutCalculateRequest,
    response: Response,
    request_id: str | None = Depends(get_request_id),
    client: TicketEvolutionClient = Depends(get_ticket_client),
) -> schemas.OrderCalculationResponse:
    """Price delivery and tax for a ticket group selection.

    Shipping falls back to standard FedEx pricing and the tax quote is left
    empty when those upstream steps fail; an unknown ticket group is a 404.
    """

    set_private_no_store(response)
    address = payload.shipping_address.model_dump() if payload.shipping_address else None
    calculation = await calculate_order(
        client,
        ticket_group_id=payload.ticket_group_id,
        quantity=payload.quantity,
        retail_unit_price=payload.retail_unit_price,
        shipping_address=address,
    )
    return schemas.OrderCalculationResponse(
        data=schemas.OrderCalculation(**calculation),
        request_id=request_id,
    )
