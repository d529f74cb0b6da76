"""Order calculation for the checkout page.

A quote is assembled from up to three upstream calls made in sequence:

1. the ticket group, whose ``format`` decides how tickets are delivered,
2. a shipment suggestion, only for physical tickets with a shipping address,
3. a tax quote over the unit price and the chosen shipping cost.

Only the ticket group lookup is required. A failed shipment suggestion falls
back to standard FedEx pricing and a failed tax quote leaves ``tax_quote``
empty, so the storefront can still show a total.
"""

from __future__ import annotations

import logging
from typing import Any, Final

from ..errors import UpstreamError
from .ticket_evolution import TicketEvolutionClient, delivery_type_for_format

logger = logging.getLogger(__name__)

DEFAULT_SHIPPING_COST: Final[float] = 15.0
DEFAULT_COUNTRY_CODE: Final[str] = "US"

_INSTANT_DELIVERY: Final[dict[str, str]] = {
    "Eticket": "Electronic Delivery - Instant",
    "TMMobile": "Mobile Transfer - Instant",
}


def _option(delivery_type: str, cost: float, description: str) -> dict[str, Any]:
    return {"type": delivery_type, "cost": cost, "description": description}


def _standard_fedex() -> dict[str, Any]:
    return _option("FedEx", DEFAULT_SHIPPING_COST, "FedEx Standard Shipping")


def _address_attributes(address: dict[str, Any]) -> dict[str, str]:
    return {
        "street_address": address.get("line1") or "",
        "extended_address": address.get("line2") or "",
        "locality": address.get("city") or "",
        "region": address.get("state") or "",
        "postal_code": address.get("postal_code") or "",
        "country_code": address.get("country_code") or DEFAULT_COUNTRY_CODE,
    }


async def _fedex_options(
    client: TicketEvolutionClient,
    ticket_group_id: int,
    address: dict[str, Any] | None,
) -> list[dict[str, Any]]:
    if not address:
        return [_standard_fedex(), _option("LocalPickup", 0, "Local Pickup (if available)")]

    try:
        suggestion = await client.get_shipment_suggestion(
            {
                "ticket_group_id": ticket_group_id,
                "address_attributes": _address_attributes(address),
            }
        )
    except UpstreamError as exc:
        logger.warning(
            "Shipment suggestion failed; using standard shipping",
            extra={
                "event_action": "shipment_suggestion_fallback",
                "ticket_group_id": ticket_group_id,
                "upstream_status_code": exc.status_code,
                "error_message": exc.message,
            },
        )
        return [_standard_fedex()]

    service = suggestion.get("service") or "Standard"
    return [
        _option(
            "FedEx",
            suggestion.get("cost") or DEFAULT_SHIPPING_COST,
            f"FedEx {service} Shipping",
        )
    ]


async def _tax_quote(
    client: TicketEvolutionClient,
    *,
    ticket_group_id: int,
    quantity: int,
    retail_unit_price: float,
    shipping: float,
) -> dict[str, Any] | None:
    try:
        response = await client.create_tax_quote(
            {
                "ticket_group_id": ticket_group_id,
                "quantity": quantity,
                "retail": {"price": retail_unit_price, "shipping": shipping, "service_fee": 0},
            }
        )
    except UpstreamError as exc:
        logger.warning(
            "Tax quote failed; continuing without tax",
            extra={
                "event_action": "tax_quote_fallback",
                "ticket_group_id": ticket_group_id,
                "upstream_status_code": exc.status_code,
                "error_message": exc.message,
            },
        )
        return None

    retail = response.get("retail") or {}
    return {
        "tax_amount": retail.get("tax") or 0,
        "signature": response.get("tax_signature"),
    }


async def calculate_order(
    client: TicketEvolutionClient,
    *,
    ticket_group_id: int,
    quantity: int,
    retail_unit_price: float,
    shipping_address: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return delivery options and a tax quote for buying ``quantity`` tickets.

    Raises :class:`UpstreamError` only when the ticket group itself cannot be
    fetched.
    """

    ticket_group = await client.get_ticket_group(ticket_group_id)
    ticket_format = ticket_group.get("format")
    delivery_type = delivery_type_for_format(ticket_format)

    if delivery_type in _INSTANT_DELIVERY:
        shipping_options = [_option(delivery_type, 0, _INSTANT_DELIVERY[delivery_type])]
    else:
        shipping_options = await _fedex_options(client, ticket_group_id, shipping_address)

    tax_quote = await _tax_quote(
        client,
        ticket_group_id=ticket_group_id,
        quantity=quantity,
        retail_unit_price=retail_unit_price,
        shipping=shipping_options[0]["cost"],
    )
    return {
        "ticket_group_id": ticket_group_id,
        "format": ticket_format,
        "delivery_type": delivery_type,
        "shipping_options": shipping_options,
        "tax_quote": tax_quote,
    }


__all__ = ["DEFAULT_SHIPPING_COST", "calculate_order"]
