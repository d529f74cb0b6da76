"""Pydantic schemas used for response models."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResolvedLocation(BaseModel):
    """Coordinate chosen for a request and where it came from."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    source: Literal["browser", "geoip"]
    accuracy: Literal["high", "medium"]
    city: str | None = None
    region: str | None = None
    country: str | None = None
    timezone: str | None = None

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    current_page: int
    per_page: int
    total_entries: int
    total_pages: int


class EventSearchData(BaseModel):
    events: list[dict[str, Any]]
    pagination: Pagination
    filters: dict[str, Any]
    location: ResolvedLocation | None = None
    request_id: str | None = None


class EventSearchResponse(BaseModel):
    success: bool = True
    data: EventSearchData


class EventResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    request_id: str | None = None


class TicketGroupsData(BaseModel):
    ticket_groups: list[dict[str, Any]]
    pagination: Pagination


class TicketGroupsResponse(BaseModel):
    success: bool = True
    data: TicketGroupsData
    request_id: str | None = None


class CategoryRef(BaseModel):
    id: str
    name: str | None = None
    slug: str


class Category(CategoryRef):
    parent: CategoryRef | None = None


class CategoriesResponse(BaseModel):
    success: bool = True
    data: list[Category]
    source: Literal["api"] = "api"


class ShippingAddress(BaseModel):
    line1: str | None = Field(None, max_length=200)
    line2: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country_code: str | None = Field(None, min_length=2, max_length=2)


class CheckoutCalculateRequest(BaseModel):
    """Ticket selection to price; accepts the storefront's camelCase keys."""

    ticket_group_id: int = Field(..., ge=1, alias="ticketGroupId")
    quantity: int = Field(..., ge=1, le=100)
    retail_unit_price: float = Field(..., gt=0, allow_inf_nan=False, alias="retailUnitPrice")
    shipping_address: ShippingAddress | None = Field(None, alias="shippingAddress")

    model_config = ConfigDict(populate_by_name=True)


class ShippingOption(BaseModel):
    type: str
    cost: float
    description: str


class TaxQuote(BaseModel):
    tax_amount: float = 0
    signature: str | None = None


class OrderCalculation(BaseModel):
    ticket_group_id: int
    format: str | None = None
    delivery_type: str
    shipping_options: list[ShippingOption]
    tax_quote: TaxQuote | None = None


class OrderCalculationResponse(BaseModel):
    success: bool = True
    data: OrderCalculation
    request_id: str | None = None


class TicketResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    request_id: str | None = None


class Seatmap(BaseModel):
    event_id: Any
    venue_id: Any = None
    venue_name: str | None = None
    configuration_id: Any = None
    seating_chart: Any = None


class SeatmapResponse(BaseModel):
    success: bool = True
    data: Seatmap
    request_id: str | None = None


class LocationInput(BaseModel):
    lat: str | None = None
    lon: str | None = None
    ip: str | None = None
    client_ip: str | None = None


class LocationExplanation(BaseModel):
    coordinate_source: Literal["browser", "geoip", "none"]
    will_send_within: bool
    safe_for_tevo: bool


class LocationDemoData(BaseModel):
    input: LocationInput
    resolved_coordinates: ResolvedLocation | None = None
    tevo_parameters: dict[str, Any]
    fallback_country: str | None = None
    explanation: LocationExplanation
    request_id: str | None = None


class LocationDemoResponse(BaseModel):
    success: bool = True
    data: LocationDemoData


class Liveness(BaseModel):
    success: bool = True
    message: str
    timestamp: str
    version: str
