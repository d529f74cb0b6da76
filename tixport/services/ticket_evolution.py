"""Async client for the Ticket Evolution marketplace API."""

from __future__ import annotations

import logging
import math
import re
import time
from typing import Any

import httpx

from ..errors import UpstreamError
from ..metrics import observe_upstream_request
from ..signing import (
    ApiVersion,
    RequestSigner,
    SignatureRequest,
    canonical_query,
    extract_host,
    extract_path,
    serialize_body,
)

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100

_STATUS_MESSAGES = {
    401: "Invalid API token or unauthorized access",
    403: "Access forbidden - check API permissions",
    404: "Resource not found",
    429: "Rate limit exceeded - please try again later",
}


def category_slug(name: str | None, fallback_id: Any) -> str:
    """Return the URL slug the storefront uses for a category name."""

    if not name:
        return f"category-{fallback_id}"
    slug = re.sub(r"\s+", "-", name.lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return slug or f"category-{fallback_id}"


_DIGITAL_DELIVERY_TYPES = {
    "eticket": "Eticket",
    "tm_mobile": "TMMobile",
    "tmmobile": "TMMobile",
}


def delivery_type_for_format(ticket_format: str | None) -> str:
    """Map a ticket group ``format`` to the delivery type used at checkout.

    Electronic and mobile transfer formats are delivered instantly; every
    other format (including a missing one) ships physically by FedEx.
    """

    key = (ticket_format or "").strip().lower()
    return _DIGITAL_DELIVERY_TYPES.get(key, "FedEx")


def _error_message(response: httpx.Response) -> str:
    status_code = response.status_code
    if status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status_code]
    if status_code >= 500:
        return "TicketEvolution API server error"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in ("message", "error"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return f"API error: {status_code}"


def _pagination(data: dict[str, Any], page: int, per_page: int) -> dict[str, int]:
    total_entries = int(data.get("total_entries") or 0)
    per_page = int(data.get("per_page") or per_page)
    return {
        "current_page": int(data.get("current_page") or page),
        "per_page": per_page,
        "total_entries": total_entries,
        "total_pages": math.ceil(total_entries / per_page) if per_page else 0,
    }


class TicketEvolutionClient:
    """Signed HTTP access to the events, tickets, categories and checkout APIs.

    Each request is signed over exactly the query string or body that is sent,
    so nothing between here and the provider may rewrite the URL.
    """

    def __init__(
        self,
        signer: RequestSigner,
        base_url: str,
        *,
        timeout: float = 10.0,
        api_version: ApiVersion = "v9",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._signer = signer
        self._base_url = base_url.rstrip("/")
        self._host = extract_host(self._base_url)
        self._base_path = extract_path(self._base_url).rstrip("/")
        self._api_version = api_version
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any | None = None,
    ) -> dict[str, Any]:
        if body is not None and params:
            raise ValueError("Signed requests carry either query parameters or a body")

        query = {key: value for key, value in (params or {}).items() if value is not None}
        signature_request = SignatureRequest(
            method=method.upper(),
            host=self._host,
            path=f"{self._base_path}{endpoint}",
            query=query,
            body=body,
        )
        headers = self._signer.build_headers(signature_request, self._api_version)

        url = f"{self._base_url}{endpoint}"
        query_string = canonical_query(query)
        if query_string:
            url = f"{url}?{query_string}"
        content = serialize_body(body).encode("utf-8") if body is not None else None

        start_ns = time.perf_counter_ns()
        try:
            response = await self._client.request(
                method.upper(), url, headers=headers, content=content
            )
        except httpx.HTTPError as exc:
            observe_upstream_request(endpoint, None, time.perf_counter_ns() - start_ns)
            logger.error(
                "TicketEvolution request failed",
                extra={
                    "event_action": "upstream_transport_error",
                    "http_request_method": method.upper(),
                    "url_path": signature_request.path,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc)[:256],
                },
            )
            raise UpstreamError(
                "No response from TicketEvolution API - check connection"
            ) from exc

        observe_upstream_request(endpoint, response.status_code, time.perf_counter_ns() - start_ns)

        if response.is_error:
            message = _error_message(response)
            level = logging.ERROR if response.status_code >= 500 else logging.WARNING
            logger.log(
                level,
                "TicketEvolution API returned an error",
                extra={
                    "event_action": "upstream_error",
                    "http_request_method": method.upper(),
                    "url_path": signature_request.path,
                    "upstream_status_code": response.status_code,
                    "error_message": message,
                },
            )
            raise UpstreamError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "TicketEvolution API returned invalid JSON",
                status_code=response.status_code,
            ) from exc
        return data if isinstance(data, dict) else {"data": data}

    async def get_events(
        self, filters: dict[str, Any] | None = None, page: int = 1, limit: int = 20
    ) -> dict[str, Any]:
        per_page = min(limit, MAX_PER_PAGE)
        params = {"page": page, "per_page": per_page, **(filters or {})}
        data = await self._request("GET", "/events", params=params)
        return {
            "events": data.get("events") or [],
            "pagination": _pagination(data, page, per_page),
        }

    async def get_event(self, event_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/events/{event_id}")

    async def get_ticket_groups(
        self, event_id: int, page: int = 1, limit: int = 20
    ) -> dict[str, Any]:
        per_page = min(limit, MAX_PER_PAGE)
        data = await self._request(
            "GET",
            "/ticket_groups",
            params={"event_id": event_id, "page": page, "per_page": per_page},
        )
        return {
            "ticket_groups": data.get("ticket_groups") or [],
            "pagination": _pagination(data, page, per_page),
        }

    async def get_categories(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/categories", params={"per_page": MAX_PER_PAGE})
        return data.get("categories") or []

    async def find_category_id(self, slug: str) -> Any | None:
        """Return the id of the category whose slug matches ``slug``."""

        wanted = slug.strip().lower()
        for category in await self.get_categories():
            if category_slug(category.get("name"), category.get("id")) == wanted:
                return category.get("id")
        return None

    async def get_ticket_group(self, ticket_group_id: int) -> dict[str, Any]:
        data = await self._request("GET", f"/ticket_groups/{ticket_group_id}")
        group = data.get("ticket_group")
        return group if isinstance(group, dict) else data

    async def get_ticket(self, ticket_id: int) -> dict[str, Any]:
        data = await self._request("GET", f"/tickets/{ticket_id}")
        ticket = data.get("ticket")
        return ticket if isinstance(ticket, dict) else data

    async def get_event_seatmap(self, event_id: int) -> dict[str, Any]:
        """Return the venue and seating configuration used to draw a seatmap."""

        event = await self.get_event(event_id)
        venue = event.get("venue") or {}
        configuration = event.get("configuration") or {}
        return {
            "event_id": event.get("id", event_id),
            "venue_id": venue.get("id"),
            "venue_name": venue.get("name"),
            "configuration_id": configuration.get("id"),
            "seating_chart": configuration.get("seating_chart"),
        }

    async def get_shipment_suggestion(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/shipments/suggestion", body=payload)

    async def create_tax_quote(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/tax_quotes", body=payload)

    async def health_check(self) -> dict[str, Any]:
        try:
            await self._request("GET", "/categories", params={"per_page": 1})
        except UpstreamError as exc:
            return {"status": "unhealthy", "message": exc.message}
        return {"status": "healthy", "message": "TicketEvolution API is accessible"}


__all__ = ["TicketEvolutionClient", "category_slug", "delivery_type_for_format"]
