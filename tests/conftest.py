import os

import httpx
import pytest
from fastapi.testclient import TestClient

# Configuration is read at import time, so set it before importing the app.
os.environ.setdefault("APP_ENV", "test")
os.environ["TICKET_EVOLUTION_API_TOKEN"] = "test-token-0123456789"
os.environ["TICKET_EVOLUTION_API_SECRET"] = "test-secret-abcdefghij"
os.environ["TICKET_EVOLUTION_API_URL"] = "https://api.test.ticketevolution.com/v9"
os.environ["ALLOWED_ORIGINS"] = "http://allowed.example"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "true"
os.environ.pop("GEOIP_DATABASE_PATH", None)

from tixport.geo import CoordinateResolver, GeoRecord  # noqa: E402
from tixport.main import Services, create_app  # noqa: E402
from tixport.services.ticket_evolution import TicketEvolutionClient  # noqa: E402
from tixport.signing import RequestSigner  # noqa: E402

API_URL = os.environ["TICKET_EVOLUTION_API_URL"]
API_HOST = "api.test.ticketevolution.com"
API_TOKEN = os.environ["TICKET_EVOLUTION_API_TOKEN"]
API_SECRET = os.environ["TICKET_EVOLUTION_API_SECRET"]


class FakeGeoLookup:
    """In-memory stand-in for the GeoIP database that records its calls."""

    def __init__(self, record: GeoRecord | None = None, error: Exception | None = None) -> None:
        self.record = record
        self.error = error
        self.calls: list[str] = []

    def lookup(self, ip: str) -> GeoRecord | None:
        self.calls.append(ip)
        if self.error is not None:
            raise self.error
        return self.record


class FakeUpstream:
    """Request handler for ``httpx.MockTransport`` keyed by URL path."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, tuple[int, object]] = {}

    def add(self, path: str, payload: object, status_code: int = 200) -> None:
        self.routes[path] = (status_code, payload)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, payload = self.routes.get(
            request.url.path, (404, {"error": "Not found"})
        )
        return httpx.Response(status_code, json=payload)

    def last(self, path: str) -> httpx.Request:
        return next(r for r in reversed(self.requests) if r.url.path == path)


@pytest.fixture
def signer() -> RequestSigner:
    return RequestSigner(API_TOKEN, API_SECRET)


@pytest.fixture
def geo_lookup() -> FakeGeoLookup:
    return FakeGeoLookup()


@pytest.fixture
def resolver(geo_lookup: FakeGeoLookup) -> CoordinateResolver:
    return CoordinateResolver(geo_lookup)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def ticket_client(signer, upstream) -> TicketEvolutionClient:
    return TicketEvolutionClient(signer, API_URL, transport=httpx.MockTransport(upstream))


@pytest.fixture
def client(signer, resolver, ticket_client):
    services = Services(signer=signer, resolver=resolver, ticket_client=ticket_client)
    with TestClient(create_app(services)) as test_client:
        yield test_client
