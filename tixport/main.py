"""FastAPI application serving the TixPort storefront API."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from . import __version__, config
from .api import (
    categories_router,
    checkout_router,
    events_router,
    health_router,
    location_router,
    tickets_router,
)
from .errors import ConfigurationError
from .exception_handlers import register_exception_handlers
from .geo import CoordinateResolver, create_geo_lookup
from .logging import configure_logging
from .middleware.logging import LoggingMiddleware
from .middleware.security import SecureHeadersMiddleware
from .rate_limit import rate_limit
from .services.ticket_evolution import TicketEvolutionClient
from .signing import RequestSigner

configure_logging()

logger = logging.getLogger("tixport.main")


@dataclass
class Services:
    """Long lived collaborators shared by all request handlers."""

    signer: RequestSigner
    resolver: CoordinateResolver
    ticket_client: TicketEvolutionClient

    async def close(self) -> None:
        await self.ticket_client.aclose()
        self.resolver.close()


def build_services() -> Services:
    """Construct the signer, resolver and upstream client from configuration.

    Raises :class:`ConfigurationError` when the Ticket Evolution credentials
    are incomplete; the process must not start serving in that case.
    """

    signer = RequestSigner(config.TICKET_EVOLUTION_API_TOKEN, config.TICKET_EVOLUTION_API_SECRET)
    signing_status = signer.validate_configuration()
    if not signing_status.is_valid:
        raise ConfigurationError(", ".join(signing_status.errors))

    return Services(
        signer=signer,
        resolver=CoordinateResolver(create_geo_lookup(config.GEOIP_DATABASE_PATH)),
        ticket_client=TicketEvolutionClient(
            signer,
            config.TICKET_EVOLUTION_API_URL,
            timeout=config.TICKET_EVOLUTION_TIMEOUT,
        ),
    )


def create_app(services: Services | None = None) -> FastAPI:
    """Build the application; ``services`` defaults to ones built from config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = services is None
        app.state.services = build_services() if owned else services
        app.state.started_at = time.monotonic()
        logger.info(
            "TixPort API started",
            extra={
                "event_action": "startup",
                "ticket_evolution_env": config.TICKET_EVOLUTION_ENV,
                "ticket_evolution_url": config.TICKET_EVOLUTION_API_URL,
            },
        )
        try:
            yield
        finally:
            if owned:
                await app.state.services.close()

    app = FastAPI(
        title="TixPort API",
        version=__version__,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    # Starlette runs the last added middleware first.
    app.add_middleware(SecureHeadersMiddleware, headers=config.SECURITY_HEADERS)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-RateLimit-Remaining", "Retry-After"],
        allow_credentials=True,
    )
    app.middleware("http")(rate_limit)
    register_exception_handlers(app)

    @app.get("/")
    def read_root() -> dict[str, object]:
        return {
            "success": True,
            "message": "Welcome to TixPort API",
            "documentation": "/docs",
            "version": __version__,
        }

    for router in (
        health_router,
        events_router,
        tickets_router,
        categories_router,
        checkout_router,
        location_router,
    ):
        app.include_router(router)
    return app


app = create_app()
