"""Router modules for the TixPort storefront API."""

from .categories import router as categories_router
from .checkout import router as checkout_router
from .events import router as events_router
from .health import router as health_router
from .location import router as location_router
from .tickets import router as tickets_router

__all__ = [
    "categories_router",
    "checkout_router",
    "events_router",
    "health_router",
    "location_router",
    "tickets_router",
]
