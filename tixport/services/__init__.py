"""Clients for services the storefront API proxies."""

from .checkout import calculate_order
from .ticket_evolution import TicketEvolutionClient, category_slug, delivery_type_for_format

__all__ = ["TicketEvolutionClient", "calculate_order", "category_slug", "delivery_type_for_format"]
