"""Order, billing, route and party storage."""

from .memory import InMemoryBillingStore, InMemoryOrderStore, InMemoryPartyStore, InMemoryRouteStore
from .stores import BillingStore, OrderStore, PartyStore, RouteStore

__all__ = [
    "BillingStore",
    "InMemoryBillingStore",
    "InMemoryOrderStore",
    "InMemoryPartyStore",
    "InMemoryRouteStore",
    "OrderStore",
    "PartyStore",
    "RouteStore",
]
