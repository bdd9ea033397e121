"""Collaborator contracts for the order, billing, route and party stores."""

from __future__ import annotations

from typing import Any, Protocol

from ..models.domain import BillingRecord, Order, OrderStatus, Party, Route

# The workers only ever write these order fields.
ORDER_WRITABLE_FIELDS = frozenset({"route_id", "status"})


class RouteStore(Protocol):
    def list_active(self) -> list[Route]:
        ...

    def get(self, route_id: str) -> Route | None:
        ...

    def create(self, route: Route) -> Route:
        ...

    def save(self, route: Route) -> Route:
        ...


class OrderStore(Protocol):
    def get_by_id(self, order_id: str) -> Order | None:
        ...

    def update(self, order_id: str, fields: dict[str, Any]) -> Order | None:
        ...

    def assign_route(self, order_id: str, route_id: str, status: OrderStatus) -> Order | None:
        """Set route and status only while the order has no route; ``None`` otherwise."""
        ...


class BillingStore(Protocol):
    def find_by_order(self, order_id: str) -> BillingRecord | None:
        ...

    def create(self, record: BillingRecord) -> BillingRecord:
        ...


class PartyStore(Protocol):
    def get_by_id(self, party_id: str) -> Party | None:
        ...


def check_order_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - ORDER_WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Order fields not writable by workers: {sorted(unknown)}")


def courier_reference(sequence: int) -> str:
    return f"COU-{sequence:06d}"
