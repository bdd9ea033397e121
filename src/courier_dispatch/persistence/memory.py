"""In-process stores used for local runs and tests.

Every read and write goes through a deep copy, so callers see the same
read-modify-write behaviour they would against a real database.
"""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import replace
from typing import Any, Iterable

from ..models.domain import BillingRecord, Order, OrderStatus, Party, Route, RouteStatus
from .stores import check_order_fields, courier_reference


class InMemoryRouteStore:
    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._lock = threading.Lock()
        self._routes: dict[str, Route] = {}
        for route in routes:
            self.create(route)

    def list_active(self) -> list[Route]:
        with self._lock:
            return [copy.deepcopy(route) for route in self._routes.values() if route.status == RouteStatus.ACTIVE]

    def list_all(self) -> list[Route]:
        with self._lock:
            return [copy.deepcopy(route) for route in self._routes.values()]

    def get(self, route_id: str) -> Route | None:
        with self._lock:
            route = self._routes.get(route_id)
            return copy.deepcopy(route) if route else None

    def create(self, route: Route) -> Route:
        stored = copy.deepcopy(route)
        stored.id = stored.id or uuid.uuid4().hex
        with self._lock:
            self._routes[stored.id] = stored
        return copy.deepcopy(stored)

    def save(self, route: Route) -> Route:
        if not route.id:
            raise ValueError("Cannot save a route without an id.")
        with self._lock:
            # Last write wins; there is no version check.
            self._routes[route.id] = copy.deepcopy(route)
        return copy.deepcopy(route)


class InMemoryOrderStore:
    def __init__(self, orders: Iterable[Order] = ()) -> None:
        self._lock = threading.Lock()
        self._orders: dict[str, Order] = {order.id: copy.deepcopy(order) for order in orders}

    def add(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = copy.deepcopy(order)
        return order

    def get_by_id(self, order_id: str) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
            return copy.deepcopy(order) if order else None

    def update(self, order_id: str, fields: dict[str, Any]) -> Order | None:
        check_order_fields(fields)
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return None
            updated = replace(order, **fields)
            self._orders[order_id] = updated
            return copy.deepcopy(updated)

    def assign_route(self, order_id: str, route_id: str, status: OrderStatus) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or order.route_id:
                return None
            updated = replace(order, route_id=route_id, status=status)
            self._orders[order_id] = updated
            return copy.deepcopy(updated)


class InMemoryBillingStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, BillingRecord] = {}
        self._sequence = 0

    def find_by_order(self, order_id: str) -> BillingRecord | None:
        with self._lock:
            for record in self._records.values():
                if record.order_id == order_id:
                    return copy.deepcopy(record)
        return None

    def create(self, record: BillingRecord) -> BillingRecord:
        with self._lock:
            self._sequence += 1
            stored = replace(
                record,
                id=record.id or uuid.uuid4().hex,
                courier=record.courier or courier_reference(self._sequence),
            )
            self._records[stored.id] = stored
            return copy.deepcopy(stored)

    def all(self) -> list[BillingRecord]:
        with self._lock:
            return [copy.deepcopy(record) for record in self._records.values()]


class InMemoryPartyStore:
    def __init__(self, parties: Iterable[Party] = ()) -> None:
        self._parties: dict[str, Party] = {party.id: party for party in parties}

    def add(self, party: Party) -> Party:
        self._parties[party.id] = party
        return party

    def get_by_id(self, party_id: str) -> Party | None:
        return self._parties.get(party_id)
