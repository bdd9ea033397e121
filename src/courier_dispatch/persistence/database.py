"""Supabase-backed stores for routes, orders, billing records and parties."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from ..models.domain import (
    BillingRecord,
    BillingStatus,
    Location,
    Order,
    OrderStatus,
    Party,
    Route,
    RouteStatus,
    Stop,
)
from .stores import check_order_fields, courier_reference

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coords(value: Any) -> tuple[float, float] | None:
    if not value or len(value) != 2:
        return None
    return (float(value[0]), float(value[1]))


def _location_to_row(location: Location) -> dict[str, Any]:
    return {
        "address": location.address,
        "city": location.city,
        "state": location.state,
        "zipcode": location.zipcode,
        "coordinates": list(location.coordinates) if location.coordinates else None,
    }


def _location_from_row(row: dict[str, Any] | None) -> Location:
    row = row or {}
    return Location(
        address=row.get("address") or "",
        city=row.get("city"),
        state=row.get("state"),
        zipcode=row.get("zipcode"),
        coordinates=_coords(row.get("coordinates")),
    )


def route_to_row(route: Route) -> dict[str, Any]:
    return {
        "route_name": route.name,
        "start_location": _location_to_row(route.start_location),
        "end_location": _location_to_row(route.end_location),
        "stops": [
            {
                "name": stop.name,
                "address": stop.address,
                "coordinates": list(stop.coordinates) if stop.coordinates else None,
            }
            for stop in route.stops
        ],
        "geometry": [list(point) for point in route.geometry] if route.geometry else None,
        "status": route.status.value,
        "active_days": list(route.active_days),
        "eta": route.eta,
        "updated_at": _now_iso(),
    }


def route_from_row(row: dict[str, Any]) -> Route:
    geometry = row.get("geometry")
    return Route(
        id=str(row["id"]),
        name=row.get("route_name") or "",
        start_location=_location_from_row(row.get("start_location")),
        end_location=_location_from_row(row.get("end_location")),
        stops=[
            Stop(name=stop.get("name") or "", address=stop.get("address"), coordinates=_coords(stop.get("coordinates")))
            for stop in (row.get("stops") or [])
        ],
        geometry=[(float(lng), float(lat)) for lng, lat in geometry] if geometry else None,
        status=RouteStatus(row.get("status") or RouteStatus.ACTIVE.value),
        active_days=list(row.get("active_days") or []),
        eta=row.get("eta"),
    )


def order_from_row(row: dict[str, Any]) -> Order:
    return Order(
        id=str(row["id"]),
        order_id=row.get("order_id"),
        user_id=str(row.get("user_id") or ""),
        pickup_location=row.get("pickup_location") or "",
        delivery_location=row.get("delivery_location") or "",
        items=row.get("items"),
        qty=int(row.get("qty") or 1),
        route_id=str(row["route_id"]) if row.get("route_id") else None,
        status=OrderStatus(row.get("status") or OrderStatus.PENDING.value),
    )


def billing_from_row(row: dict[str, Any]) -> BillingRecord:
    return BillingRecord(
        id=str(row["id"]),
        order_id=str(row["order_id"]),
        hospital_id=str(row["hospital_id"]),
        courier=row.get("courier"),
        amount=float(row["amount"]),
        invoice_date=datetime.fromisoformat(str(row["invoice_date"])),
        due_date=datetime.fromisoformat(str(row["due_date"])),
        status=BillingStatus(row.get("status") or BillingStatus.UNPAID.value),
    )


class SupabaseRouteStore:
    table = "routes"

    def __init__(self, client: Client) -> None:
        self.client = client

    def list_active(self) -> list[Route]:
        response = self.client.table(self.table).select("*").eq("status", RouteStatus.ACTIVE.value).execute()
        routes: list[Route] = []
        for row in response.data or []:
            try:
                routes.append(route_from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                # Skip invalid rows but continue processing
                logger.warning(f"Skipping invalid route row {row.get('id')}: {e}")
        return routes

    def get(self, route_id: str) -> Route | None:
        response = self.client.table(self.table).select("*").eq("id", route_id).limit(1).execute()
        rows = response.data or []
        return route_from_row(rows[0]) if rows else None

    def create(self, route: Route) -> Route:
        row = route_to_row(route)
        row["created_at"] = row["updated_at"]
        response = self.client.table(self.table).insert(row).execute()
        return route_from_row(response.data[0])

    def save(self, route: Route) -> Route:
        if not route.id:
            raise ValueError("Cannot save a route without an id.")
        response = self.client.table(self.table).update(route_to_row(route)).eq("id", route.id).execute()
        rows = response.data or []
        return route_from_row(rows[0]) if rows else route


class SupabaseOrderStore:
    table = "orders"

    def __init__(self, client: Client) -> None:
        self.client = client

    def get_by_id(self, order_id: str) -> Order | None:
        response = self.client.table(self.table).select("*").eq("id", order_id).limit(1).execute()
        rows = response.data or []
        return order_from_row(rows[0]) if rows else None

    def update(self, order_id: str, fields: dict[str, Any]) -> Order | None:
        check_order_fields(fields)
        payload = {key: value.value if isinstance(value, OrderStatus) else value for key, value in fields.items()}
        payload["updated_at"] = _now_iso()
        response = self.client.table(self.table).update(payload).eq("id", order_id).execute()
        rows = response.data or []
        return order_from_row(rows[0]) if rows else None

    def assign_route(self, order_id: str, route_id: str, status: OrderStatus) -> Order | None:
        # Conditional update keeps the route assignment write-once across instances.
        response = (
            self.client.table(self.table)
            .update({"route_id": route_id, "status": status.value, "updated_at": _now_iso()})
            .eq("id", order_id)
            .is_("route_id", "null")
            .execute()
        )
        rows = response.data or []
        return order_from_row(rows[0]) if rows else None


class SupabaseBillingStore:
    table = "billings"

    def __init__(self, client: Client) -> None:
        self.client = client

    def find_by_order(self, order_id: str) -> BillingRecord | None:
        response = self.client.table(self.table).select("*").eq("order_id", order_id).limit(1).execute()
        rows = response.data or []
        return billing_from_row(rows[0]) if rows else None

    def _next_courier(self) -> str:
        response = self.client.table(self.table).select("id", count="exact").limit(1).execute()
        return courier_reference((response.count or 0) + 1)

    def create(self, record: BillingRecord) -> BillingRecord:
        now = _now_iso()
        row = {
            "order_id": record.order_id,
            "hospital_id": record.hospital_id,
            "courier": record.courier or self._next_courier(),
            "amount": record.amount,
            "invoice_date": record.invoice_date.isoformat(),
            "due_date": record.due_date.isoformat(),
            "status": record.status.value,
            "created_at": now,
            "updated_at": now,
        }
        response = self.client.table(self.table).insert(row).execute()
        return billing_from_row(response.data[0])


class SupabasePartyStore:
    table = "users"

    def __init__(self, client: Client) -> None:
        self.client = client

    def get_by_id(self, party_id: str) -> Party | None:
        response = self.client.table(self.table).select("id,name,email").eq("id", party_id).limit(1).execute()
        rows = response.data or []
        if not rows:
            return None
        row = rows[0]
        return Party(id=str(row["id"]), name=row.get("name"), email=row.get("email"))
