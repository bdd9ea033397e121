"""Domain models for routes, orders and billing records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

# Always (longitude, latitude), WGS84 degrees.
Coordinate = Tuple[float, float]


class RouteStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    COMPLETED = "Completed"
    ARCHIVED = "Archived"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    PICKED_UP = "Picked Up"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURN_CREATED = "Return Created"
    INVOICE_GENERATED = "Invoice Generated"


class BillingStatus(str, Enum):
    PAID = "Paid"
    UNPAID = "Unpaid"
    OVERDUE = "Overdue"
    PENDING = "Pending"
    PARTIALLY_PAID = "Partially Paid"
    CANCELLED = "Cancelled"


@dataclass(slots=True)
class Location:
    """A postal address, optionally resolved to coordinates."""

    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    coordinates: Optional[Coordinate] = None

    def formatted(self) -> str:
        """Render as ``address, city, state zipcode`` skipping empty parts."""
        parts = [self.address.strip()] if self.address and self.address.strip() else []
        if self.city:
            parts.append(self.city.strip())
        tail = " ".join(part.strip() for part in (self.state, self.zipcode) if part and part.strip())
        if tail:
            parts.append(tail)
        return ", ".join(parts)


@dataclass(slots=True)
class Stop:
    """A waypoint on a route, owned by exactly one route."""

    name: str
    coordinates: Optional[Coordinate]
    address: Optional[str] = None


@dataclass(slots=True)
class Route:
    """A delivery route shared by every order assigned to it."""

    name: str
    start_location: Location
    end_location: Location
    stops: List[Stop] = field(default_factory=list)
    geometry: Optional[List[Coordinate]] = None
    status: RouteStatus = RouteStatus.ACTIVE
    active_days: List[str] = field(default_factory=list)
    eta: Optional[str] = None
    id: Optional[str] = None

    def anchor_coordinates(self) -> list[Coordinate]:
        """Start, every stop with coordinates, then end, in travel order."""
        waypoints = [stop.coordinates for stop in self.stops if stop.coordinates is not None]
        anchors: list[Coordinate] = []
        if self.start_location.coordinates is not None:
            anchors.append(self.start_location.coordinates)
        anchors.extend(waypoints)
        if self.end_location.coordinates is not None:
            anchors.append(self.end_location.coordinates)
        return anchors


@dataclass(slots=True)
class Order:
    id: str
    user_id: str
    pickup_location: str
    delivery_location: str
    order_id: Optional[str] = None
    items: Optional[str] = None
    qty: int = 1
    route_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING

    @property
    def reference(self) -> str:
        return self.order_id or self.id


@dataclass(slots=True)
class Party:
    """The hospital or user that requested an order."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(slots=True)
class BillingRecord:
    order_id: str
    hospital_id: str
    amount: float
    invoice_date: datetime
    due_date: datetime
    status: BillingStatus = BillingStatus.UNPAID
    courier: Optional[str] = None
    id: Optional[str] = None


@dataclass(slots=True)
class MatchResult:
    """Outcome of find-or-create for a single delivery. Not persisted."""

    route: Route
    created: bool
    stop_added: bool
    match_score: float
    delivery_distance_km: float
    message: str = ""


@dataclass(slots=True)
class AnchorMatch:
    """Closest anchor of a route to a point."""

    distance_km: float
    kind: str
    index: Optional[int] = None
    description: Optional[str] = None


@dataclass(slots=True)
class RouteMatch:
    """Best-scoring route for a pickup/delivery pair."""

    route: Optional[Route]
    match_score: float
    details: Optional[dict[str, Any]] = None


@dataclass(slots=True)
class RouteSuggestion:
    route: Route
    distance_km: float
    anchor: AnchorMatch
    suitable: bool


@dataclass(slots=True)
class RouteGeometry:
    """Routed path between anchors as returned by a routing provider."""

    geometry: List[Coordinate]
    distance_meters: float
    duration_seconds: float
    provider: str = "unknown"
