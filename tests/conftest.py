from __future__ import annotations

import pytest

from courier_dispatch.config import Settings
from courier_dispatch.exceptions import ProviderUnavailableError
from courier_dispatch.models.domain import Coordinate, Location, Order, Party, Route, RouteGeometry, Stop
from courier_dispatch.notifications.events import RecordingEventSink
from courier_dispatch.persistence.memory import (
    InMemoryBillingStore,
    InMemoryOrderStore,
    InMemoryPartyStore,
    InMemoryRouteStore,
)
from courier_dispatch.queue.memory import InMemoryQueueTransport
from courier_dispatch.services.geo import GeoResolver
from courier_dispatch.services.matching import RouteMatcher

WAREHOUSE = (-73.9726, 40.8929)
BOSTON_HARVARD = (-71.1218, 42.3427)
BOSTON_BEACON = (-71.0700, 42.3570)
PHILADELPHIA = (-75.1652, 39.9526)

KNOWN_ADDRESSES: dict[str, Coordinate] = {
    "160 W Forest Ave, Englewood": WAREHOUSE,
    "123 Harvard St, Boston, MA": BOSTON_HARVARD,
    "123 Harvard St, Boston, MA 02134": BOSTON_HARVARD,
    "45 Beacon St, Boston, MA": BOSTON_BEACON,
    "45 Beacon St, Boston, MA 02108": BOSTON_BEACON,
    "1 Market St, Philadelphia, PA": PHILADELPHIA,
    "1 Market St, Philadelphia, PA 19106": PHILADELPHIA,
}


class DictGeocoder:
    """Geocoder answering from a fixed table."""

    name = "dict"

    def __init__(self, table: dict[str, Coordinate] | None = None) -> None:
        self.table = dict(KNOWN_ADDRESSES if table is None else table)
        self.calls: list[str] = []

    def geocode(self, address: str) -> Coordinate:
        self.calls.append(address)
        if address not in self.table:
            raise ProviderUnavailableError(self.name, "no results")
        return self.table[address]


class StraightLineRouter:
    name = "straight"

    def __init__(self) -> None:
        self.calls: list[list[Coordinate]] = []

    def route(self, start, end, waypoints=()):
        points = [start, *waypoints, end]
        self.calls.append(points)
        return RouteGeometry(geometry=points, distance_meters=1000.0, duration_seconds=60.0, provider=self.name)


class DownProvider:
    """Provider whose every call fails like an outage."""

    name = "down"

    def __init__(self) -> None:
        self.calls = 0

    def geocode(self, address):
        self.calls += 1
        raise ProviderUnavailableError(self.name, "connection refused")

    def route(self, start, end, waypoints=()):
        self.calls += 1
        raise ProviderUnavailableError(self.name, "connection refused")


def make_route(
    name: str = "Route to Boston, MA",
    start: Coordinate | None = WAREHOUSE,
    end: Coordinate | None = BOSTON_HARVARD,
    stops: list[Stop] | None = None,
    route_id: str | None = None,
) -> Route:
    return Route(
        name=name,
        start_location=Location(address="160 W Forest Ave", city="Englewood", state="NJ", coordinates=start),
        end_location=Location(address="123 Harvard St, Boston, MA", coordinates=end),
        stops=list(stops or []),
        id=route_id,
    )


def make_order(order_id: str = "db-1", user_id: str = "user-00a1b2c3", route_id: str | None = None) -> Order:
    return Order(
        id=order_id,
        user_id=user_id,
        pickup_location="160 W Forest Ave, Englewood",
        delivery_location="123 Harvard St, Boston, MA 02134",
        order_id=f"ORD-{order_id}",
        items="Blood samples",
        qty=2,
        route_id=route_id,
    )


@pytest.fixture
def config() -> Settings:
    return Settings(
        _env_file=None,
        worker_poll_interval_seconds=0.01,
        worker_error_backoff_seconds=0.01,
        queue_wait_time_seconds=0,
        queue_visibility_timeout_seconds=30,
        worker_max_retries=3,
        worker_retry_delay_seconds=0,
    )


@pytest.fixture
def geocoder() -> DictGeocoder:
    return DictGeocoder()


@pytest.fixture
def router() -> StraightLineRouter:
    return StraightLineRouter()


@pytest.fixture
def resolver(geocoder: DictGeocoder, router: StraightLineRouter) -> GeoResolver:
    return GeoResolver(geocoders=[geocoder], routers=[router])


@pytest.fixture
def route_store() -> InMemoryRouteStore:
    return InMemoryRouteStore()


@pytest.fixture
def matcher(resolver: GeoResolver, route_store: InMemoryRouteStore, config: Settings) -> RouteMatcher:
    return RouteMatcher(resolver, route_store, config)


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    return InMemoryOrderStore([make_order()])


@pytest.fixture
def billing_store() -> InMemoryBillingStore:
    return InMemoryBillingStore()


@pytest.fixture
def party_store() -> InMemoryPartyStore:
    return InMemoryPartyStore([Party(id="user-00a1b2c3", name="Mercy General", email="ops@mercy.example")])


@pytest.fixture
def transport() -> InMemoryQueueTransport:
    return InMemoryQueueTransport(visibility_timeout=30)


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()
