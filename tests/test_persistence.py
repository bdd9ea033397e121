from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from courier_dispatch.models.domain import BillingRecord, OrderStatus, Stop
from courier_dispatch.persistence.database import (
    SupabaseBillingStore,
    SupabaseOrderStore,
    SupabaseRouteStore,
    route_from_row,
    route_to_row,
)
from courier_dispatch.persistence.memory import InMemoryBillingStore, InMemoryOrderStore, InMemoryRouteStore

from conftest import BOSTON_HARVARD, make_order, make_route


class DummyQuery:
    """Records the builder chain and filters rows like PostgREST would."""

    def __init__(self, table: "DummyTable", action: str, payload=None, count=None):
        self.table = table
        self.action = action
        self.payload = payload
        self.count = count
        self.filters: list = []

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def limit(self, n):
        return self

    def execute(self):
        if self.action == "insert":
            row = {"id": str(len(self.table.rows) + 1), **self.payload}
            self.table.rows.append(row)
            return SimpleNamespace(data=[row], count=None)
        matched = [row for row in self.table.rows if all(check(row) for check in self.filters)]
        if self.action == "update":
            for row in matched:
                row.update(self.payload)
        return SimpleNamespace(data=[dict(row) for row in matched], count=len(self.table.rows))


class DummyTable:
    def __init__(self, rows=None):
        self.rows = list(rows or [])

    def select(self, *args, count=None):
        return DummyQuery(self, "select", count=count)

    def insert(self, payload):
        return DummyQuery(self, "insert", payload)

    def update(self, payload):
        return DummyQuery(self, "update", payload)


class DummySupabase:
    def __init__(self, **tables):
        self.tables = {name: DummyTable(rows) for name, rows in tables.items()}

    def table(self, name):
        return self.tables.setdefault(name, DummyTable())


def test_memory_assign_route_is_write_once() -> None:
    store = InMemoryOrderStore([make_order()])

    first = store.assign_route("db-1", "route-a", OrderStatus.SCHEDULED)
    second = store.assign_route("db-1", "route-b", OrderStatus.SCHEDULED)

    assert first.route_id == "route-a"
    assert second is None
    assert store.get_by_id("db-1").route_id == "route-a"
    assert store.assign_route("missing", "route-a", OrderStatus.SCHEDULED) is None


def test_memory_order_update_rejects_unknown_fields() -> None:
    store = InMemoryOrderStore([make_order()])

    with pytest.raises(ValueError):
        store.update("db-1", {"qty": 5})


def test_memory_route_store_returns_copies() -> None:
    store = InMemoryRouteStore()
    created = store.create(make_route())

    created.stops.append(Stop(name="Detached", coordinates=None))

    assert store.get(created.id).stops == []


def test_memory_billing_store_assigns_courier_sequence() -> None:
    store = InMemoryBillingStore()
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)

    first = store.create(BillingRecord(order_id="a", hospital_id="h", amount=1.0, invoice_date=now, due_date=now))
    second = store.create(BillingRecord(order_id="b", hospital_id="h", amount=1.0, invoice_date=now, due_date=now))

    assert (first.courier, second.courier) == ("COU-000001", "COU-000002")
    assert store.find_by_order("b").id == second.id


def test_route_row_round_trip() -> None:
    route = make_route(stops=[Stop(name="Mercy General", coordinates=BOSTON_HARVARD, address="123 Harvard St")])
    route.geometry = [BOSTON_HARVARD]
    row = {"id": "42", **route_to_row(route)}

    restored = route_from_row(row)

    assert restored.id == "42"
    assert restored.name == route.name
    assert restored.stops == route.stops
    assert restored.geometry == [BOSTON_HARVARD]
    assert restored.start_location.coordinates == route.start_location.coordinates


def test_supabase_assign_route_only_when_unset() -> None:
    client = DummySupabase(orders=[{"id": "db-1", "user_id": "u", "route_id": None, "status": "Pending"}])
    store = SupabaseOrderStore(client)

    assigned = store.assign_route("db-1", "r-1", OrderStatus.SCHEDULED)
    repeated = store.assign_route("db-1", "r-2", OrderStatus.SCHEDULED)

    assert assigned.route_id == "r-1"
    assert assigned.status == OrderStatus.SCHEDULED
    assert repeated is None
    assert client.tables["orders"].rows[0]["route_id"] == "r-1"


def test_supabase_route_store_skips_invalid_rows() -> None:
    valid = {"id": "1", **route_to_row(make_route())}
    client = DummySupabase(routes=[valid, {"status": "Active"}])

    routes = SupabaseRouteStore(client).list_active()

    assert [route.id for route in routes] == ["1"]


def test_supabase_billing_store_numbers_courier_from_row_count() -> None:
    client = DummySupabase(billings=[{"id": "1"}, {"id": "2"}])
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)

    record = SupabaseBillingStore(client).create(
        BillingRecord(order_id="db-1", hospital_id="h", amount=12.5, invoice_date=now, due_date=now)
    )

    assert record.courier == "COU-000003"
    assert record.invoice_date == now
