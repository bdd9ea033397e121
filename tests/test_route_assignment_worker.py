import pytest

from courier_dispatch.exceptions import ResourceNotFoundError
from courier_dispatch.models.domain import OrderStatus
from courier_dispatch.notifications.events import ROUTE_ASSIGNED
from courier_dispatch.persistence.memory import InMemoryPartyStore
from courier_dispatch.queue import OrderEventPublisher
from courier_dispatch.models.domain import Location
from courier_dispatch.schemas.messages import parse_message_body
from courier_dispatch.workers.base import HandlerResult, MessageOutcome
from courier_dispatch.workers.route_assignment import RouteAssignmentWorker, fallback_stop_name

from conftest import make_order

HARVARD = Location(address="123 Harvard St", city="Boston", state="MA", zipcode="02134")


@pytest.fixture
def worker(transport, order_store, party_store, matcher, events, config) -> RouteAssignmentWorker:
    return RouteAssignmentWorker(transport, order_store, party_store, matcher, events, config)


@pytest.fixture
def publisher(transport, config) -> OrderEventPublisher:
    return OrderEventPublisher(transport, config)


def _message(order_id: str = "db-1", user_id: str = "user-00a1b2c3", **overrides):
    body = {
        "type": "ROUTE_ASSIGNMENT",
        "orderId": f"ORD-{order_id}",
        "orderDbId": order_id,
        "userId": user_id,
        "pickupLocation": "160 W Forest Ave, Englewood",
        "deliveryLocation": {"address": "123 Harvard St", "city": "Boston", "state": "MA", "zipcode": "02134"},
        "qty": 1,
        "retryCount": 0,
    }
    body.update(overrides)
    return parse_message_body(body)


def test_assigns_route_and_schedules_order(worker, order_store, route_store, events) -> None:
    assert worker.handle(_message()) == HandlerResult.PROCESSED

    order = order_store.get_by_id("db-1")
    assert order.route_id is not None
    assert order.status == OrderStatus.SCHEDULED
    route = route_store.get(order.route_id)
    assert route.name == "Route to Boston, MA"
    assert [stop.name for stop in route.stops] == ["Mercy General"]
    assert route.stops[0].address == "123 Harvard St, Boston, MA 02134"

    emitted = events.of_type(ROUTE_ASSIGNED)
    assert len(emitted) == 1
    assert emitted[0]["route"]["id"] == order.route_id
    assert emitted[0]["order"]["id"] == "db-1"


def test_redelivery_is_a_noop(worker, order_store, route_store, events) -> None:
    message = _message()
    worker.handle(message)
    routes_before = route_store.list_all()

    assert worker.handle(message) == HandlerResult.SKIPPED

    assert route_store.list_all() == routes_before
    assert len(events.of_type(ROUTE_ASSIGNED)) == 1


def test_missing_order_raises_not_found(worker) -> None:
    with pytest.raises(ResourceNotFoundError):
        worker.handle(_message(order_id="missing"))


def test_stop_name_falls_back_to_message_then_user_id(transport, order_store, matcher, events, config, route_store) -> None:
    worker = RouteAssignmentWorker(transport, order_store, InMemoryPartyStore(), matcher, events, config)
    order_store.add(make_order("db-2", user_id="user-0000ff99ee"))

    worker.handle(_message(hospitalName="Children's Hospital"))
    worker.handle(_message(order_id="db-2", user_id="user-0000ff99ee"))

    route = route_store.get(order_store.get_by_id("db-1").route_id)
    assert [stop.name for stop in route.stops] == ["Children's Hospital", "Hospital-ff99ee"]
    assert fallback_stop_name("abc") == "Hospital-abc"


def test_lost_assignment_race_is_skipped(worker, order_store, monkeypatch) -> None:
    monkeypatch.setattr(order_store, "assign_route", lambda order_id, route_id, status: None)

    assert worker.handle(_message()) == HandlerResult.SKIPPED


def test_event_sink_failure_does_not_fail_message(transport, order_store, party_store, matcher, config) -> None:
    class ExplodingSink:
        def emit(self, event_type, payload):
            raise RuntimeError("socket closed")

    worker = RouteAssignmentWorker(transport, order_store, party_store, matcher, ExplodingSink(), config)

    assert worker.handle(_message()) == HandlerResult.PROCESSED
    assert order_store.get_by_id("db-1").status == OrderStatus.SCHEDULED


def test_published_message_flows_through_queue(worker, publisher, order_store, transport, config) -> None:
    order = order_store.get_by_id("db-1")
    publisher.publish_route_assignment(order, HARVARD)

    leased = transport.receive(config.route_assignment_queue)
    assert leased[0].attributes == {"OrderId": "ORD-db-1", "UserId": "user-00a1b2c3", "MessageType": "ROUTE_ASSIGNMENT"}
    transport.ack(leased[0], requeue=True, delay_hint=0)

    assert worker.run_once() == [MessageOutcome.PROCESSED]
    assert order_store.get_by_id("db-1").route_id is not None
