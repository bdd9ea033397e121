"""Assigns queued orders to a route, creating the route when none is close."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from ..config import Settings, settings as default_settings
from ..exceptions import ResourceNotFoundError, RouteMatchingError
from ..models.domain import Order, OrderStatus, Route
from ..notifications.events import ROUTE_ASSIGNED, EventSink
from ..persistence.stores import OrderStore, PartyStore
from ..queue.transport import QueueTransport
from ..schemas.messages import RouteAssignmentMessage
from ..services.matching import RouteMatcher
from .base import HandlerResult, Worker

logger = logging.getLogger(__name__)


def fallback_stop_name(user_id: str) -> str:
    return f"Hospital-{str(user_id)[-6:]}"


class RouteAssignmentWorker(Worker):
    message_model = RouteAssignmentMessage

    def __init__(
        self,
        transport: QueueTransport,
        orders: OrderStore,
        parties: PartyStore,
        matcher: RouteMatcher,
        events: EventSink,
        config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        super().__init__("routeAssignment", config.route_assignment_queue, transport, config)
        self.orders = orders
        self.parties = parties
        self.matcher = matcher
        self.events = events
        self.static_pickup_address = config.static_pickup_address

    def _stop_name(self, message: RouteAssignmentMessage) -> str:
        party = self.parties.get_by_id(message.user_id)
        if party is not None and party.name:
            return party.name
        return message.hospital_name or fallback_stop_name(message.user_id)

    def handle(self, message: RouteAssignmentMessage) -> HandlerResult:
        order = self.orders.get_by_id(message.order_db_id)
        if order is None:
            raise ResourceNotFoundError("Order", message.order_db_id)

        if order.route_id:
            logger.info(f"Order {order.reference} already has route assigned: {order.route_id}")
            return HandlerResult.SKIPPED

        delivery_address = message.delivery_location.to_domain().formatted()
        stop_name = self._stop_name(message)
        logger.info(
            f"Processing route assignment from: '{self.static_pickup_address}' -> to: '{delivery_address}' "
            f"for hospital: '{stop_name}'"
        )

        match = self.matcher.find_or_create_route_for_delivery(
            self.static_pickup_address,
            delivery_address,
            stop_name,
            delivery_address,
        )
        if match.route is None or match.route.id is None:
            raise RouteMatchingError(f"Failed to find or create route for order {order.reference}")

        updated = self.orders.assign_route(order.id, match.route.id, OrderStatus.SCHEDULED)
        if updated is None:
            logger.warning(f"Order {order.reference} was assigned a route concurrently; keeping the existing one")
            return HandlerResult.SKIPPED

        logger.info(f"Route assigned to order {updated.reference}: '{match.route.name}'")
        self._notify(updated, match.route)
        return HandlerResult.PROCESSED

    def _notify(self, order: Order, route: Route) -> None:
        payload = {
            "type": "ROUTE_ASSIGNED",
            "order": asdict(order),
            "route": {"id": route.id, "name": route.name, "stops": len(route.stops)},
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": f"Order {order.reference} has been assigned to route {route.name}",
        }
        try:
            self.events.emit(ROUTE_ASSIGNED, payload)
        except Exception as exc:
            logger.error(f"Error emitting route assignment event for order {order.reference}: {exc}")
