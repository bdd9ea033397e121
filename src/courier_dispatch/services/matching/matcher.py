"""Matching deliveries against the set of active routes."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from ...config import Settings, settings as default_settings
from ...exceptions import DispatchError, RouteMatchingError
from ...models.domain import (
    Coordinate,
    Location,
    MatchResult,
    Route,
    RouteMatch,
    RouteStatus,
    RouteSuggestion,
    Stop,
)
from ...persistence.stores import RouteStore
from ..geo import GeoResolver
from ..geospatial import distance_to_route
from .stops import has_stop

logger = logging.getLogger(__name__)

UNKNOWN_CITY = "Unknown City"
UNKNOWN_STATE = "Unknown State"
AUTO_ETA = "Auto-Generated"


def parse_delivery_area(address: str) -> tuple[str, str, str | None]:
    """Split ``street, city, STATE zip`` into ``(city, state, zipcode)``.

    The city is the second-to-last comma token and the state the first word
    of the last token. A single token only yields a state, never a zipcode.
    """
    parts = [part.strip() for part in (address or "").split(",")]
    city = (parts[-2] if len(parts) >= 2 else "") or UNKNOWN_CITY
    words = parts[-1].split()
    state = words[0] if words else UNKNOWN_STATE
    zipcode = words[1] if len(parts) >= 2 and len(words) > 1 else None
    return city, state, zipcode


def route_name_for_delivery(address: str) -> str:
    city, state, _ = parse_delivery_area(address)
    return f"Route to {city}, {state}"


class RouteMatcher:
    """Scores active routes by anchor proximity and grows them with new stops."""

    def __init__(self, resolver: GeoResolver, routes: RouteStore, config: Settings | None = None) -> None:
        self.resolver = resolver
        self.routes = routes
        self.config = config or default_settings

    def _geocode_all(self, addresses: Sequence[str]) -> list[Coordinate]:
        with ThreadPoolExecutor(max_workers=len(addresses)) as executor:
            return list(executor.map(self.resolver.geocode, addresses))

    def _warehouse_location(self, coordinates: Coordinate) -> Location:
        return Location(
            address=self.config.warehouse_address,
            city=self.config.warehouse_city,
            state=self.config.warehouse_state,
            zipcode=self.config.warehouse_zipcode,
            coordinates=coordinates,
        )

    def find_best_matching_route(
        self,
        pickup_address: str,
        delivery_address: str,
        max_distance_km: float | None = None,
    ) -> RouteMatch:
        """Best route whose anchors lie within ``max_distance_km`` of both ends.

        Score is ``max(0, 100 - (pickup_km + delivery_km))``; the first route
        wins ties. Failures are logged and yield an empty match.
        """
        max_distance = self.config.route_match_max_distance_km if max_distance_km is None else max_distance_km
        logger.info(f"Finding best route for pickup: '{pickup_address}' -> delivery: '{delivery_address}'")

        try:
            pickup_coords, delivery_coords = self._geocode_all([pickup_address, delivery_address])
            routes = self.routes.list_active()
        except Exception as exc:
            logger.error(f"Error finding matching route: {exc}")
            return RouteMatch(route=None, match_score=0.0)

        if not routes:
            logger.info("No active routes found")
            return RouteMatch(route=None, match_score=0.0)

        best = RouteMatch(route=None, match_score=0.0)
        for route in routes:
            pickup_match = distance_to_route(pickup_coords, route)
            delivery_match = distance_to_route(delivery_coords, route)

            if pickup_match.distance_km > max_distance or delivery_match.distance_km > max_distance:
                logger.debug(
                    "Route '%s' rejected: pickup=%.2fkm, delivery=%.2fkm (max: %skm)",
                    route.name,
                    pickup_match.distance_km,
                    delivery_match.distance_km,
                    max_distance,
                )
                continue

            total_distance = pickup_match.distance_km + delivery_match.distance_km
            match_score = max(0.0, 100.0 - total_distance)
            efficiency = (2 * max_distance - total_distance) / (2 * max_distance) * 100 if max_distance else 0.0

            if best.route is None or match_score > best.match_score:
                best = RouteMatch(
                    route=route,
                    match_score=match_score,
                    details={
                        "route_id": route.id,
                        "route_name": route.name,
                        "pickup_match": pickup_match,
                        "delivery_match": delivery_match,
                        "total_distance_km": total_distance,
                        "match_score": match_score,
                        "efficiency": efficiency,
                    },
                )

        if best.route:
            logger.info(f"Best match: '{best.route.name}' with score {best.match_score:.1f}")
        else:
            logger.info("No suitable routes found within distance criteria")
        return best

    def get_route_suggestions(self, address: str, max_distance_km: float | None = None) -> list[RouteSuggestion]:
        """Active routes near ``address``, closest first. Read-only."""
        max_distance = self.config.route_suggestion_max_distance_km if max_distance_km is None else max_distance_km
        try:
            coordinates = self.resolver.geocode(address)
            routes = self.routes.list_active()
        except Exception as exc:
            logger.error(f"Error getting route suggestions: {exc}")
            return []

        suggestions = []
        for route in routes:
            anchor = distance_to_route(coordinates, route)
            suggestions.append(
                RouteSuggestion(route=route, distance_km=anchor.distance_km, anchor=anchor, suitable=anchor.distance_km <= max_distance)
            )
        return sorted((s for s in suggestions if s.suitable), key=lambda s: s.distance_km)

    def find_or_create_route_for_delivery(
        self,
        static_pickup_address: str,
        delivery_address: str,
        stop_name: str,
        stop_address: str,
        max_distance_km: float | None = None,
    ) -> MatchResult:
        """Attach the stop to the closest route serving the delivery, or create one.

        Proximity is measured from the delivery point only. Raises
        ``RouteMatchingError`` when any address cannot be geocoded.
        """
        max_distance = self.config.route_assignment_max_distance_km if max_distance_km is None else max_distance_km
        logger.info(f"Finding or creating route for delivery: '{delivery_address}' from '{stop_name}'")

        try:
            pickup_coords, delivery_coords, stop_coords = self._geocode_all(
                [static_pickup_address, delivery_address, stop_address]
            )
        except DispatchError as exc:
            raise RouteMatchingError(
                f"Cannot geocode addresses for delivery '{delivery_address}': {exc.message}",
                details={"delivery_address": delivery_address, "stop_name": stop_name},
            ) from exc

        best_route: Route | None = None
        best_distance = math.inf
        for route in self.routes.list_active():
            delivery_match = distance_to_route(delivery_coords, route)
            if delivery_match.distance_km > max_distance:
                logger.debug(
                    "Route '%s': delivery distance=%.2fkm (too far, max: %skm)",
                    route.name,
                    delivery_match.distance_km,
                    max_distance,
                )
                continue
            if delivery_match.distance_km < best_distance:
                best_distance = delivery_match.distance_km
                best_route = route

        if best_route is not None:
            return self._attach_stop(best_route, best_distance, stop_name, stop_address, stop_coords)

        logger.info(f"No existing route found within {max_distance}km. Creating new route...")
        return self._create_route(pickup_coords, delivery_address, delivery_coords, stop_name, stop_address, stop_coords)

    def _attach_stop(
        self,
        route: Route,
        delivery_distance: float,
        stop_name: str,
        stop_address: str,
        stop_coords: Coordinate,
    ) -> MatchResult:
        match_score = max(0.0, 100.0 - delivery_distance)

        if has_stop(route.stops, stop_name):
            logger.info(f"'{stop_name}' already exists in route '{route.name}'")
            return MatchResult(
                route=route,
                created=False,
                stop_added=False,
                match_score=match_score,
                delivery_distance_km=delivery_distance,
                message=f"Assigned to existing route '{route.name}' (stop already present)",
            )

        route.stops.append(Stop(name=stop_name, address=stop_address, coordinates=stop_coords))
        route.geometry = self.resolver.route_through(route.anchor_coordinates()).geometry
        saved = self.routes.save(route)
        logger.info(f"Stop '{stop_name}' added to route '{saved.name}' ({len(saved.stops)} stops)")

        return MatchResult(
            route=saved,
            created=False,
            stop_added=True,
            match_score=match_score,
            delivery_distance_km=delivery_distance,
            message=f"'{stop_name}' added as stop to existing route '{saved.name}'",
        )

    def _create_route(
        self,
        pickup_coords: Coordinate,
        delivery_address: str,
        delivery_coords: Coordinate,
        stop_name: str,
        stop_address: str,
        stop_coords: Coordinate,
    ) -> MatchResult:
        city, state, zipcode = parse_delivery_area(delivery_address)
        path = self.resolver.route(pickup_coords, delivery_coords, [stop_coords])

        route = Route(
            name=route_name_for_delivery(delivery_address),
            start_location=self._warehouse_location(pickup_coords),
            end_location=Location(
                address=delivery_address,
                city=city,
                state=state,
                zipcode=zipcode,
                coordinates=delivery_coords,
            ),
            stops=[Stop(name=stop_name, address=stop_address, coordinates=stop_coords)],
            geometry=path.geometry,
            status=RouteStatus.ACTIVE,
            active_days=list(self.config.default_active_days),
            eta=AUTO_ETA,
        )
        created = self.routes.create(route)
        logger.info(f"Created new route: '{created.name}' (ID: {created.id}) with '{stop_name}' as stop")

        return MatchResult(
            route=created,
            created=True,
            stop_added=True,
            match_score=100.0,
            delivery_distance_km=0.0,
            message=f"New route '{created.name}' created with '{stop_name}' as stop",
        )
