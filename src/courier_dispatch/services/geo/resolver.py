"""Ordered provider chain for geocoding and routing."""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import Settings, settings as default_settings
from ...exceptions import GeocodingError
from ...models.domain import Coordinate, RouteGeometry
from .providers import GeocodingProvider, RoutingProvider
from .synthetic import SyntheticGeocoder, SyntheticRouter

logger = logging.getLogger(__name__)


class GeoResolver:
    """Tries each provider in order and falls through on any failure.

    The synthetic tier is always last, so ``geocode`` answers every address
    address and ``route`` always returns a path.
    """

    def __init__(
        self,
        geocoders: Sequence[GeocodingProvider] = (),
        routers: Sequence[RoutingProvider] = (),
        synthetic_geocoder: GeocodingProvider | None = None,
        synthetic_router: RoutingProvider | None = None,
    ) -> None:
        self.geocoders: list[GeocodingProvider] = [*geocoders, synthetic_geocoder or SyntheticGeocoder()]
        self.routers: list[RoutingProvider] = [*routers, synthetic_router or SyntheticRouter()]

    def geocode(self, address: str) -> Coordinate:
        for provider in self.geocoders:
            try:
                coordinates = provider.geocode(address)
            except Exception as exc:
                logger.warning(f"{provider.name} geocoding failed for '{address}': {exc}")
                continue
            logger.debug("Geocoded '%s' via %s: %s", address, provider.name, coordinates)
            return coordinates

        raise GeocodingError(address)

    def route(self, start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate] = ()) -> RouteGeometry:
        for provider in self.routers:
            try:
                result = provider.route(start, end, list(waypoints))
            except Exception as exc:
                logger.warning(f"{provider.name} route calculation failed: {exc}")
                continue
            logger.info(
                "Route via %s: %.2f km, %d minutes, %d points",
                provider.name,
                result.distance_meters / 1000,
                round(result.duration_seconds / 60),
                len(result.geometry),
            )
            return result

        # Only reachable when a custom synthetic router was injected and failed.
        raise RuntimeError("No routing provider produced a path.")

    def route_through(self, anchors: Sequence[Coordinate]) -> RouteGeometry:
        """Route over ``[start, *waypoints, end]`` given as one sequence."""
        if len(anchors) < 2:
            raise ValueError("At least two anchors are required to compute a route.")
        return self.route(anchors[0], anchors[-1], anchors[1:-1])


def build_geo_resolver(config: Settings | None = None) -> GeoResolver:
    """Assemble the chain from settings, leaving out unconfigured tiers."""
    from .location_service import LocationServiceClient
    from .nominatim import NominatimGeocoder
    from .osrm_client import OSRMClient

    config = config or default_settings
    geocoders: list[GeocodingProvider] = []
    routers: list[RoutingProvider] = []

    if config.location_service_api_key:
        location_client = LocationServiceClient(
            api_key=config.location_service_api_key,
            region=config.location_service_region,
            place_index=config.location_service_place_index,
            route_calculator=config.location_service_route_calculator,
            timeout=config.location_service_timeout_seconds,
            max_retries=config.osrm_max_retries,
            backoff_seconds=config.osrm_backoff_seconds,
        )
        geocoders.append(location_client)
        routers.append(location_client)
    else:
        logger.warning("Location service API key not configured; primary provider tier disabled")

    if config.nominatim_enabled:
        geocoders.append(
            NominatimGeocoder(
                base_url=config.nominatim_base_url,
                user_agent=config.nominatim_user_agent,
                timeout=config.nominatim_timeout_seconds,
            )
        )

    if config.osrm_base_url:
        routers.append(
            OSRMClient(
                base_url=config.osrm_base_url,
                profile=config.osrm_profile,
                timeout=config.osrm_timeout_seconds,
                max_retries=config.osrm_max_retries,
                backoff_seconds=config.osrm_backoff_seconds,
                user_agent=config.nominatim_user_agent,
            )
        )

    return GeoResolver(
        geocoders=geocoders,
        routers=routers,
        synthetic_router=SyntheticRouter(average_speed_kmh=config.synthetic_average_speed_kmh),
    )
