"""Provider contracts for the geocoding and routing chain."""

from __future__ import annotations

from typing import Protocol, Sequence

from ...models.domain import Coordinate, RouteGeometry


class GeocodingProvider(Protocol):
    """Resolves a free-form address to a ``(lng, lat)`` coordinate.

    Implementations raise ``ProviderUnavailableError`` when they cannot answer.
    """

    name: str

    def geocode(self, address: str) -> Coordinate:
        ...


class RoutingProvider(Protocol):
    """Computes a road path from ``start`` to ``end`` through ``waypoints`` in order."""

    name: str

    def route(self, start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate]) -> RouteGeometry:
        ...
