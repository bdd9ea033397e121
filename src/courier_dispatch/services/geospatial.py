"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ..models.domain import AnchorMatch, Coordinate, Route

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute distance between two ``[lng, lat]`` coordinates using the Haversine formula."""

    lon1, lat1 = a[0], a[1]
    lon2, lat2 = b[0], b[1]
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def path_length_km(points: Iterable[Coordinate]) -> float:
    """Cumulative haversine length of a polyline."""

    total = 0.0
    previous: Coordinate | None = None
    for point in points:
        if previous is not None:
            total += haversine_km(previous, point)
        previous = point
    return total


def distance_to_route(point: Coordinate, route: Route) -> AnchorMatch:
    """Return the closest anchor (start, end or a stop) of ``route`` to ``point``.

    Anchors without coordinates are ignored. When no anchor has coordinates the
    distance is infinite and the anchor kind is ``none``.
    """

    best: AnchorMatch | None = None

    candidates: list[AnchorMatch] = []
    if route.start_location.coordinates is not None:
        candidates.append(
            AnchorMatch(
                distance_km=haversine_km(point, route.start_location.coordinates),
                kind="start",
                description=f"Start: {route.start_location.address}",
            )
        )
    if route.end_location.coordinates is not None:
        candidates.append(
            AnchorMatch(
                distance_km=haversine_km(point, route.end_location.coordinates),
                kind="end",
                description=f"End: {route.end_location.address}",
            )
        )
    for index, stop in enumerate(route.stops):
        if stop.coordinates is None:
            continue
        candidates.append(
            AnchorMatch(
                distance_km=haversine_km(point, stop.coordinates),
                kind="stop",
                index=index,
                description=f"Stop {index + 1}: {stop.name or stop.address}",
            )
        )

    for candidate in candidates:
        if best is None or candidate.distance_km < best.distance_km:
            best = candidate

    if best is None:
        return AnchorMatch(distance_km=math.inf, kind="none")
    return best
