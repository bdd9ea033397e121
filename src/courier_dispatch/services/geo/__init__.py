"""Geocoding and routing provider chain."""

from .providers import GeocodingProvider, RoutingProvider
from .resolver import GeoResolver, build_geo_resolver

__all__ = ["GeoResolver", "GeocodingProvider", "RoutingProvider", "build_geo_resolver"]
