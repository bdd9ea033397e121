"""Route matching and stop de-duplication."""

from .matcher import RouteMatcher, parse_delivery_area, route_name_for_delivery
from .stops import has_stop, is_same_stop

__all__ = ["RouteMatcher", "has_stop", "is_same_stop", "parse_delivery_area", "route_name_for_delivery"]
