import pytest

from courier_dispatch.exceptions import RouteMatchingError
from courier_dispatch.models.domain import RouteStatus, Stop
from courier_dispatch.services.geo import GeoResolver
from courier_dispatch.services.matching import RouteMatcher, parse_delivery_area, route_name_for_delivery

from conftest import BOSTON_BEACON, BOSTON_HARVARD, PHILADELPHIA, WAREHOUSE, DictGeocoder, make_route

PICKUP = "160 W Forest Ave, Englewood"
HARVARD = "123 Harvard St, Boston, MA"
BEACON = "45 Beacon St, Boston, MA"


@pytest.mark.parametrize(
    "address, expected",
    [
        ("123 Harvard St, Boston, MA", ("Boston", "MA", None)),
        ("123 Harvard St, Boston, MA 02134", ("Boston", "MA", "02134")),
        ("Boston", ("Unknown City", "Boston", None)),
        ("Boston MA", ("Unknown City", "Boston", None)),
        ("", ("Unknown City", "Unknown State", None)),
    ],
)
def test_parse_delivery_area(address, expected) -> None:
    assert parse_delivery_area(address) == expected


def test_route_name_for_delivery() -> None:
    assert route_name_for_delivery(HARVARD) == "Route to Boston, MA"
    assert route_name_for_delivery("Boston MA") == "Route to Unknown City, Boston"


def test_new_route_created_when_no_routes_exist(matcher, route_store) -> None:
    result = matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)

    assert result.created is True
    assert result.stop_added is True
    assert result.match_score == 100.0
    assert result.route.name == "Route to Boston, MA"
    assert len(result.route.stops) == 1
    assert result.route.geometry
    assert result.route.start_location.coordinates == WAREHOUSE
    assert result.route.end_location.coordinates == BOSTON_HARVARD
    assert result.route.active_days == ["Mon", "Tue", "Wed", "Thu", "Fri"]
    assert result.route.eta == "Auto-Generated"
    assert result.route.status == RouteStatus.ACTIVE
    assert route_store.get(result.route.id) is not None


def test_nearby_delivery_reuses_route_and_adds_stop(matcher, route_store, router) -> None:
    first = matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)

    second = matcher.find_or_create_route_for_delivery(PICKUP, BEACON, "Beacon Clinic", BEACON)

    assert second.created is False
    assert second.stop_added is True
    assert second.route.id == first.route.id
    assert [stop.name for stop in route_store.get(first.route.id).stops] == ["Mercy General", "Beacon Clinic"]
    # Geometry is recomputed through start, both stops, then end.
    assert router.calls[-1] == [WAREHOUSE, BOSTON_HARVARD, BOSTON_BEACON, BOSTON_HARVARD]


def test_same_stop_identity_is_not_added_twice(matcher, route_store) -> None:
    first = matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)
    matcher.find_or_create_route_for_delivery(PICKUP, BEACON, "Beacon Clinic", BEACON)

    third = matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)

    assert third.stop_added is False
    assert third.created is False
    stops = route_store.get(first.route.id).stops
    assert len(stops) == 2
    assert sum(1 for stop in stops if stop.name == "Mercy General") == 1


def test_far_delivery_creates_second_route(matcher, route_store) -> None:
    matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)

    result = matcher.find_or_create_route_for_delivery(
        PICKUP, "1 Market St, Philadelphia, PA", "Penn Clinic", "1 Market St, Philadelphia, PA"
    )

    assert result.created is True
    assert result.route.name == "Route to Philadelphia, PA"
    assert len(route_store.list_active()) == 2


def test_find_or_create_picks_closest_route(route_store, resolver, config) -> None:
    far = route_store.create(make_route(name="Far", end=(-71.30, 42.35)))
    near = route_store.create(make_route(name="Near", end=BOSTON_BEACON))
    matcher = RouteMatcher(resolver, route_store, config)

    result = matcher.find_or_create_route_for_delivery(PICKUP, BEACON, "Beacon Clinic", BEACON)

    assert result.route.id == near.id
    assert route_store.get(far.id).stops == []


def test_inactive_routes_are_ignored(route_store, resolver, config) -> None:
    inactive = make_route(name="Old")
    inactive.status = RouteStatus.ARCHIVED
    route_store.create(inactive)
    matcher = RouteMatcher(resolver, route_store, config)

    result = matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)

    assert result.created is True


def test_geocoding_failure_raises_route_matching_error(route_store, config) -> None:
    class FailingSynthetic:
        name = "synthetic"

        def geocode(self, address):
            raise RuntimeError("offline")

    resolver = GeoResolver(geocoders=[DictGeocoder({})], synthetic_geocoder=FailingSynthetic())
    matcher = RouteMatcher(resolver, route_store, config)

    with pytest.raises(RouteMatchingError):
        matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", HARVARD)
    assert route_store.list_all() == []


def test_best_match_respects_max_distance(route_store, resolver, config) -> None:
    route_store.create(make_route(name="Boston", route_id="r-boston"))
    route_store.create(make_route(name="Philly", end=PHILADELPHIA, route_id="r-philly"))
    matcher = RouteMatcher(resolver, route_store, config)

    match = matcher.find_best_matching_route(PICKUP, BEACON, max_distance_km=50)

    assert match.route is not None
    assert match.route.id == "r-boston"
    assert match.details["pickup_match"].distance_km <= 50
    assert match.details["delivery_match"].distance_km <= 50
    total = match.details["pickup_match"].distance_km + match.details["delivery_match"].distance_km
    assert match.match_score == pytest.approx(max(0.0, 100.0 - total))


def test_best_match_empty_when_nothing_within_range(route_store, resolver, config) -> None:
    route_store.create(make_route(name="Philly", start=PHILADELPHIA, end=PHILADELPHIA))
    matcher = RouteMatcher(resolver, route_store, config)

    match = matcher.find_best_matching_route(PICKUP, BEACON, max_distance_km=50)

    assert match.route is None
    assert match.match_score == 0.0


def test_best_match_swallows_store_errors(resolver, config) -> None:
    class BrokenStore:
        def list_active(self):
            raise ConnectionError("database down")

    match = RouteMatcher(resolver, BrokenStore(), config).find_best_matching_route(PICKUP, BEACON)

    assert match.route is None


def test_route_suggestions_sorted_and_filtered(route_store, resolver, config) -> None:
    route_store.create(make_route(name="Far", end=(-71.30, 42.35)))
    route_store.create(make_route(name="Near", end=BOSTON_BEACON))
    route_store.create(make_route(name="Philly", start=PHILADELPHIA, end=PHILADELPHIA))
    matcher = RouteMatcher(resolver, route_store, config)

    suggestions = matcher.get_route_suggestions(BEACON, max_distance_km=30)

    assert [suggestion.route.name for suggestion in suggestions] == ["Near", "Far"]
    assert all(suggestion.suitable for suggestion in suggestions)
    assert suggestions[0].distance_km <= suggestions[1].distance_km


def test_geocode_round_trip_against_stop_is_zero(resolver, route_store, config) -> None:
    coordinates = resolver.geocode(BEACON)
    route_store.create(
        make_route(start=PHILADELPHIA, end=PHILADELPHIA, stops=[Stop(name="Beacon", coordinates=coordinates)])
    )
    matcher = RouteMatcher(resolver, route_store, config)

    suggestions = matcher.get_route_suggestions(BEACON, max_distance_km=1)

    assert len(suggestions) == 1
    assert suggestions[0].distance_km == pytest.approx(0.0, abs=1e-9)
    assert suggestions[0].anchor.kind == "stop"


def test_blank_stop_address_still_creates_route(matcher) -> None:
    result = matcher.find_or_create_route_for_delivery(PICKUP, HARVARD, "Mercy General", "   ")

    assert result.created is True
    assert result.route.stops[0].coordinates is not None
