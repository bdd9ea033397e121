from courier_dispatch.models.domain import Stop
from courier_dispatch.services.matching import has_stop, is_same_stop


def test_exact_name_is_same_stop() -> None:
    assert is_same_stop(Stop(name="Mercy General", coordinates=None), "Mercy General")


def test_name_contained_in_address_is_same_stop() -> None:
    stop = Stop(name="Other", coordinates=None, address="Mercy General, 45 Beacon St, Boston, MA")
    assert is_same_stop(stop, "mercy general")


def test_different_facility_is_not_same_stop() -> None:
    stop = Stop(name="St. Elizabeth", coordinates=None, address="736 Cambridge St, Boston, MA")
    assert not is_same_stop(stop, "Mercy General")


def test_has_stop_scans_all_stops() -> None:
    stops = [
        Stop(name="A", coordinates=None),
        Stop(name="B", coordinates=None, address="B Street Clinic"),
    ]
    assert has_stop(stops, "B Street Clinic")
    assert not has_stop(stops, "C")
    assert not has_stop([], "A")


def test_empty_name_matches_any_stop_with_an_address() -> None:
    assert is_same_stop(Stop(name="Other", coordinates=None, address="736 Cambridge St, Boston, MA"), "")
    assert not is_same_stop(Stop(name="Other", coordinates=None), "")
