import pytest

from stormtracker.core.errors import NotFound, ValidationError
from stormtracker.etl import availability
from stormtracker.models import Contractor, Coordinate, CrewAvailability, RouteEstimate, SortSpec

MACON = Coordinate(32.8407, -83.6324)
SAVANNAH = Coordinate(32.0809, -81.0912)


@pytest.fixture
def routes(monkeypatch):
    """Pretend every crew is 110 mi from the first destination and 55 mi from the second."""
    calls = []

    def fake_route_many(origin, destinations):
        calls.append(origin)
        return [RouteEstimate(110.0 / (i + 1), 0, "mapbox") for i, _ in enumerate(destinations)]

    monkeypatch.setattr(availability.mapbox, "route_many", fake_route_many)
    return calls


def _crew(crew_id, status="approved", company=None, **kwargs):
    contractor = Contractor(crew_id, company=company, name=f"Contact {crew_id}") if company else None
    return CrewAvailability(id=crew_id, status=status, contractor=contractor, **kwargs)


def test_approved_only():
    crews = [_crew(1), _crew(2, status="submitted"), _crew(3, status="rejected")]
    assert [c.id for c in availability.approved(crews)] == [1]


def test_distance_matrix_uses_stored_departure(routes):
    crew = _crew(1, departure_latitude=33.0, departure_longitude=-84.0)
    results = availability.distance_matrix([crew], [("Macon", MACON), ("Savannah", SAVANNAH)])

    assert routes == [Coordinate(33.0, -84.0)]
    result = results[0]
    assert [d.destination for d in result.destinations] == ["Macon", "Savannah"]
    assert result.nearest.destination == "Savannah"
    assert result.distance == 55.0
    assert result.travel_time_hours == pytest.approx(1.0)


def test_distance_matrix_geocodes_and_skips_unknown(routes, caplog):
    lookups = []

    def geocoder(label):
        lookups.append(label)
        if label == "Atlantis":
            raise NotFound(label)
        return Coordinate(31.0, -83.0)

    crews = [
        _crew(1, departure_city="Tifton", departure_state="GA"),
        _crew(2, departure_location="Atlantis"),
        _crew(3),
    ]
    results = availability.distance_matrix(crews, [("Macon", MACON)], geocoder=geocoder)

    assert lookups == ["Tifton, GA", "Atlantis"]
    assert [r.availability.id for r in results] == [1]
    assert "Could not locate departure" in caplog.text


def test_distance_matrix_requires_destinations():
    with pytest.raises(ValidationError):
        availability.distance_matrix([_crew(1)], [])


def test_sort_and_totals(routes):
    crews = [
        _crew(1, company="bravo", departure_latitude=33.0, departure_longitude=-84.0, total_fte=10, buckets=2),
        _crew(2, company="Alpha", departure_latitude=34.0, departure_longitude=-84.0, linemen_count=3, diggers=1),
    ]
    results = availability.distance_matrix(crews, [("Macon", MACON)])

    by_name = availability.sort_results(results, SortSpec("contractor"))
    assert [r.availability.id for r in by_name] == [2, 1]
    by_fte = availability.sort_results(results, SortSpec("totalFTE", "desc"))
    assert [r.availability.id for r in by_fte] == [1, 2]

    assert availability.totals(results) == {
        "totalFTE": 13,
        "buckets": 2,
        "diggers": 1,
        "pickups": 0,
        "backyardMachines": 0,
    }


def test_sort_unknown_field():
    with pytest.raises(ValidationError):
        availability.sort_results([], SortSpec("colour"))


def test_to_row_flattens_destinations(routes):
    crew = _crew(7, company="Acme", departure_city="Macon", departure_latitude=33.0, departure_longitude=-84.0)
    result = availability.distance_matrix([crew], [("A", MACON), ("B", SAVANNAH)])[0]
    row = availability.to_row(result)

    assert row["availabilityId"] == 7
    assert row["contractor"] == "Acme"
    assert row["contact"] == "Contact 7"
    assert row["departure"] == "Macon"
    assert row["nearestDestination"] == "B"
    assert row["distance_0"] == 110.0
    assert row["travelTimeHours_1"] == 1.0


def test_distance_matrix_skips_out_of_range_stored_departure(routes, caplog):
    crews = [
        _crew(1, departure_latitude=120.0, departure_longitude=-84.0),
        _crew(2, departure_latitude=33.0, departure_longitude=-84.0),
    ]
    results = availability.distance_matrix(crews, [("Macon", MACON)])
    assert [r.availability.id for r in results] == [2]
    assert "Could not locate departure" in caplog.text
