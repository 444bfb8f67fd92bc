import pytest

from stormtracker.core.errors import ValidationError
from stormtracker.jobs import run_availability
from stormtracker.models import Contractor, Coordinate, CrewAvailability, RouteEstimate


@pytest.fixture
def backend(monkeypatch):
    crews = [
        CrewAvailability(1, Contractor(1, company="Acme"), "approved", departure_latitude=33.0, departure_longitude=-84.0, total_fte=8),
        CrewAvailability(2, Contractor(2, company="Bolt"), "approved", departure_latitude=31.0, departure_longitude=-83.0, total_fte=4),
        CrewAvailability(3, Contractor(3, company="Pending"), "submitted", departure_latitude=30.0, departure_longitude=-82.0),
    ]
    requested = {}

    def list_crew_availability(session_id=None):
        requested["session_id"] = session_id
        return crews

    def route_many(origin, destinations):
        return [RouteEstimate(origin.latitude * 2, 0) for _ in destinations]

    monkeypatch.setattr(run_availability.storm_api, "list_crew_availability", list_crew_availability)
    monkeypatch.setattr(run_availability.nominatim, "geocode", lambda label: Coordinate(32.0, -83.0))
    monkeypatch.setattr(run_availability.availability.mapbox, "route_many", route_many)
    return requested


def test_rows_for_approved_crews_sorted_by_distance(backend, capsys):
    rows = run_availability.run_availability_job(destinations=["Macon, GA", " "], session_id=4)

    assert backend["session_id"] == 4
    assert [row["availabilityId"] for row in rows] == [2, 1]
    assert rows[0]["distance"] == 62.0
    assert rows[0]["nearestDestination"] == "Macon, GA"
    assert "Bolt" in capsys.readouterr().out


def test_descending_fte(backend):
    rows = run_availability.run_availability_job(destinations=["Macon"], sort_by="totalFTE", descending=True)
    assert [row["totalFTE"] for row in rows] == [8, 4]


def test_no_destinations():
    with pytest.raises(ValidationError):
        run_availability.run_availability_job(destinations=["  "])


def test_no_approved_crews(monkeypatch, caplog):
    monkeypatch.setattr(run_availability.storm_api, "list_crew_availability", lambda session_id=None: [])
    assert run_availability.run_availability_job(destinations=["Macon"]) == []
    assert "No approved crews" in caplog.text
