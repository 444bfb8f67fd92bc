import pytest
import requests

from stormtracker.core.errors import ExportFailure, ServiceError, ValidationError
from stormtracker.models import Coordinate, FilterCriteria
from stormtracker.vendors import storm_api


class DummyResponse:
    def __init__(self, status_code=200, payload=None, content=b"", headers=None):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.headers = headers or {}
        self.text = content.decode("utf-8", "ignore")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []
        self.responses = {}
        self.error = None

    def _respond(self, method, url):
        if self.error:
            raise self.error
        return self.responses.get((method, url), DummyResponse(payload=[]))

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, timeout, kwargs))
        return self._respond(method, url)

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, timeout, {"params": params}))
        return self._respond("GET", url)


API = "http://localhost:5000/api"


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(storm_api, "_SESSION", session)
    return session


def test_list_analysis_points(patch_session):
    patch_session.responses[("GET", f"{API}/analysis-points")] = DummyResponse(
        payload=[{"id": 3, "label": "Macon, GA (A)", "latitude": "32.84", "longitude": "-83.63"}]
    )
    points = storm_api.list_analysis_points()
    assert points[0].id == 3
    assert points[0].latitude == 32.84
    assert patch_session.calls[0][2] == 10.0


def test_create_analysis_point_posts_label_and_coordinates(patch_session):
    patch_session.responses[("POST", f"{API}/analysis-points")] = DummyResponse(
        payload={"id": 9, "label": "Tifton (B)", "latitude": 31.45, "longitude": -83.51}
    )
    point = storm_api.create_analysis_point("Tifton (B)", Coordinate(31.45, -83.51))
    assert point.id == 9
    method, url, _, kwargs = patch_session.calls[0]
    assert (method, url) == ("POST", f"{API}/analysis-points")
    assert kwargs["json"] == {"label": "Tifton (B)", "latitude": 31.45, "longitude": -83.51}


def test_calculate_distances_returns_count(patch_session):
    patch_session.responses[("POST", f"{API}/calculate-distances/4")] = DummyResponse(payload={"count": 12})
    assert storm_api.calculate_distances(4, max_distance=50) == 12
    assert patch_session.calls[0][3]["json"] == {"maxDistance": 50}


def test_get_calculations_tags_point_id(patch_session):
    patch_session.responses[("GET", f"{API}/analysis-points/4/calculations")] = DummyResponse(
        payload=[{"resourceId": 8, "distance": 12.5, "duration": 900}]
    )
    calcs = storm_api.get_calculations(4)
    assert calcs[0].analysis_point_id == 4
    assert calcs[0].resource.id == 8


def test_list_crew_availability_passes_session(patch_session):
    storm_api.list_crew_availability(session_id=7)
    assert patch_session.calls[0][3]["params"] == {"sessionId": 7}


def test_error_status_raises_service_error(patch_session):
    patch_session.responses[("DELETE", f"{API}/analysis-points/2")] = DummyResponse(status_code=500)
    with pytest.raises(ServiceError) as exc_info:
        storm_api.delete_analysis_point(2)
    assert exc_info.value.status_code == 500


def test_non_json_body_raises_service_error(patch_session):
    patch_session.responses[("GET", f"{API}/analysis-points/1/calculations")] = DummyResponse(
        payload=ValueError("Expecting value"), content=b"<html>"
    )
    with pytest.raises(ServiceError):
        storm_api.get_calculations(1)


def test_network_error_raises_service_error(patch_session):
    patch_session.error = requests.ConnectionError("refused")
    with pytest.raises(ServiceError):
        storm_api.list_resources()


class TestExports:
    def test_params_carry_active_filters(self):
        params = storm_api.build_export_params("csv", FilterCriteria(25, 0.5), group_by_bird_rep=True)
        assert params == {"format": "csv", "groupByBirdRep": "true", "maxDistance": "25", "maxTime": "30"}

    def test_drive_minutes_take_precedence(self):
        params = storm_api.build_export_params("json", FilterCriteria(max_hours=2, max_drive_minutes=45))
        assert params["maxTime"] == "45"
        assert "maxDistance" not in params

    def test_unknown_format(self):
        with pytest.raises(ValidationError):
            storm_api.build_export_params("pdf", FilterCriteria())

    @pytest.mark.parametrize(
        "fmt,group,expected",
        [
            ("csv", False, "analysis-results-7.csv"),
            ("csv", True, "analysis-results-by-bird-rep-7.zip"),
            ("excel", False, "analysis-results-7.xlsx"),
            ("json", False, "analysis-results-7.json"),
            ("webeoc", False, "webeoc-contacts-7.csv"),
        ],
    )
    def test_filenames(self, fmt, group, expected):
        assert storm_api.export_filename(7, fmt, group) == expected

    def test_request_export_returns_payload(self, patch_session):
        url = f"{API}/analysis-points/7/calculations/export"
        patch_session.responses[("GET", url)] = DummyResponse(content=b"PK\x03\x04")
        payload = storm_api.request_export(7, "csv", FilterCriteria(), group_by_bird_rep=True)
        assert payload.filename == "analysis-results-by-bird-rep-7.zip"
        assert payload.content_type == "application/zip"
        assert payload.content == b"PK\x03\x04"
        assert patch_session.calls[0][3]["params"] == {"format": "csv", "groupByBirdRep": "true"}

    def test_request_export_failure(self, patch_session):
        url = f"{API}/analysis-points/7/calculations/export"
        patch_session.responses[("GET", url)] = DummyResponse(status_code=500, content=b"boom")
        with pytest.raises(ExportFailure) as exc_info:
            storm_api.request_export(7, "excel", FilterCriteria())
        assert exc_info.value.status_code == 500
