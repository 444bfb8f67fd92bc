"""Client for the storm-response backend REST API, including export downloads."""

import logging
from typing import Any, Dict, List, Optional

import requests

from stormtracker.core.config import get_settings
from stormtracker.core.errors import ExportFailure, ServiceError, ValidationError
from stormtracker.etl import transform
from stormtracker.models import (
    AnalysisPoint,
    Calculation,
    Contractor,
    Coordinate,
    CrewAvailability,
    ExportPayload,
    FilterCriteria,
    Resource,
)

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

EXPORT_FORMATS = ("csv", "excel", "json", "webeoc")
_CONTENT_TYPES = {
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "json": "application/json",
    "webeoc": "text/csv",
    "zip": "application/zip",
}


def _url(path: str) -> str:
    return f"{get_settings().storm_api_url}/{path.lstrip('/')}"


def _request(method: str, path: str, **kwargs: Any) -> requests.Response:
    try:
        response = _SESSION.request(method, _url(path), timeout=get_settings().request_timeout, **kwargs)
    except requests.RequestException as exc:
        logger.error("%s %s failed: %s", method, path, exc)
        raise ServiceError("storm API", str(exc)) from exc
    if response.status_code >= 400:
        logger.error("%s %s returned status=%s", method, path, response.status_code)
        raise ServiceError("storm API", f"{method} {path} returned HTTP {response.status_code}", response.status_code)
    return response


def _json(response: requests.Response, path: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        logger.error("%s returned a non-JSON body", path)
        raise ServiceError("storm API", f"{path} response was not JSON") from exc


def _get_json(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
    return _json(_request("GET", path, params=params), path)


# ── Analysis points ─────────────────────────────────────────────


def list_analysis_points() -> List[AnalysisPoint]:
    return [transform.to_analysis_point(item) for item in _get_json("analysis-points")]


def create_analysis_point(label: str, coordinate: Coordinate) -> AnalysisPoint:
    payload = {"label": label, "latitude": coordinate.latitude, "longitude": coordinate.longitude}
    response = _request("POST", "analysis-points", json=payload)
    point = transform.to_analysis_point(_json(response, "analysis-points"))
    logger.info("Created analysis point %s (%s)", point.id, point.label)
    return point


def delete_analysis_point(point_id: int) -> None:
    _request("DELETE", f"analysis-points/{point_id}")
    logger.info("Deleted analysis point %s", point_id)


def calculate_distances(point_id: int, max_distance: Optional[float] = None) -> int:
    """Ask the backend to (re)compute calculations for a point; returns the count."""
    body = {"maxDistance": max_distance} if max_distance is not None else {}
    path = f"calculate-distances/{point_id}"
    data = _json(_request("POST", path, json=body), path)
    return int(data.get("count", 0))


# ── Resources & calculations ────────────────────────────────────


def list_resources() -> List[Resource]:
    return [transform.to_resource(item) for item in _get_json("resources")]


def list_contractors() -> List[Contractor]:
    return [transform.to_contractor(item) for item in _get_json("contractors")]


def get_calculations(point_id: int) -> List[Calculation]:
    items = _get_json(f"analysis-points/{point_id}/calculations")
    return [transform.to_calculation(item, analysis_point_id=point_id) for item in items or []]


def list_crew_availability(session_id: Optional[int] = None) -> List[CrewAvailability]:
    params = {"sessionId": session_id} if session_id is not None else None
    return [transform.to_crew_availability(item) for item in _get_json("crew-availability", params=params)]


# ── Exports ─────────────────────────────────────────────────────


def build_export_params(fmt: str, criteria: FilterCriteria, group_by_bird_rep: bool = False) -> Dict[str, str]:
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"export format must be one of {EXPORT_FORMATS}, got {fmt!r}")
    params = {"format": fmt}
    if group_by_bird_rep:
        params["groupByBirdRep"] = "true"
    if criteria.max_distance_miles is not None:
        params["maxDistance"] = f"{criteria.max_distance_miles:g}"
    # The endpoint takes a drive-time limit in minutes.
    if criteria.max_drive_minutes is not None:
        params["maxTime"] = f"{criteria.max_drive_minutes:g}"
    elif criteria.max_hours is not None:
        params["maxTime"] = f"{criteria.max_hours * 60:g}"
    return params


def export_filename(point_id: int, fmt: str, group_by_bird_rep: bool = False) -> str:
    if fmt == "webeoc":
        return f"webeoc-contacts-{point_id}.csv"
    if fmt == "csv" and group_by_bird_rep:
        return f"analysis-results-by-bird-rep-{point_id}.zip"
    extension = {"excel": "xlsx"}.get(fmt, fmt)
    return f"analysis-results-{point_id}.{extension}"


def request_export(
    point_id: int, fmt: str, criteria: FilterCriteria, group_by_bird_rep: bool = False
) -> ExportPayload:
    """Fetch the server-rendered export for *point_id* with the active filters."""
    params = build_export_params(fmt, criteria, group_by_bird_rep)
    path = f"analysis-points/{point_id}/calculations/export"
    logger.info("Requesting export point=%s params=%s", point_id, params)
    try:
        response = _SESSION.get(_url(path), params=params, timeout=get_settings().request_timeout)
    except requests.RequestException as exc:
        logger.error("Export request failed for point %s: %s", point_id, exc)
        raise ExportFailure(point_id, fmt) from exc
    if not 200 <= response.status_code < 300:
        logger.error("Export returned status=%s body=%s", response.status_code, response.text[:300])
        raise ExportFailure(point_id, fmt, response.status_code)

    filename = export_filename(point_id, fmt, group_by_bird_rep)
    kind = "zip" if filename.endswith(".zip") else fmt
    content_type = response.headers.get("Content-Type") or _CONTENT_TYPES[kind]
    return ExportPayload(filename=filename, content=response.content, content_type=content_type)
