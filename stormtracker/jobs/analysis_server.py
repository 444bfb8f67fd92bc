"""HTTP entrypoint exposing the distance analysis pipeline."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List

from flask import Flask, Response, jsonify, request

from stormtracker.core.config import get_settings
from stormtracker.core.distance import distance_to_hours, haversine_miles
from stormtracker.core.errors import ExportFailure, NotFound, ServiceError, ValidationError
from stormtracker.etl import availability, pipeline
from stormtracker.etl.summary import DEFAULT_THRESHOLD_MILES, summarize
from stormtracker.etl.transform import (
    attach_contractors,
    to_calculation,
    to_crew_availability,
    to_filter_criteria,
)
from stormtracker.models import Calculation, Coordinate, SortSpec
from stormtracker.vendors import nominatim, storm_api

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)


@app.errorhandler(ValidationError)
def _validation_error(exc: ValidationError) -> Any:
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(NotFound)
def _not_found(exc: NotFound) -> Any:
    return jsonify({"error": str(exc)}), 404


@app.errorhandler(ServiceError)
def _service_error(exc: ServiceError) -> Any:
    logger.error("Upstream failure: %s", exc)
    return jsonify({"error": str(exc)}), 502


@app.errorhandler(ExportFailure)
def _export_failure(exc: ExportFailure) -> Any:
    logger.error("Export failed: %s", exc)
    return jsonify({"error": "export failed"}), 502


# ---------- Helpers ----------


def _coordinate(payload: Dict[str, Any], key: str) -> Coordinate:
    raw = payload.get(key)
    if not isinstance(raw, dict):
        raise ValidationError(f"{key} must be an object with latitude and longitude")
    try:
        return Coordinate(float(raw["latitude"]), float(raw["longitude"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"{key} needs numeric latitude and longitude") from exc


def _sort_spec(params: Dict[str, Any]) -> SortSpec:
    spec = SortSpec(str(params.get("sortBy") or "distance"), str(params.get("order") or "asc"))
    pipeline.sort_field(spec.field)
    return spec


def _threshold(params: Dict[str, Any]) -> float:
    raw = params.get("threshold")
    if raw in (None, ""):
        return DEFAULT_THRESHOLD_MILES
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError("threshold must be numeric") from exc


def _convert_records(raw: Any, convert: Callable[[Dict[str, Any]], Any]) -> List[Any]:
    if not isinstance(raw, list):
        raise ValidationError("records must be a list")
    converted = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"record {index} must be an object")
        try:
            converted.append(convert(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"invalid record {index}: {exc!r}") from exc
    return converted


def _result_row(calc: Calculation) -> Dict[str, Any]:
    contractor = calc.contractor
    return {
        "resourceId": calc.resource.id,
        "resourceName": calc.resource.name,
        "contractorId": contractor.id if contractor else None,
        "company": contractor.company if contractor else None,
        "name": contractor.name if contractor else None,
        "category": contractor.category if contractor else calc.resource.type,
        "distance": round(calc.distance, 1),
        "duration": calc.duration,
        "hours": round(distance_to_hours(calc.distance), 2),
    }


def _analysis_response(records, params: Dict[str, Any]) -> Any:
    criteria = to_filter_criteria(params)
    rows = pipeline.process(records, criteria, _sort_spec(params))
    summary = summarize(rows)
    return jsonify(
        {
            "data": {
                "results": [_result_row(calc) for calc in rows],
                "total": len(records),
                "summary": summary.to_dict(_threshold(params)),
            }
        }
    )


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "storm_api_url": settings.storm_api_url,
                "routing": "mapbox" if settings.mapbox_access_token else "straight_line",
            }
        ),
        200,
    )


@app.post("/geocode")
def geocode() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    coordinate = nominatim.geocode(str(payload.get("query") or ""))
    return jsonify({"data": {"latitude": coordinate.latitude, "longitude": coordinate.longitude}}), 200


@app.post("/distance")
def distance() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    miles = haversine_miles(_coordinate(payload, "from"), _coordinate(payload, "to"))
    return jsonify({"data": {"miles": round(miles, 2), "hours": round(distance_to_hours(miles), 2)}}), 200


@app.post("/analyze")
def analyze() -> Any:
    """
    Filter, sort and summarise calculations supplied in the body.
    Required JSON field: records (list of {distance, duration, resource, contractor?})
    Optional: maxDistance, maxHours, maxTime, sortBy, order, threshold
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    records = _convert_records(payload.get("records"), to_calculation)
    return _analysis_response(records, payload), 200


@app.get("/analysis-points/<int:point_id>/results")
def point_results(point_id: int) -> Any:
    params = request.args.to_dict()
    records = attach_contractors(storm_api.get_calculations(point_id), storm_api.list_contractors())
    return _analysis_response(records, params), 200


@app.get("/analysis-points/<int:point_id>/export")
def point_export(point_id: int) -> Any:
    params = request.args.to_dict()
    fmt = params.get("format") or "csv"
    group = str(params.get("groupByBirdRep", "")).lower() in {"1", "true", "yes"}
    export = storm_api.request_export(point_id, fmt, to_filter_criteria(params), group)
    return Response(
        export.content,
        mimetype=export.content_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@app.post("/availability/distances")
def availability_distances() -> Any:
    """
    Distance matrix for approved crews.
    Required JSON field: destinations (list of addresses)
    Optional: records (availability JSON; fetched from the backend when absent), sessionId, sortBy, order
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    raw_destinations = payload.get("destinations")
    if not isinstance(raw_destinations, list):
        raise ValidationError("destinations must be a list of addresses")
    labels = [str(d).strip() for d in raw_destinations if str(d).strip()]
    if not labels:
        return jsonify({"error": "destinations are required"}), 400

    if payload.get("records") is not None:
        crews = _convert_records(payload["records"], to_crew_availability)
    else:
        crews = storm_api.list_crew_availability(payload.get("sessionId"))
    crews = availability.approved(crews)
    if not crews:
        return jsonify({"error": "no approved crews to analyse"}), 400

    located = [(label, nominatim.geocode(label)) for label in labels]
    results = availability.distance_matrix(crews, located, geocoder=nominatim.geocode)
    spec = SortSpec(str(payload.get("sortBy") or "distance"), str(payload.get("order") or "asc"))
    results = availability.sort_results(results, spec)
    return (
        jsonify(
            {
                "data": {
                    "destinations": labels,
                    "results": [availability.to_row(result) for result in results],
                    "totals": availability.totals(results),
                }
            }
        ),
        200,
    )


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().service_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
