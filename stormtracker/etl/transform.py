"""Utilities for turning backend JSON and request parameters into models."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from stormtracker.core.errors import ValidationError
from stormtracker.models import (
    AnalysisPoint,
    Calculation,
    Contractor,
    CrewAvailability,
    FilterCriteria,
    Resource,
)

logger = logging.getLogger(__name__)

# Backend camelCase key -> Contractor attribute
_CONTRACTOR_FIELDS = {
    "name": "name",
    "company": "company",
    "category": "category",
    "email": "email",
    "phone": "phone",
    "city": "city",
    "state": "state",
    "fullAddress": "full_address",
    "birdRep": "bird_rep",
    "pipefile": "pipefile",
    "avetta": "avetta",
    "subRanking": "sub_ranking",
    "fteCountsPerLocation": "fte_counts_per_location",
    "pipefileUpdates": "pipefile_updates",
    "notes": "notes",
    "newMsaComplete": "new_msa_complete",
}

_AVAILABILITY_COUNTS = {
    "totalFTE": "total_fte",
    "buckets": "buckets",
    "diggers": "diggers",
    "pickups": "pickups",
    "backyardMachines": "backyard_machines",
    "linemenCount": "linemen_count",
    "groundmenCount": "groundmen_count",
    "operatorsCount": "operators_count",
    "foremanCount": "foreman_count",
    "apprenticesCount": "apprentices_count",
}


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or value == "":
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    number = _safe_float(value)
    return int(number) if number is not None else None


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def to_analysis_point(data: Dict[str, Any]) -> AnalysisPoint:
    return AnalysisPoint(
        id=int(data["id"]),
        label=str(data.get("label") or ""),
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
    )


def to_resource(data: Dict[str, Any]) -> Resource:
    return Resource(
        id=int(data.get("id") or 0),
        name=str(data.get("name") or ""),
        type=data.get("type") or "Unknown",
        latitude=_safe_float(data.get("latitude")),
        longitude=_safe_float(data.get("longitude")),
        description=_strip_or_none(data.get("description")),
        properties=dict(data.get("properties") or {}),
    )


def to_contractor(data: Dict[str, Any]) -> Contractor:
    text_fields = {attr: _strip_or_none(data.get(key)) for key, attr in _CONTRACTOR_FIELDS.items()}
    return Contractor(
        id=int(data["id"]),
        latitude=_safe_float(data.get("latitude")),
        longitude=_safe_float(data.get("longitude")),
        rating=_safe_float(data.get("rating")),
        isn_complete=bool(data.get("isnComplete")),
        needs_review=bool(data.get("needsReview")),
        **text_fields,
    )


def to_calculation(data: Dict[str, Any], analysis_point_id: Optional[int] = None) -> Calculation:
    resource_data = data.get("resource") or {"id": data.get("resourceId"), "name": ""}
    contractor_data = data.get("contractor")
    return Calculation(
        resource=to_resource(resource_data),
        distance=_safe_float(data.get("distance")) or 0.0,
        duration=_safe_int(data.get("duration")) or 0,
        analysis_point_id=_safe_int(data.get("analysisPointId")) or analysis_point_id,
        contractor=to_contractor(contractor_data) if contractor_data and contractor_data.get("id") else None,
    )


def to_crew_availability(data: Dict[str, Any]) -> CrewAvailability:
    contractor_data = data.get("contractor")
    counts = {attr: _safe_int(data.get(key)) for key, attr in _AVAILABILITY_COUNTS.items()}
    return CrewAvailability(
        id=int(data["id"]),
        contractor=to_contractor(contractor_data) if contractor_data and contractor_data.get("id") else None,
        status=str(data.get("status") or "submitted"),
        departure_city=_strip_or_none(data.get("departureCity")),
        departure_state=_strip_or_none(data.get("departureState")),
        departure_location=_strip_or_none(data.get("departureLocation")),
        departure_latitude=_safe_float(data.get("departureLatitude")),
        departure_longitude=_safe_float(data.get("departureLongitude")),
        **counts,
    )


def attach_contractors(calculations: Iterable[Calculation], contractors: Iterable[Contractor]) -> List[Calculation]:
    """Join each calculation to the contractor its resource points at, when one exists."""
    by_id = {contractor.id: contractor for contractor in contractors}
    joined = []
    for calc in calculations:
        contractor_id = calc.resource.contractor_id
        if calc.contractor is None and contractor_id is not None:
            calc.contractor = by_id.get(contractor_id)
            if calc.contractor is None:
                logger.debug("No contractor %s for resource %s", contractor_id, calc.resource.id)
        joined.append(calc)
    return joined


def _param_float(params: Mapping[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        raw = params.get(key)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        try:
            return float(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"{key} must be numeric") from exc
    return None


def to_filter_criteria(params: Mapping[str, Any]) -> FilterCriteria:
    """Build criteria from query-string or JSON keys; blank values mean unset."""
    return FilterCriteria(
        max_distance_miles=_param_float(params, "maxDistance", "max_distance_miles"),
        max_hours=_param_float(params, "maxHours", "max_hours"),
        max_drive_minutes=_param_float(params, "maxTime", "max_drive_minutes"),
    )
