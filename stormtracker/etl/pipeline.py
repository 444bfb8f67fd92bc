"""Filter and sort calculations for the results table and map."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from stormtracker.core.distance import distance_to_hours
from stormtracker.core.errors import ValidationError
from stormtracker.models import AnalysisPoint, Calculation, Coordinate, FilterCriteria, Resource, SortSpec
from stormtracker.vendors import mapbox

logger = logging.getLogger(__name__)

Orderable = Union[float, str]


@dataclass(frozen=True)
class SortField:
    """How one sortable column reads its value and what a missing value counts as."""

    key: str
    accessor: Callable[[Calculation], object]
    numeric: bool

    def value(self, record: Calculation) -> Orderable:
        raw = self.accessor(record)
        if self.numeric:
            return float(raw) if raw is not None else 0.0
        # Case-insensitive ordering stands in for locale-aware comparison.
        return str(raw).casefold() if raw is not None else ""


def _contractor_attr(name: str) -> Callable[[Calculation], object]:
    def read(record: Calculation) -> object:
        return getattr(record.contractor, name) if record.contractor is not None else None

    return read


_NUMERIC = {
    "distance": lambda r: r.distance,
    "duration": lambda r: r.duration,
    "hours": lambda r: distance_to_hours(r.distance),
    "latitude": _contractor_attr("latitude"),
    "longitude": _contractor_attr("longitude"),
    "rating": _contractor_attr("rating"),
}

_TEXT = {
    "name": _contractor_attr("name"),
    "company": _contractor_attr("company"),
    "category": _contractor_attr("category"),
    "pipefile": _contractor_attr("pipefile"),
    "avetta": _contractor_attr("avetta"),
    "city": _contractor_attr("city"),
    "state": _contractor_attr("state"),
    "fullAddress": _contractor_attr("full_address"),
    "phone": _contractor_attr("phone"),
    "email": _contractor_attr("email"),
    "birdRep": _contractor_attr("bird_rep"),
    "subRanking": _contractor_attr("sub_ranking"),
    "fteCountsPerLocation": _contractor_attr("fte_counts_per_location"),
    "pipefileUpdates": _contractor_attr("pipefile_updates"),
    "notes": _contractor_attr("notes"),
    "newMsaComplete": _contractor_attr("new_msa_complete"),
    "resourceName": lambda r: r.resource.name,
    "resourceType": lambda r: r.resource.type,
}

SORT_FIELDS: Dict[str, SortField] = {
    **{key: SortField(key, accessor, numeric=True) for key, accessor in _NUMERIC.items()},
    **{key: SortField(key, accessor, numeric=False) for key, accessor in _TEXT.items()},
}


def sort_field(key: str) -> SortField:
    try:
        return SORT_FIELDS[key]
    except KeyError:
        raise ValidationError(f"unknown sort field {key!r}") from None


def keep(record: Calculation, criteria: FilterCriteria) -> bool:
    """Both limits apply when both are set; neither short-circuits the other."""
    if criteria.max_distance_miles is not None and record.distance > criteria.max_distance_miles:
        return False
    if criteria.max_hours is not None and distance_to_hours(record.distance) > criteria.max_hours:
        return False
    if criteria.max_drive_minutes is not None and record.duration > criteria.max_drive_minutes * 60:
        return False
    return True


def filter_records(records: Iterable[Calculation], criteria: FilterCriteria) -> List[Calculation]:
    return [record for record in records if keep(record, criteria)]


def sort_records(records: Iterable[Calculation], sort: SortSpec) -> List[Calculation]:
    """Sort on a single key. Ties keep their incoming order."""
    field = sort_field(sort.field)
    return sorted(records, key=field.value, reverse=sort.descending)


def process(
    records: Sequence[Calculation],
    criteria: Optional[FilterCriteria] = None,
    sort: Optional[SortSpec] = None,
) -> List[Calculation]:
    """Filter then sort. Pure; recomputed from scratch on every call."""
    sort = sort or SortSpec()
    sort_field(sort.field)
    filtered = filter_records(records, criteria or FilterCriteria())
    logger.debug("Kept %d of %d calculations", len(filtered), len(records))
    return sort_records(filtered, sort)


def calculate_for_point(point: AnalysisPoint, resources: Sequence[Resource]) -> List[Calculation]:
    """Compute calculations locally (Mapbox when configured, straight line otherwise).

    Resources without coordinates are skipped.
    """
    located = [r for r in resources if r.latitude is not None and r.longitude is not None]
    skipped = len(resources) - len(located)
    if skipped:
        logger.warning("Skipping %d resources without coordinates", skipped)
    origin = point.coordinate
    destinations = [Coordinate(r.latitude, r.longitude) for r in located]
    routes = mapbox.route_many(origin, destinations)
    return [
        Calculation(resource=r, distance=route.distance, duration=route.duration, analysis_point_id=point.id)
        for r, route in zip(located, routes)
    ]

