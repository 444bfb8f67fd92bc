"""Distance matrix from approved crew availability to candidate work locations."""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from stormtracker.core.distance import distance_to_hours
from stormtracker.core.errors import StormTrackerError, ValidationError
from stormtracker.models import (
    AvailabilityDistance,
    Coordinate,
    CrewAvailability,
    DestinationDistance,
    SortSpec,
)
from stormtracker.vendors import mapbox

logger = logging.getLogger(__name__)

Geocoder = Callable[[str], Coordinate]

_SORT_KEYS: Dict[str, Callable[[AvailabilityDistance], object]] = {
    "contractor": lambda r: ((r.availability.contractor.company if r.availability.contractor else None) or "").casefold(),
    "distance": lambda r: r.distance,
    "travelTime": lambda r: r.travel_time_hours,
    "totalFTE": lambda r: r.availability.total_crew,
    "buckets": lambda r: r.availability.buckets or 0,
    "diggers": lambda r: r.availability.diggers or 0,
    "pickups": lambda r: r.availability.pickups or 0,
    "backyardMachines": lambda r: r.availability.backyard_machines or 0,
}
SORT_FIELDS = tuple(_SORT_KEYS)


def approved(records: Iterable[CrewAvailability]) -> List[CrewAvailability]:
    return [record for record in records if record.status == "approved"]


def _departure(record: CrewAvailability, geocoder: Optional[Geocoder]) -> Optional[Coordinate]:
    label = record.departure_label
    try:
        if record.departure_latitude is not None and record.departure_longitude is not None:
            return Coordinate(record.departure_latitude, record.departure_longitude)
        if geocoder is None or not label:
            return None
        return geocoder(label)
    except StormTrackerError as exc:
        logger.warning("Could not locate departure %r for availability %s: %s", label, record.id, exc)
        return None


def distance_matrix(
    records: Sequence[CrewAvailability],
    destinations: Sequence[Tuple[str, Coordinate]],
    geocoder: Optional[Geocoder] = None,
) -> List[AvailabilityDistance]:
    """Road miles from each crew's departure point to every destination.

    Travel time is quoted at the fixed average speed. Crews whose departure
    point cannot be located are left out.
    """
    if not destinations:
        raise ValidationError("at least one destination is required")

    labels = [label for label, _ in destinations]
    points = [coordinate for _, coordinate in destinations]
    results: List[AvailabilityDistance] = []
    for record in records:
        origin = _departure(record, geocoder)
        if origin is None:
            logger.warning("Skipping availability %s without a departure location", record.id)
            continue
        routes = mapbox.route_many(origin, points)
        results.append(
            AvailabilityDistance(
                availability=record,
                destinations=tuple(
                    DestinationDistance(label, route.distance, distance_to_hours(route.distance))
                    for label, route in zip(labels, routes)
                ),
            )
        )
    logger.info("Calculated distances for %d crews to %d destinations", len(results), len(destinations))
    return results


def sort_results(results: Iterable[AvailabilityDistance], sort: SortSpec) -> List[AvailabilityDistance]:
    try:
        key = _SORT_KEYS[sort.field]
    except KeyError:
        raise ValidationError(f"unknown availability sort field {sort.field!r}") from None
    return sorted(results, key=key, reverse=sort.descending)


def totals(results: Iterable[AvailabilityDistance]) -> Dict[str, int]:
    sums = {"totalFTE": 0, "buckets": 0, "diggers": 0, "pickups": 0, "backyardMachines": 0}
    for result in results:
        crew = result.availability
        sums["totalFTE"] += crew.total_crew
        sums["buckets"] += crew.buckets or 0
        sums["diggers"] += crew.diggers or 0
        sums["pickups"] += crew.pickups or 0
        sums["backyardMachines"] += crew.backyard_machines or 0
    return sums


def to_row(result: AvailabilityDistance) -> Dict[str, object]:
    crew = result.availability
    contractor = crew.contractor
    row: Dict[str, object] = {
        "availabilityId": crew.id,
        "contractor": contractor.company if contractor else None,
        "contact": contractor.name if contractor else None,
        "departure": crew.departure_label,
        "totalFTE": crew.total_crew,
        "buckets": crew.buckets or 0,
        "diggers": crew.diggers or 0,
        "pickups": crew.pickups or 0,
        "backyardMachines": crew.backyard_machines or 0,
        "distance": round(result.distance, 1),
        "travelTimeHours": round(result.travel_time_hours, 2),
        "nearestDestination": result.nearest.destination,
    }
    for index, item in enumerate(result.destinations):
        row[f"distance_{index}"] = round(item.distance, 1)
        row[f"travelTimeHours_{index}"] = round(item.travel_time_hours, 2)
    return row
