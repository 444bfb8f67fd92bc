"""Core data models shared by the distance analysis pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from stormtracker.core.errors import ValidationError

SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True, slots=True)
class Coordinate:
    """WGS84 latitude/longitude pair."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude {self.latitude} is outside [-90, 90]")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude {self.longitude} is outside [-180, 180]")


@dataclass(frozen=True, slots=True)
class AnalysisPoint:
    """A reference location selected on the map or geocoded from an address."""

    id: int
    label: str
    latitude: float
    longitude: float

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(slots=True)
class Resource:
    """A mapped resource (yard, crew location) as stored by the backend."""

    id: int
    name: str
    type: str = "Unknown"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def contractor_id(self) -> Optional[int]:
        value = self.properties.get("contractorId")
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None


@dataclass(slots=True)
class Contractor:
    """Contractor attributes used for sorting, display and exports.

    Every descriptive field is optional. Sorting treats a missing text field
    as "" and a missing number as 0.
    """

    id: int
    name: Optional[str] = None
    company: Optional[str] = None
    category: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    full_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bird_rep: Optional[str] = None
    pipefile: Optional[str] = None
    avetta: Optional[str] = None
    sub_ranking: Optional[str] = None
    fte_counts_per_location: Optional[str] = None
    pipefile_updates: Optional[str] = None
    notes: Optional[str] = None
    new_msa_complete: Optional[str] = None
    rating: Optional[float] = None
    isn_complete: bool = False
    needs_review: bool = False


@dataclass(slots=True)
class Calculation:
    """Distance (miles) and drive time (seconds) from an analysis point to a resource."""

    resource: Resource
    distance: float
    duration: int
    analysis_point_id: Optional[int] = None
    contractor: Optional[Contractor] = None

    def __post_init__(self) -> None:
        if self.distance < 0:
            raise ValidationError(f"distance must be >= 0, got {self.distance}")
        if self.duration < 0:
            raise ValidationError(f"duration must be >= 0, got {self.duration}")


@dataclass(frozen=True, slots=True)
class RouteEstimate:
    distance: float  # miles
    duration: int  # seconds
    source: str = "straight_line"


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    """Active result filters. ``None`` means the limit is not set."""

    max_distance_miles: Optional[float] = None
    max_hours: Optional[float] = None
    max_drive_minutes: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("max_distance_miles", "max_hours", "max_drive_minutes"):
            value = getattr(self, name)
            if value is None:
                continue
            if not math.isfinite(value) or value < 0:
                raise ValidationError(f"{name} must be a finite number >= 0, got {value}")

    @property
    def is_empty(self) -> bool:
        return self.max_distance_miles is None and self.max_hours is None and self.max_drive_minutes is None


@dataclass(frozen=True, slots=True)
class SortSpec:
    field: str = "distance"
    direction: str = "asc"

    def __post_init__(self) -> None:
        if self.direction not in SORT_DIRECTIONS:
            raise ValidationError(f"sort direction must be one of {SORT_DIRECTIONS}, got {self.direction!r}")

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(slots=True)
class CrewAvailability:
    """An availability submission: where a crew departs from and what it brings."""

    id: int
    contractor: Optional[Contractor] = None
    status: str = "submitted"
    departure_city: Optional[str] = None
    departure_state: Optional[str] = None
    departure_location: Optional[str] = None
    departure_latitude: Optional[float] = None
    departure_longitude: Optional[float] = None
    total_fte: Optional[int] = None
    buckets: Optional[int] = None
    diggers: Optional[int] = None
    pickups: Optional[int] = None
    backyard_machines: Optional[int] = None
    linemen_count: Optional[int] = None
    groundmen_count: Optional[int] = None
    operators_count: Optional[int] = None
    foreman_count: Optional[int] = None
    apprentices_count: Optional[int] = None

    @property
    def total_crew(self) -> int:
        """``total_fte`` when reported, otherwise the sum of the legacy role counts."""
        if self.total_fte:
            return self.total_fte
        return sum(
            count or 0
            for count in (
                self.linemen_count,
                self.groundmen_count,
                self.operators_count,
                self.foreman_count,
                self.apprentices_count,
            )
        )

    @property
    def departure_label(self) -> str:
        if self.departure_city or self.departure_state:
            return ", ".join(part for part in (self.departure_city, self.departure_state) if part)
        return self.departure_location or ""


@dataclass(frozen=True, slots=True)
class DestinationDistance:
    destination: str
    distance: float  # miles
    travel_time_hours: float


@dataclass(slots=True)
class AvailabilityDistance:
    availability: CrewAvailability
    destinations: Tuple[DestinationDistance, ...]

    @property
    def nearest(self) -> DestinationDistance:
        return min(self.destinations, key=lambda item: item.distance)

    @property
    def distance(self) -> float:
        return self.nearest.distance

    @property
    def travel_time_hours(self) -> float:
        return self.nearest.travel_time_hours


@dataclass(frozen=True, slots=True)
class ExportPayload:
    filename: str
    content: bytes = field(repr=False)
    content_type: str = "application/octet-stream"
