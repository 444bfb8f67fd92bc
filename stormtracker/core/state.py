"""Single owner of the analysis filters, points and in-flight request tokens."""

from __future__ import annotations

import logging
import string
from typing import Dict, List, Optional

from stormtracker.core.distance import distance_to_hours, hours_to_distance
from stormtracker.core.errors import ValidationError
from stormtracker.models import AnalysisPoint, Calculation, FilterCriteria

logger = logging.getLogger(__name__)


class AnalysisState:
    """
    Session state for one user working an analysis.

    Filters live here once. Editing the distance limit fills in the hours
    limit (and vice versa) at the fixed average speed; whichever was edited
    last is recorded in ``authoritative``.

    Every fetch takes a token from ``begin_request``. Results carrying an
    older token than the latest one are dropped, so a slow response for a
    previously selected point cannot overwrite newer data.
    """

    def __init__(self) -> None:
        self._criteria = FilterCriteria()
        self.authoritative: Optional[str] = None
        self._points: Dict[int, AnalysisPoint] = {}
        self._labels_issued = 0
        self.selected_point_id: Optional[int] = None
        self._generation = 0
        self.calculations: List[Calculation] = []

    # ── Filters ──────────────────────────────────────────────────

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    def set_max_distance(self, miles: Optional[float]) -> FilterCriteria:
        if miles is None:
            return self.clear_filters()
        hours = distance_to_hours(miles)
        self._criteria = FilterCriteria(miles, hours, self._criteria.max_drive_minutes)
        self.authoritative = "distance"
        return self._criteria

    def set_max_hours(self, hours: Optional[float]) -> FilterCriteria:
        if hours is None:
            return self.clear_filters()
        miles = hours_to_distance(hours)
        self._criteria = FilterCriteria(miles, hours, self._criteria.max_drive_minutes)
        self.authoritative = "hours"
        return self._criteria

    def update_criteria(self, criteria: FilterCriteria) -> FilterCriteria:
        """Replace the filters verbatim, without syncing the two limits."""
        self._criteria = criteria
        self.authoritative = None
        return self._criteria

    def clear_filters(self) -> FilterCriteria:
        self._criteria = FilterCriteria(max_drive_minutes=self._criteria.max_drive_minutes)
        self.authoritative = None
        return self._criteria

    # ── Points ───────────────────────────────────────────────────

    @property
    def points(self) -> List[AnalysisPoint]:
        return list(self._points.values())

    def next_label(self, address: str) -> str:
        """Label for the next geocoded point: ``"<address> (A)"``, then ``(B)``..."""
        index = self._labels_issued
        letters = string.ascii_uppercase
        suffix = ""
        while True:
            index, rem = divmod(index, 26)
            suffix = letters[rem] + suffix
            if index == 0:
                break
            index -= 1
        return f"{address.strip()} ({suffix})"

    def add_point(self, point: AnalysisPoint) -> AnalysisPoint:
        self._points[point.id] = point
        self._labels_issued += 1
        return point

    def remove_point(self, point_id: int) -> None:
        if self._points.pop(point_id, None) is None:
            raise ValidationError(f"unknown analysis point {point_id}")
        if self.selected_point_id == point_id:
            self.selected_point_id = None
            self.calculations = []
            self._generation += 1

    def select_point(self, point_id: int) -> AnalysisPoint:
        point = self._points.get(point_id)
        if point is None:
            raise ValidationError(f"unknown analysis point {point_id}")
        if point_id != self.selected_point_id:
            self.selected_point_id = point_id
            self.calculations = []
            self._generation += 1
        return point

    @property
    def selected_point(self) -> Optional[AnalysisPoint]:
        if self.selected_point_id is None:
            return None
        return self._points.get(self.selected_point_id)

    # ── Request tokens ───────────────────────────────────────────

    def begin_request(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def apply_calculations(self, token: int, calculations: List[Calculation]) -> bool:
        """Store *calculations* if *token* is still current; return whether they were kept."""
        if not self.is_current(token):
            logger.info("Dropping stale calculations (token=%d, current=%d)", token, self._generation)
            return False
        self.calculations = list(calculations)
        return True
