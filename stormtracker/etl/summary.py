"""Summary statistics over the filtered calculations."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from stormtracker.models import Calculation

DEFAULT_THRESHOLD_MILES = 10.0


@dataclass(frozen=True)
class Summary:
    count: int
    closest: Optional[float]
    average: Optional[float]
    distances: Tuple[float, ...] = field(default=(), repr=False)

    def within_threshold(self, miles: float = DEFAULT_THRESHOLD_MILES) -> int:
        return sum(1 for distance in self.distances if distance <= miles)

    def to_dict(self, threshold: float = DEFAULT_THRESHOLD_MILES) -> Dict[str, Any]:
        return {
            "count": self.count,
            "closest": round(self.closest, 1) if self.closest is not None else None,
            "average": round(self.average, 1) if self.average is not None else None,
            "threshold": threshold,
            "withinThreshold": self.within_threshold(threshold),
        }


def summarize(records: Iterable[Calculation]) -> Summary:
    """Closest and mean distance; both are ``None`` for an empty set."""
    distances = tuple(record.distance for record in records)
    if not distances:
        return Summary(count=0, closest=None, average=None)
    return Summary(
        count=len(distances),
        closest=min(distances),
        average=sum(distances) / len(distances),
        distances=distances,
    )
