"""Client utilities for the Mapbox Directions Matrix API."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from stormtracker.core.config import get_settings
from stormtracker.core.distance import straight_line_estimate
from stormtracker.models import Coordinate, RouteEstimate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://api.mapbox.com/directions-matrix/v1/mapbox/driving"

# One source plus 24 destinations is the 25-coordinate request limit.
MATRIX_BATCH_SIZE = 24
METERS_TO_MILES = 0.000621371


def _coords(points: Sequence[Coordinate]) -> str:
    # Mapbox wants lon,lat order.
    return ";".join(f"{p.longitude},{p.latitude}" for p in points)


def _fallback(origin: Coordinate, destinations: Sequence[Coordinate]) -> List[RouteEstimate]:
    return [straight_line_estimate(origin, dest) for dest in destinations]


def _fetch_matrix(origin: Coordinate, destinations: Sequence[Coordinate], access_token: str) -> Optional[Dict[str, Any]]:
    url = f"{_BASE_URL}/{_coords([origin, *destinations])}"
    params = {"sources": "0", "annotations": "distance,duration", "access_token": access_token}
    try:
        response = _SESSION.get(url, params=params, timeout=get_settings().request_timeout)
    except requests.RequestException as exc:
        logger.error("Mapbox matrix request failed: %s", exc)
        return None
    if response.status_code >= 400:
        logger.error("Mapbox matrix error: status=%s body=%s", response.status_code, response.text[:300])
        return None
    try:
        payload = response.json()
    except ValueError:
        logger.error("Mapbox matrix returned a non-JSON body")
        return None
    if payload.get("code") != "Ok":
        logger.error("Mapbox matrix status: %s", payload.get("code"))
        return None
    return payload


def matrix_routes(
    origin: Coordinate, destinations: Sequence[Coordinate], access_token: str
) -> List[RouteEstimate]:
    """Driving routes from *origin* to at most ``MATRIX_BATCH_SIZE`` destinations.

    Any failure, or a missing cell for a destination, falls back to the
    straight-line estimate for the affected destinations.
    """
    if len(destinations) > MATRIX_BATCH_SIZE:
        raise ValueError(f"at most {MATRIX_BATCH_SIZE} destinations per matrix request")
    if not destinations:
        return []

    payload = _fetch_matrix(origin, destinations, access_token)
    if payload is None:
        logger.warning("Falling back to straight-line distances for %d destinations", len(destinations))
        return _fallback(origin, destinations)

    distances = (payload.get("distances") or [[]])[0]
    durations = (payload.get("durations") or [[]])[0]
    routes: List[RouteEstimate] = []
    for index, dest in enumerate(destinations):
        # Column 0 is the origin itself.
        column = index + 1
        meters = distances[column] if column < len(distances) else None
        seconds = durations[column] if column < len(durations) else None
        if meters is None or seconds is None:
            logger.warning("No route found for destination %d, using straight-line distance", index)
            routes.append(straight_line_estimate(origin, dest))
            continue
        routes.append(RouteEstimate(distance=meters * METERS_TO_MILES, duration=round(seconds), source="mapbox"))
    return routes


def route_many(origin: Coordinate, destinations: Sequence[Coordinate]) -> List[RouteEstimate]:
    """Routes to every destination, batched; straight-line only when no token is configured."""
    access_token = get_settings().mapbox_access_token
    if not access_token:
        return _fallback(origin, destinations)

    routes: List[RouteEstimate] = []
    for start in range(0, len(destinations), MATRIX_BATCH_SIZE):
        batch = destinations[start:start + MATRIX_BATCH_SIZE]
        logger.info("Calculating batch of %d routes via Mapbox matrix", len(batch))
        routes.extend(matrix_routes(origin, batch, access_token))
    return routes
