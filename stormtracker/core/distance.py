"""Great-circle distance and drive-time helpers."""

import math

from stormtracker.models import Coordinate, RouteEstimate

EARTH_RADIUS_MILES = 3959.0
AVERAGE_SPEED_MPH = 55.0

# Straight-line fallback inflation: roads are longer than the great circle,
# and traffic and stops slow the average speed.
ROAD_DISTANCE_FACTOR = 1.2
TRAFFIC_DURATION_FACTOR = 1.3


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between *a* and *b* in miles."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # Rounding can push h a hair past 1.0 for antipodal points.
    h = min(max(h, 0.0), 1.0)
    return 2 * EARTH_RADIUS_MILES * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_to_hours(miles: float) -> float:
    return miles / AVERAGE_SPEED_MPH


def hours_to_distance(hours: float) -> float:
    return hours * AVERAGE_SPEED_MPH


def straight_line_estimate(origin: Coordinate, destination: Coordinate) -> RouteEstimate:
    """Road distance and drive time guessed from the great-circle distance."""
    miles = haversine_miles(origin, destination)
    seconds = distance_to_hours(miles) * 3600
    return RouteEstimate(
        distance=miles * ROAD_DISTANCE_FACTOR,
        duration=round(seconds * TRAFFIC_DURATION_FACTOR),
        source="straight_line",
    )


def format_duration(seconds: float) -> str:
    """Render seconds as ``"2h 5m"`` or ``"42m"``."""
    minutes = round((seconds or 0) / 60)
    hours, remaining = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {remaining}m"
    return f"{minutes}m"


def format_coordinates(latitude: float, longitude: float) -> str:
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.4f}°{lat_dir}, {abs(longitude):.4f}°{lon_dir}"
