"""Client utilities for the OpenStreetMap Nominatim geocoder."""

import logging
from typing import Any, Dict, Optional

import requests

from stormtracker.core.config import get_settings
from stormtracker.core.errors import NotFound, ServiceError, ValidationError
from stormtracker.models import Coordinate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()


def geocode(query: str, country_codes: Optional[str] = None) -> Coordinate:
    """Resolve a free-text address or postal code to the first matching coordinate."""
    if not query or not query.strip():
        raise ValidationError("an address or postal code is required")

    settings = get_settings()
    params: Dict[str, Any] = {"q": query.strip(), "format": "json", "limit": 1}
    codes = settings.geocoder_country_codes if country_codes is None else country_codes
    if codes:
        params["countrycodes"] = codes

    try:
        response = _SESSION.get(
            settings.geocoder_url,
            params=params,
            headers={"User-Agent": settings.geocoder_user_agent},
            timeout=settings.request_timeout,
        )
    except requests.RequestException as exc:
        logger.error("geocode failed for query=%s: %s", query, exc)
        raise ServiceError("geocoder", str(exc)) from exc

    if response.status_code >= 400:
        logger.error("geocode failed: status=%s query=%s", response.status_code, query)
        raise ServiceError("geocoder", f"HTTP {response.status_code}", response.status_code)

    try:
        results = response.json()
    except ValueError as exc:
        raise ServiceError("geocoder", "response was not JSON") from exc

    if not results:
        logger.info("geocode found no match for query=%s", query)
        raise NotFound(query)

    first = results[0]
    try:
        coordinate = Coordinate(float(first["lat"]), float(first["lon"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ServiceError("geocoder", f"malformed result: {first!r}") from exc

    logger.debug("geocoded %s -> %s", query, coordinate)
    return coordinate
