"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_DEFAULT_STORM_API_URL = "http://localhost:5000/api"
_DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"


class ConfigError(RuntimeError):
    """Raised when an environment value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    storm_api_url: str = _DEFAULT_STORM_API_URL
    geocoder_url: str = _DEFAULT_GEOCODER_URL
    geocoder_country_codes: str = "us"
    geocoder_user_agent: str = "StormTracker/1.0"
    mapbox_access_token: str = ""
    request_timeout: float = 10.0
    service_port: int = 9000
    export_dir: str = "."


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    storm_api_url = os.getenv("STORM_API_URL", _DEFAULT_STORM_API_URL).rstrip("/")
    geocoder_url = os.getenv("GEOCODER_URL", _DEFAULT_GEOCODER_URL)
    geocoder_country_codes = os.getenv("GEOCODER_COUNTRY_CODES", "us").strip().lower()
    geocoder_user_agent = os.getenv("GEOCODER_USER_AGENT", "StormTracker/1.0")
    mapbox_access_token = os.getenv("MAPBOX_ACCESS_TOKEN", "")
    request_timeout = _env_number("REQUEST_TIMEOUT", "10", float)
    service_port = _env_number("SERVICE_PORT", "9000", int)
    export_dir = os.getenv("EXPORT_DIR", ".")

    if not os.getenv("STORM_API_URL"):
        logger.warning("STORM_API_URL is not set; using %s", storm_api_url)
    if not mapbox_access_token:
        logger.warning("MAPBOX_ACCESS_TOKEN is not configured; falling back to straight-line estimates.")

    return Settings(
        storm_api_url=storm_api_url,
        geocoder_url=geocoder_url,
        geocoder_country_codes=geocoder_country_codes,
        geocoder_user_agent=geocoder_user_agent,
        mapbox_access_token=mapbox_access_token,
        request_timeout=request_timeout,
        service_port=service_port,
        export_dir=export_dir,
    )
