import sys
from pathlib import Path

import pytest

# Ensure the `stormtracker` package is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stormtracker.core import config  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    for name in (
        "STORM_API_URL",
        "GEOCODER_URL",
        "GEOCODER_COUNTRY_CODES",
        "GEOCODER_USER_AGENT",
        "MAPBOX_ACCESS_TOKEN",
        "REQUEST_TIMEOUT",
        "SERVICE_PORT",
        "EXPORT_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
