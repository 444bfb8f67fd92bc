"""Error taxonomy shared by the analysis pipeline and its adapters."""

from typing import Optional


class StormTrackerError(Exception):
    """Base class for every error raised by stormtracker."""


class ValidationError(StormTrackerError):
    """Input is missing or out of range (coordinates, filters, sort keys)."""


class NotFound(StormTrackerError):
    """A lookup produced no match, e.g. geocoding an unknown address."""

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No match found for '{query}'")


class ServiceError(StormTrackerError):
    """An external HTTP service failed or answered with an error status."""

    def __init__(self, service: str, detail: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} request failed: {detail}")


class ExportFailure(StormTrackerError):
    """The backend refused or failed to render an export."""

    def __init__(self, point_id: int, fmt: str, status_code: Optional[int] = None):
        self.point_id = point_id
        self.format = fmt
        self.status_code = status_code
        super().__init__(f"Export of analysis point {point_id} as {fmt} failed (status={status_code})")
