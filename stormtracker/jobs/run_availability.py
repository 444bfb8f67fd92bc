"""CLI job: distances from approved crew availability to one or more work locations."""

import argparse
import logging
from typing import Dict, List, Optional, Sequence

from stormtracker.core.config import ConfigError
from stormtracker.core.errors import StormTrackerError, ValidationError
from stormtracker.etl import availability
from stormtracker.models import SortSpec
from stormtracker.vendors import nominatim, storm_api

logger = logging.getLogger(__name__)


def run_availability_job(
    *,
    destinations: Sequence[str],
    session_id: Optional[int] = None,
    sort_by: str = "distance",
    descending: bool = False,
) -> List[Dict[str, object]]:
    labels = [d.strip() for d in destinations if d and d.strip()]
    if not labels:
        raise ValidationError("at least one destination is required")

    crews = availability.approved(storm_api.list_crew_availability(session_id))
    if not crews:
        logger.warning("No approved crews to analyse")
        return []

    located = [(label, nominatim.geocode(label)) for label in labels]
    results = availability.distance_matrix(crews, located, geocoder=nominatim.geocode)
    results = availability.sort_results(results, SortSpec(sort_by, "desc" if descending else "asc"))

    rows = [availability.to_row(result) for result in results]
    for row in rows:
        print(
            f"{row['distance']:8.1f} mi  {row['travelTimeHours']:5.2f} h  "
            f"FTE {row['totalFTE']:>4}  {row['contractor'] or '-'}  -> {row['nearestDestination']}"
        )
    logger.info("Totals: %s", availability.totals(results))
    return rows


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Distance analysis for approved crew availability")
    parser.add_argument("destinations", nargs="+", help="Work locations to measure against")
    parser.add_argument("--session-id", dest="session_id", type=int, help="Availability session id")
    parser.add_argument(
        "--sort",
        dest="sort_by",
        default="distance",
        choices=availability.SORT_FIELDS,
    )
    parser.add_argument("--desc", dest="descending", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    try:
        run_availability_job(**vars(args))
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except StormTrackerError as exc:
        logger.error("Availability analysis failed: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
