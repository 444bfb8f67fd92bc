"""CLI job: pick or geocode an analysis point, then filter, rank and export its results."""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from stormtracker.core.config import ConfigError, get_settings
from stormtracker.core.distance import format_duration
from stormtracker.core.errors import StormTrackerError, ValidationError
from stormtracker.core.state import AnalysisState
from stormtracker.etl import pipeline
from stormtracker.etl.map_layers import render_map
from stormtracker.etl.pipeline import SORT_FIELDS
from stormtracker.etl.summary import DEFAULT_THRESHOLD_MILES, summarize
from stormtracker.etl.transform import attach_contractors
from stormtracker.models import AnalysisPoint, Calculation, FilterCriteria, SortSpec
from stormtracker.vendors import nominatim, storm_api
from stormtracker.vendors.storm_api import EXPORT_FORMATS

logger = logging.getLogger(__name__)


def _resolve_point(state: AnalysisState, address: Optional[str], point_id: Optional[int]) -> AnalysisPoint:
    for existing in storm_api.list_analysis_points():
        state.add_point(existing)

    if address:
        coordinate = nominatim.geocode(address)
        point = storm_api.create_analysis_point(state.next_label(address), coordinate)
        state.add_point(point)
        storm_api.calculate_distances(point.id)
    elif point_id is None:
        raise ValidationError("either --address or --point-id is required")
    else:
        point = next((p for p in state.points if p.id == point_id), None)
        if point is None:
            raise ValidationError(f"analysis point {point_id} does not exist")
    return state.select_point(point.id)


def _load_calculations(state: AnalysisState, point: AnalysisPoint, local: bool) -> List[Calculation]:
    token = state.begin_request()
    if local:
        calculations = pipeline.calculate_for_point(point, storm_api.list_resources())
    else:
        calculations = storm_api.get_calculations(point.id)
    calculations = attach_contractors(calculations, storm_api.list_contractors())
    state.apply_calculations(token, calculations)
    return state.calculations


def run_analysis_job(
    *,
    address: Optional[str] = None,
    point_id: Optional[int] = None,
    max_distance: Optional[float] = None,
    max_hours: Optional[float] = None,
    sort_by: str = "distance",
    descending: bool = False,
    limit: Optional[int] = None,
    export_format: Optional[str] = None,
    group_by_bird_rep: bool = False,
    map_path: Optional[str] = None,
    local: bool = False,
) -> List[Calculation]:
    settings = get_settings()
    state = AnalysisState()
    if max_distance is not None and max_hours is not None:
        # Both given explicitly: enforce each as entered.
        state.update_criteria(FilterCriteria(max_distance, max_hours))
    elif max_distance is not None:
        state.set_max_distance(max_distance)
    elif max_hours is not None:
        state.set_max_hours(max_hours)
    sort = SortSpec(sort_by, "desc" if descending else "asc")

    point = _resolve_point(state, address, point_id)
    logger.info("Analysing point %s (%s)", point.id, point.label)

    calculations = _load_calculations(state, point, local)
    rows = pipeline.process(calculations, state.criteria, sort)
    summary = summarize(rows)
    logger.info(
        "%d of %d resources shown, closest=%s average=%s within %g mi=%d",
        len(rows),
        len(calculations),
        summary.closest,
        summary.average,
        DEFAULT_THRESHOLD_MILES,
        summary.within_threshold(),
    )

    for calc in rows if limit is None else rows[:limit]:
        name = (calc.contractor.company if calc.contractor else None) or calc.resource.name
        print(f"{calc.distance:8.1f} mi  {format_duration(calc.duration):>8}  {name}")

    if export_format:
        payload = storm_api.request_export(point.id, export_format, state.criteria, group_by_bird_rep)
        target = Path(settings.export_dir) / payload.filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload.content)
        logger.info("Saved export to %s", target)

    if map_path:
        render_map(point, rows, summary, state.criteria).save(map_path)
        logger.info("Saved map to %s", map_path)

    return rows


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rank resources by distance from an analysis point")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--address", help="Address or ZIP to geocode into a new analysis point")
    target.add_argument("--point-id", dest="point_id", type=int, help="Existing analysis point id")
    parser.add_argument("--max-distance", dest="max_distance", type=float, help="Maximum distance in miles")
    parser.add_argument("--max-hours", dest="max_hours", type=float, help="Maximum driving hours at 55 mph")
    parser.add_argument("--sort", dest="sort_by", default="distance", choices=sorted(SORT_FIELDS), help="Sort column")
    parser.add_argument("--desc", dest="descending", action="store_true", help="Sort descending")
    parser.add_argument("--limit", type=int, help="Print at most this many rows")
    parser.add_argument("--export", dest="export_format", choices=EXPORT_FORMATS, help="Download an export")
    parser.add_argument("--group-by-bird-rep", dest="group_by_bird_rep", action="store_true", help="Zip CSVs per Bird Rep")
    parser.add_argument("--map", dest="map_path", help="Write an HTML map to this path")
    parser.add_argument("--local", action="store_true", help="Compute distances here instead of on the backend")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    try:
        run_analysis_job(**vars(args))
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except StormTrackerError as exc:
        logger.error("Analysis failed: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
