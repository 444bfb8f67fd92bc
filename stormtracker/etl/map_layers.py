"""Render analysis results onto a folium (Leaflet) map."""

import html
import logging
from typing import Optional, Sequence

import folium

from stormtracker.core.distance import format_coordinates, format_duration
from stormtracker.etl.summary import Summary
from stormtracker.models import AnalysisPoint, Calculation, FilterCriteria

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.34

_RESOURCE_COLOURS = {
    "Union": "#3B82F6",
    "Non-Union": "#EF4444",
    "Non-union": "#EF4444",
    "Veg": "#10B981",
    "HVAC": "#F59E0B",
    "DAT": "#8B5CF6",
    "Consulting": "#EC4899",
    "Logistics": "#06B6D4",
}
_DEFAULT_COLOUR = "#6B7280"


def marker_color(distance: float) -> str:
    if distance <= 5:
        return "#10B981"
    if distance <= 10:
        return "#F59E0B"
    return "#EF4444"


def resource_color(category: Optional[str]) -> str:
    return _RESOURCE_COLOURS.get(category or "", _DEFAULT_COLOUR)


def _popup(calc: Calculation) -> str:
    contractor = calc.contractor
    title = html.escape((contractor.company if contractor and contractor.company else None) or calc.resource.name)
    lines = [f"<b>{title}</b>"]
    if contractor and contractor.name:
        lines.append(html.escape(contractor.name))
    lines.append(f"{calc.distance:.1f} mi &middot; {format_duration(calc.duration)}")
    return "<br>".join(lines)


def render_map(
    point: AnalysisPoint,
    records: Sequence[Calculation],
    summary: Summary,
    criteria: Optional[FilterCriteria] = None,
    tiles: str = "CartoDB positron",
) -> folium.Map:
    """Analysis point, one circle marker per kept resource, and the distance limit ring."""
    m = folium.Map(location=[point.latitude, point.longitude], zoom_start=8, tiles=tiles)

    folium.Marker(
        [point.latitude, point.longitude],
        popup=f"<b>{html.escape(point.label)}</b><br>{format_coordinates(point.latitude, point.longitude)}",
        icon=folium.Icon(color="red", icon="crosshairs", prefix="fa"),
        tooltip=point.label,
    ).add_to(m)

    plotted = 0
    for calc in records:
        if calc.resource.latitude is None or calc.resource.longitude is None:
            continue
        category = calc.contractor.category if calc.contractor else calc.resource.type
        folium.CircleMarker(
            [calc.resource.latitude, calc.resource.longitude],
            radius=8,
            color=resource_color(category),
            fill=True,
            fill_color=marker_color(calc.distance),
            fill_opacity=0.85,
            popup=_popup(calc),
        ).add_to(m)
        plotted += 1

    if criteria is not None and criteria.max_distance_miles:
        folium.Circle(
            [point.latitude, point.longitude],
            radius=criteria.max_distance_miles * METERS_PER_MILE,
            color="#3B82F6",
            fill=True,
            fill_opacity=0.08,
            tooltip=f"Within {criteria.max_distance_miles:g} mi",
        ).add_to(m)

    stats = summary.to_dict()
    closest = "n/a" if stats["closest"] is None else f"{stats['closest']} mi"
    average = "n/a" if stats["average"] is None else f"{stats['average']} mi"
    legend_html = f"""
    <div style="position: fixed; bottom: 30px; left: 30px; z-index: 9999;
                background: white; padding: 8px 12px; border-radius: 6px; font-size: 12px;">
     <b>Analysis Summary</b><br>
     Closest: {closest}<br>
     Avg Distance: {average}<br>
     Total Resources: {stats['count']}<br>
     Within {stats['threshold']:g} mi: {stats['withinThreshold']}
    </div>"""
    m.get_root().html.add_child(folium.Element(legend_html))

    logger.info("Rendered %d resources around %s", plotted, point.label)
    return m
