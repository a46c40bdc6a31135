# app/services/scene.py
import re
from typing import Any, Dict, List, Optional, Sequence

from app.models.planner import (
    LatLng,
    MapScene,
    Marker,
    MarkerKind,
    Polyline,
    PolylineKind,
    StopRecord,
)
from app.services.segments import DEFAULT_THRESHOLD_DEG, classify

# Stroke colour / width per line kind; every line gets a darker outline
# two pixels wider underneath.
LINE_STYLES = {
    PolylineKind.BASE: ("#16a34a", 5),
    PolylineKind.ON_ROUTE: ("#2563eb", 7),
    PolylineKind.DETOUR: ("#dc2626", 7),
}

BOUNDS_PADDING = 0.2

_STATE_CODE = re.compile(r"\b([A-Za-z]{2})\b")


def format_city_state(raw: Optional[str]) -> Optional[str]:
    """
    Shorten "Denver, Denver County, Colorado CO" style labels to "Denver, CO".
    Anything that does not end in a two-letter state code is returned as is.
    """
    if not raw:
        return raw
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    if len(parts) >= 2:
        match = _STATE_CODE.search(parts[-1])
        if match:
            return f"{parts[-2]}, {match.group(1).upper()}"
    return raw


def stop_popup_lines(stop: StopRecord) -> List[str]:
    lines = [stop.name or "Fuel stop"]
    if stop.address:
        lines.append(stop.address)
    place = ", ".join(p for p in (stop.city, stop.state) if p)
    if place:
        lines.append(place)
    if stop.mile_on_route is not None:
        lines.append(f"At mile: {stop.mile_on_route:.1f} mi")
    if stop.price is not None:
        lines.append(f"Price: ${stop.price:.3f}/gal")
    if stop.gallons_purchased is not None or stop.cost is not None:
        refuel = "Refuel:"
        if stop.gallons_purchased is not None:
            refuel += f" +{stop.gallons_purchased:.1f} gal"
        if stop.cost is not None:
            refuel += f" = ${stop.cost:.2f}"
        lines.append(refuel)
    return lines


def summary_lines(summary: Optional[Dict[str, Any]], stops_count: int) -> List[str]:
    if not summary:
        return []
    lines = []
    distance = summary.get("distance_with_detours_miles")
    if distance is None:
        distance = summary.get("distance_miles")
    if isinstance(distance, (int, float)) and not isinstance(distance, bool):
        lines.append(f"Distance: {distance:.1f} mi")
    if summary.get("duration_hours") is not None:
        lines.append(f"Duration: {summary['duration_hours']} h")
    lines.append(f"Stops: {stops_count}")
    if "total_cost" in summary:
        try:
            lines.append(f"Estimated cost: ${float(summary['total_cost']):.2f}")
        except (TypeError, ValueError):
            pass
    return lines


def padded_bounds(points: Sequence[LatLng], pad: float = BOUNDS_PADDING) -> Optional[List[LatLng]]:
    """
    [[south, west], [north, east]] around `points`, grown by `pad` of the
    span on every side.
    """
    if not points:
        return None
    lats = [p[0] for p in points]
    lons = [p[1] for p in points]
    south, north = min(lats), max(lats)
    west, east = min(lons), max(lons)
    dlat = (north - south) * pad
    dlon = (east - west) * pad
    return [(south - dlat, west - dlon), (north + dlat, east + dlon)]


def _polyline(kind: PolylineKind, points: List[LatLng]) -> Polyline:
    color, weight = LINE_STYLES[kind]
    return Polyline(
        kind=kind,
        points=points,
        color=color,
        weight=weight,
        outline_weight=weight + 2,
    )


def build_scene(
    route: List[LatLng],
    detour_route: Optional[List[LatLng]] = None,
    stops: Optional[List[StopRecord]] = None,
    summary: Optional[Dict[str, Any]] = None,
    start_label: Optional[str] = None,
    finish_label: Optional[str] = None,
    error: Optional[str] = None,
    threshold_deg: float = DEFAULT_THRESHOLD_DEG,
) -> MapScene:
    """
    Turn committed planner state into drawable primitives.

    - The base route is always drawn (when it has 2+ points).
    - The detour route is drawn as on-route / detour segments, classified
      against the base route.
    - Start / finish markers sit on the ends of the base route; stops with
      a position get a marker with popup lines.
    """
    detour_route = detour_route or []
    stops = stops or []

    polylines: List[Polyline] = []
    if len(route) > 1:
        polylines.append(_polyline(PolylineKind.BASE, route))

    on_route, detours = classify(route, detour_route, threshold_deg)
    polylines.extend(_polyline(PolylineKind.ON_ROUTE, seg) for seg in on_route)
    polylines.extend(_polyline(PolylineKind.DETOUR, seg) for seg in detours)

    markers: List[Marker] = []
    if route:
        start = format_city_state(start_label)
        finish = format_city_state(finish_label)
        markers.append(Marker(
            kind=MarkerKind.START,
            position=route[0],
            popup_lines=[f"Start: {start}" if start else "Start"],
        ))
        markers.append(Marker(
            kind=MarkerKind.FINISH,
            position=route[-1],
            popup_lines=[f"Finish: {finish}" if finish else "Finish"],
        ))
    for stop in stops:
        if not stop.has_position:
            continue
        markers.append(Marker(
            kind=MarkerKind.STOP,
            position=(stop.lat, stop.lon),
            popup_lines=stop_popup_lines(stop),
        ))

    return MapScene(
        route=route,
        detour_route=detour_route,
        polylines=polylines,
        markers=markers,
        bounds=padded_bounds(route if len(route) > 1 else detour_route),
        stops=stops,
        summary=summary,
        summary_lines=summary_lines(summary, len(stops)),
        error=error,
    )
