# app/services/geometry.py
import math
from collections.abc import Mapping
from typing import Any, List

from app.models.planner import LatLng


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _coordinates_of(payload: Any) -> List[Any]:
    """
    Accept either a GeoJSON-like {"type", "coordinates"} object or the bare
    coordinate list.
    """
    if payload is None:
        return []
    if isinstance(payload, Mapping):
        payload = payload.get("coordinates")
    if not _is_sequence(payload):
        return []
    return list(payload)


def normalize(payload: Any) -> List[LatLng]:
    """
    Convert a backend geometry payload into a flat [(lat, lon), ...] route.

    The payload is either one line ([[lon, lat], ...]) or several
    ([[[lon, lat], ...], ...]); multi-part input is concatenated in order.
    Points without two finite numeric components are skipped.
    """
    coords = _coordinates_of(payload)
    if not coords:
        return []

    first = coords[0]
    if _is_sequence(first) and len(first) > 0 and _is_sequence(first[0]):
        points = [pt for line in coords if _is_sequence(line) for pt in line]
    else:
        points = coords

    route: List[LatLng] = []
    for pt in points:
        if not _is_sequence(pt) or len(pt) < 2:
            continue
        lon, lat = pt[0], pt[1]
        if not (_is_number(lon) and _is_number(lat)):
            continue
        route.append((float(lat), float(lon)))

    return route


def to_waypoints(points: List[LatLng]) -> List[List[float]]:
    """
    Back to the wire convention ([lon, lat]) for /api/route-through-stops/.
    """
    return [[lon, lat] for lat, lon in points]
