# app/services/segments.py
from typing import List, NamedTuple, Sequence

from app.models.planner import LatLng

# Reference proximity threshold in degrees (~50 m at mid latitudes)
DEFAULT_THRESHOLD_DEG = 0.0005


class RouteClassification(NamedTuple):
    """
    Detour route split into stretches that follow the base route and
    stretches that leave it. Unpacks as (on_route, detour).
    """
    on_route: List[List[LatLng]]
    detour: List[List[LatLng]]


def squared_distance(a: LatLng, b: LatLng) -> float:
    # Plain degree space: this only decides a colour, not a distance.
    dlat = a[0] - b[0]
    dlon = a[1] - b[1]
    return dlat * dlat + dlon * dlon


def min_squared_distance(point: LatLng, route: Sequence[LatLng]) -> float:
    """
    Squared distance from `point` to the closest vertex of `route`.
    """
    best = float("inf")
    for vertex in route:
        d2 = squared_distance(point, vertex)
        if d2 < best:
            best = d2
    return best


def classify(
    base: Sequence[LatLng],
    detour: Sequence[LatLng],
    threshold_deg: float = DEFAULT_THRESHOLD_DEG,
) -> RouteClassification:
    """
    Partition `detour` into maximal runs that are near / far from `base`.

    - A detour point is near when its closest base vertex lies within
      `threshold_deg` (compared squared).
    - A run takes the label of its first point. On a label change the next
      run starts with the previous point, so adjacent runs share their
      boundary vertex and the drawn line has no gap.
    - Runs with fewer than 2 points cannot be drawn and are dropped.

    Both routes need at least 2 points, otherwise nothing is classified.
    """
    result = RouteClassification(on_route=[], detour=[])
    if len(base) < 2 or len(detour) < 2:
        return result

    threshold2 = threshold_deg * threshold_deg

    def is_near(point: LatLng) -> bool:
        return min_squared_distance(point, base) <= threshold2

    def flush(run: List[LatLng], near: bool) -> None:
        if len(run) < 2:
            return
        if near:
            result.on_route.append(run)
        else:
            result.detour.append(run)

    current: List[LatLng] = [detour[0]]
    current_near = is_near(detour[0])

    for i in range(1, len(detour)):
        pt = detour[i]
        near = is_near(pt)
        if near == current_near:
            current.append(pt)
            continue
        flush(current, current_near)
        current = [detour[i - 1], pt]
        current_near = near

    flush(current, current_near)
    return result
