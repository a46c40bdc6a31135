# app/services/stops.py
import math
from collections.abc import Mapping
from typing import Any, List, Optional, Union

from app.models.planner import StopRecord


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _station_id(value: Any) -> Optional[Union[int, float]]:
    number = _number(value)
    if number is None:
        return None
    # 7.0 and 7 are the same station
    return int(number) if number.is_integer() else number


def stop_from_payload(raw: Mapping) -> StopRecord:
    """
    Convert one backend stop object. Position comes from `lat`/`lon` and
    falls back to a `coord` pair in [lon, lat] order.
    """
    lat = _number(raw.get("lat"))
    lon = _number(raw.get("lon"))
    coord = raw.get("coord")
    if isinstance(coord, (list, tuple)) and len(coord) >= 2:
        if lat is None:
            lat = _number(coord[1])
        if lon is None:
            lon = _number(coord[0])

    return StopRecord(
        station_id=_station_id(raw.get("station_id")),
        lat=lat,
        lon=lon,
        name=_text(raw.get("name")),
        address=_text(raw.get("address")),
        city=_text(raw.get("city")),
        state=_text(raw.get("state")),
        price=_number(raw.get("price")),
        gallons_purchased=_number(raw.get("gallons_purchased")),
        cost=_number(raw.get("cost")),
        mile_on_route=_number(raw.get("mile_on_route")),
    )


def stops_from_payload(raw: Any) -> List[StopRecord]:
    if not isinstance(raw, list):
        return []
    return [stop_from_payload(item) for item in raw if isinstance(item, Mapping)]


def _fixed6(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.6f}"


def stop_key(stop: StopRecord) -> str:
    """
    Identity of a stop: its station id, else its position rounded to 6
    decimals. Records without either share the same key.
    """
    if stop.station_id is not None:
        return f"id:{stop.station_id}"
    return f"ll:{_fixed6(stop.lat)},{_fixed6(stop.lon)}"


def dedupe(stops: List[StopRecord]) -> List[StopRecord]:
    """
    Keep the first stop for each identity key, preserving order.
    """
    seen = set()
    unique: List[StopRecord] = []
    for stop in stops:
        key = stop_key(stop)
        if key in seen:
            continue
        seen.add(key)
        unique.append(stop)
    return unique


def renderable(stops: List[StopRecord]) -> List[StopRecord]:
    return [stop for stop in stops if stop.is_renderable]
