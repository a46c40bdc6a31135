# app/models/planner.py

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

# Internal coordinate convention: (lat, lon). The backend speaks [lon, lat].
LatLng = Tuple[float, float]


class PlanRouteRequest(BaseModel):
    """
    Body of POST /api/plan-route/ on the routing backend, and of the
    session's /plan endpoint. Unset tuning fields are not sent.
    """
    start: str = ""
    finish: str = ""
    mpg: Optional[float] = None
    max_range_miles: Optional[float] = None
    reserve_gallons: Optional[float] = None
    first_stop_emergency_gallons: Optional[float] = None
    summary_only: Optional[bool] = None
    no_geometry: Optional[bool] = None
    start_empty: Optional[bool] = True


# --------------------------------------------------------------------- #
# Backend wire shapes. Loosely typed on purpose: geometry and stops are
# converted (and malformed entries dropped) by the services, not here.
# --------------------------------------------------------------------- #


class RoutePayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    distance: Optional[float] = None
    duration: Optional[float] = None
    distance_miles: Optional[float] = None
    duration_seconds: Optional[float] = None
    # {"type": "LineString" | "MultiLineString", "coordinates": [...]}
    geometry: Any = None


class PlanRouteResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    route: Optional[RoutePayload] = None
    stops: Any = None
    summary: Any = None
    error: Optional[str] = None


class RouteThroughStopsResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    route: Optional[RoutePayload] = None
    error: Optional[str] = None


# --------------------------------------------------------------------- #
# Internal, fully typed data
# --------------------------------------------------------------------- #


class StopRecord(BaseModel):
    """
    One fuel stop as the presentation layer knows it.
    """
    model_config = ConfigDict(frozen=True)

    station_id: Optional[Union[int, float]] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    price: Optional[float] = None
    gallons_purchased: Optional[float] = None
    cost: Optional[float] = None
    mile_on_route: Optional[float] = None

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def is_renderable(self) -> bool:
        return self.station_id is not None or self.has_position


class InputField(str, Enum):
    START = "start"
    FINISH = "finish"


# --------------------------------------------------------------------- #
# Drawable primitives handed to the map surface
# --------------------------------------------------------------------- #


class PolylineKind(str, Enum):
    BASE = "base"
    ON_ROUTE = "on-route"
    DETOUR = "detour"


class MarkerKind(str, Enum):
    START = "start"
    FINISH = "finish"
    STOP = "stop"


class Polyline(BaseModel):
    """
    A stroked line drawn over a darker, wider outline.
    """
    kind: PolylineKind
    points: List[LatLng]
    color: str
    weight: int
    outline_color: str = "#0f172a"
    outline_weight: int


class Marker(BaseModel):
    kind: MarkerKind
    position: LatLng
    popup_lines: List[str] = []


class MapScene(BaseModel):
    """
    Everything the map surface needs to draw one committed plan.

    - `route` is the normalized base route ([lat, lon] pairs).
    - `polylines` are drawn in order (base first, then segments).
    - `bounds` is [[south, west], [north, east]], already padded.
    """
    route: List[LatLng] = []
    detour_route: List[LatLng] = []
    polylines: List[Polyline] = []
    markers: List[Marker] = []
    bounds: Optional[List[LatLng]] = None
    stops: List[StopRecord] = []
    summary: Optional[Dict[str, Any]] = None
    summary_lines: List[str] = []
    error: Optional[str] = None


# --------------------------------------------------------------------- #
# Session API bodies
# --------------------------------------------------------------------- #


class SessionCreated(BaseModel):
    session_id: str


class InputUpdate(BaseModel):
    text: str = ""


class SuggestionsResponse(BaseModel):
    suggestions: List[str] = []
    error: Optional[str] = None
