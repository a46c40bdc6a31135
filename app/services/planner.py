# app/services/planner.py
import time
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from app.core.config import Settings
from app.core.errors import InputValidationError, PlannerError
from app.core.logger import logger
from app.models.planner import (
    InputField,
    LatLng,
    MapScene,
    PlanRouteRequest,
    PlanRouteResponse,
    RouteThroughStopsResponse,
    StopRecord,
    SuggestionsResponse,
)
from app.services.backend_client import RoutingBackendClient
from app.services.geocoding import GeocodingClient
from app.services.geometry import normalize, to_waypoints
from app.services.reconciler import RequestReconciler
from app.services.scene import build_scene
from app.services.stops import dedupe, renderable, stops_from_payload
from app.services.suggestions import SuggestionDebouncer

MISSING_INPUT_MESSAGE = "Please enter both Start and Finish."


class PlannerSession:
    """
    In-memory presentation state of one user:

    - form inputs and their suggestion debouncers
    - the committed plan (base route, detour route, stops, summary)
    - the user-visible error

    Plan requests are reconciled per kind: a newer plan supersedes an older
    one at every stage, so the committed state always belongs to the most
    recently submitted plan.
    """

    def __init__(
        self,
        backend: RoutingBackendClient,
        settings: Settings,
        geocoder: Optional[GeocodingClient] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.settings = settings
        self._backend = backend

        self.inputs: Dict[InputField, str] = {field: "" for field in InputField}
        self.route: List[LatLng] = []
        self.detour_route: List[LatLng] = []
        self.stops: List[StopRecord] = []
        self.summary: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.loading = False

        self._plans: RequestReconciler[PlanRouteResponse] = RequestReconciler("plan-route")
        self._detours: RequestReconciler[RouteThroughStopsResponse] = RequestReconciler(
            "route-through-stops"
        )

        lookup = geocoder.autocomplete if geocoder is not None else _no_suggestions
        self.suggesters: Dict[InputField, SuggestionDebouncer] = {
            field: SuggestionDebouncer(
                lookup,
                interval_ms=settings.SUGGEST_DEBOUNCE_MS,
                min_chars=settings.SUGGEST_MIN_CHARS,
                enabled=geocoder is not None,
                name=f"suggestions:{field.value}",
            )
            for field in InputField
        }

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def plan(self, request: PlanRouteRequest) -> Optional[MapScene]:
        """
        Plan a route and commit it.

        Returns the committed scene, or None when a newer plan superseded
        this one. Transport / decode failures and missing input are recorded
        as the session error and re-raised; a planning failure reported by
        the backend is recorded and the rest of the response still rendered.
        """
        self._reset_plan()
        # Whatever an older plan is still routing through is now stale.
        self._detours.cancel()

        start = request.start.strip()
        finish = request.finish.strip()
        self.inputs[InputField.START] = start
        self.inputs[InputField.FINISH] = finish
        if not start or not finish:
            # A stale plan must not land under this message.
            self._plans.cancel()
            self.error = MISSING_INPUT_MESSAGE
            raise InputValidationError(MISSING_INPUT_MESSAGE)

        body = request.model_copy(update={"start": start, "finish": finish})
        self.loading = True
        delivery = await self._plans.submit(lambda: self._backend.plan_route(body))
        if delivery is None:
            return None

        plan_token = delivery.token
        self.loading = False
        if delivery.error is not None:
            self._fail(delivery.error)

        response: PlanRouteResponse = delivery.value
        if response.error:
            logger.warning(f"Backend could not plan '{start}' -> '{finish}': {response.error}")
            self.error = response.error

        self.route = normalize(response.route.geometry if response.route else None)
        self.stops = renderable(dedupe(stops_from_payload(response.stops)))
        self.summary = response.summary if isinstance(response.summary, dict) else None
        logger.info(
            f"Committed plan #{plan_token}: {len(self.route)} route point(s), "
            f"{len(self.stops)} stop(s)"
        )

        positioned = [(s.lat, s.lon) for s in self.stops if s.has_position]
        if positioned and len(self.route) > 1:
            committed = await self._commit_detour(plan_token, [self.route[0], *positioned, self.route[-1]])
            if not committed:
                return None

        return self.scene()

    def scene(self) -> MapScene:
        return build_scene(
            route=self.route,
            detour_route=self.detour_route,
            stops=self.stops,
            summary=self.summary,
            start_label=self._summary_text("start") or self.inputs[InputField.START],
            finish_label=self._summary_text("finish") or self.inputs[InputField.FINISH],
            error=self.error,
            threshold_deg=self.settings.DETOUR_THRESHOLD_DEG,
        )

    async def type_into(self, field: InputField, text: str) -> Optional[SuggestionsResponse]:
        """
        Store a keystroke's worth of input and wait for its suggestions.
        None if a later keystroke on the same field superseded it.
        """
        self.inputs[field] = text
        suggester = self.suggesters[field]
        cycle = suggester.update(text)
        if cycle is not None and not await suggester.wait(cycle):
            return None
        return SuggestionsResponse(suggestions=suggester.suggestions, error=suggester.error)

    def close(self) -> None:
        self._plans.cancel()
        self._detours.cancel()
        for suggester in self.suggesters.values():
            suggester.close()
        self.loading = False

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _reset_plan(self) -> None:
        self.error = None
        self.summary = None
        self.route = []
        self.detour_route = []
        self.stops = []

    def _summary_text(self, key: str) -> Optional[str]:
        value = self.summary.get(key) if self.summary else None
        return value if isinstance(value, str) else None

    def _fail(self, error: BaseException) -> None:
        self.loading = False
        if isinstance(error, PlannerError):
            self.error = error.message
        raise error

    async def _commit_detour(self, plan_token: int, points: List[LatLng]) -> bool:
        """
        Fetch the route through the stops. False when a newer plan took
        over meanwhile.
        """
        waypoints = to_waypoints(points)
        delivery = await self._detours.submit(lambda: self._backend.route_through_stops(waypoints))
        if delivery is None or not self._plans.is_current(plan_token):
            return False

        if delivery.error is not None:
            if not isinstance(delivery.error, PlannerError):
                raise delivery.error
            # The base plan is already committed; keep it and show why the
            # detour is missing.
            logger.warning(f"Route through stops failed: {delivery.error}")
            self.error = self.error or delivery.error.message
            return True

        response: RouteThroughStopsResponse = delivery.value
        if response.error:
            self.error = self.error or response.error
        self.detour_route = normalize(response.route.geometry if response.route else None)
        return True


async def _no_suggestions(text: str) -> List[str]:
    return []


class SessionRegistry:
    """
    Planner sessions of the running application, keyed by id.

    Bounded two ways: a session not looked up for `SESSION_IDLE_TTL_S`
    seconds expires, and once `MAX_SESSIONS` are open the least recently
    used one is closed to make room for a new one.
    """

    def __init__(
        self,
        backend: RoutingBackendClient,
        settings: Settings,
        geocoder: Optional[GeocodingClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._backend = backend
        self._settings = settings
        self._geocoder = geocoder
        self._clock = clock
        self.max_sessions = max(1, settings.MAX_SESSIONS)
        self.idle_ttl_s = settings.SESSION_IDLE_TTL_S
        # Least recently used first
        self._sessions: "OrderedDict[str, PlannerSession]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> PlannerSession:
        self.evict_idle()
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            self._drop(oldest, "evicted (registry full)")

        session = PlannerSession(self._backend, self._settings, geocoder=self._geocoder)
        self._sessions[session.session_id] = session
        self._last_seen[session.session_id] = self._clock()
        logger.info(f"Planner session {session.session_id} created")
        return session

    def get(self, session_id: str) -> Optional[PlannerSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = self._clock()
        if self._expired(session_id, now):
            self._drop(session_id, "expired")
            return None
        self._last_seen[session_id] = now
        self._sessions.move_to_end(session_id)
        return session

    def close(self, session_id: str) -> bool:
        if session_id not in self._sessions:
            return False
        self._drop(session_id, "closed")
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def evict_idle(self) -> int:
        """
        Close every expired session. Returns how many were closed.
        """
        now = self._clock()
        expired = []
        for session_id in self._sessions:
            if not self._expired(session_id, now):
                # Ordered by last use: everything after this is fresher
                break
            expired.append(session_id)
        for session_id in expired:
            self._drop(session_id, "expired")
        return len(expired)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _expired(self, session_id: str, now: float) -> bool:
        if self.idle_ttl_s <= 0:
            return False
        return now - self._last_seen[session_id] >= self.idle_ttl_s

    def _drop(self, session_id: str, reason: str) -> None:
        session = self._sessions.pop(session_id)
        self._last_seen.pop(session_id, None)
        session.close()
        logger.info(f"Planner session {session_id} {reason}")
