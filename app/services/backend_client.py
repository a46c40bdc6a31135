# app/services/backend_client.py
from time import perf_counter
from typing import Any, Dict, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.core.errors import BackendDecodeError, BackendHTTPError, BackendUnavailableError
from app.core.logger import logger
from app.models.planner import (
    PlanRouteRequest,
    PlanRouteResponse,
    RouteThroughStopsResponse,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RoutingBackendClient:
    """
    Talks to the routing backend that owns route computation.

    - POST /api/plan-route/           -> PlanRouteResponse
    - POST /api/route-through-stops/  -> RouteThroughStopsResponse

    Non-2xx statuses raise BackendHTTPError (status + body), bodies that are
    not a JSON object raise BackendDecodeError (with an excerpt), and calls
    that never get a response raise BackendUnavailableError. A successful
    response may still carry a planning failure in its `error` field; that
    is left to the caller.
    """

    PLAN_ROUTE_PATH = "/api/plan-route/"
    ROUTE_THROUGH_STOPS_PATH = "/api/route-through-stops/"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        excerpt_chars: int = 200,
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")
        self.excerpt_chars = excerpt_chars

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def plan_route(self, request: PlanRouteRequest) -> PlanRouteResponse:
        body = request.model_dump(exclude_none=True)
        logger.info(f"Planning route '{request.start}' -> '{request.finish}'")
        return await self._post(self.PLAN_ROUTE_PATH, body, PlanRouteResponse)

    async def route_through_stops(
        self,
        waypoints: Sequence[Sequence[float]],
    ) -> RouteThroughStopsResponse:
        """
        Route through explicit waypoints, each given as [lon, lat].
        """
        body = {"waypoints": [list(wp) for wp in waypoints]}
        logger.info(f"Routing through {len(body['waypoints'])} waypoint(s)")
        return await self._post(self.ROUTE_THROUGH_STOPS_PATH, body, RouteThroughStopsResponse)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _post(self, path: str, body: Dict[str, Any], model: Type[ModelT]) -> ModelT:
        url = f"{self.base_url}{path}"
        t0 = perf_counter()

        try:
            response = await self._client.post(url, json=body)
        except httpx.HTTPError as exc:
            logger.warning(f"POST {path} failed without a response: {exc!r}")
            raise BackendUnavailableError(f"Request failed: {exc}") from exc

        logger.info(
            f"POST {path} -> {response.status_code} in {(perf_counter() - t0) * 1000.0:.2f} ms"
        )

        if not response.is_success:
            logger.warning(f"POST {path} returned {response.status_code}")
            raise BackendHTTPError(response.status_code, response.text)

        data = self._decode_object(response)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"POST {path} returned an unexpected shape: {exc.error_count()} error(s)")
            raise BackendDecodeError(response.text[: self.excerpt_chars]) from exc

    def _decode_object(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise BackendDecodeError(response.text[: self.excerpt_chars]) from exc
        if not isinstance(data, dict):
            raise BackendDecodeError(response.text[: self.excerpt_chars])
        return data
