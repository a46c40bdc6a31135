# tests/test_backend_client.py
import asyncio
import json

import httpx
import pytest

from app.core.errors import BackendDecodeError, BackendHTTPError, BackendUnavailableError
from app.models.planner import PlanRouteRequest
from app.services.backend_client import RoutingBackendClient

BASE_URL = "http://backend.test"


def run_with(handler, call):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            backend = RoutingBackendClient(client, BASE_URL + "/")
            return await call(backend)

    return asyncio.run(scenario())


def test_plan_route_posts_only_set_fields():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "route": {"geometry": {"type": "LineString", "coordinates": [[-104.9, 39.7]]},
                      "distance_miles": 600.5},
            "stops": [],
            "summary": {"stops_count": 0},
        })

    response = run_with(
        handler,
        lambda backend: backend.plan_route(PlanRouteRequest(start="Denver, CO", finish="Kansas City, MO", mpg=6.5)),
    )

    assert seen["method"] == "POST"
    assert seen["path"] == "/api/plan-route/"
    assert seen["body"] == {
        "start": "Denver, CO",
        "finish": "Kansas City, MO",
        "mpg": 6.5,
        "start_empty": True,
    }
    assert response.route.distance_miles == 600.5
    assert response.summary == {"stops_count": 0}
    assert response.error is None


def test_route_through_stops_sends_waypoints():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"route": {"duration_seconds": 3600}})

    response = run_with(
        handler,
        lambda backend: backend.route_through_stops([(-104.9, 39.7), [-100.0, 39.0]]),
    )

    assert seen["path"] == "/api/route-through-stops/"
    assert seen["body"] == {"waypoints": [[-104.9, 39.7], [-100.0, 39.0]]}
    assert response.route.duration_seconds == 3600


def test_http_error_carries_status_and_body():
    def handler(request):
        return httpx.Response(500, text="internal error")

    with pytest.raises(BackendHTTPError) as excinfo:
        run_with(handler, lambda backend: backend.plan_route(PlanRouteRequest(start="a", finish="b")))

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "internal error"
    assert "500" in str(excinfo.value)
    assert "internal error" in str(excinfo.value)


def test_invalid_json_is_a_decode_error_with_excerpt():
    body = "<html>" + "x" * 500

    def handler(request):
        return httpx.Response(200, text=body)

    with pytest.raises(BackendDecodeError) as excinfo:
        run_with(handler, lambda backend: backend.plan_route(PlanRouteRequest(start="a", finish="b")))

    assert excinfo.value.excerpt == body[:200]
    assert str(excinfo.value).startswith("Invalid JSON response: <html>")


def test_non_object_json_is_a_decode_error():
    def handler(request):
        return httpx.Response(200, json=[1, 2, 3])

    with pytest.raises(BackendDecodeError):
        run_with(handler, lambda backend: backend.route_through_stops([]))


def test_body_is_decoded_from_its_bytes():
    payload = {"route": {"distance_miles": 12.5}, "error": "Café closed"}

    def handler(request):
        # UTF-16 with a BOM and no charset in the content type
        return httpx.Response(
            200,
            content=json.dumps(payload).encode("utf-16"),
            headers={"content-type": "application/json"},
        )

    response = run_with(handler, lambda backend: backend.route_through_stops([]))
    assert response.route.distance_miles == 12.5
    assert response.error == "Café closed"


def test_wrongly_typed_fields_are_a_decode_error():
    def handler(request):
        return httpx.Response(200, json={"route": {"distance_miles": "far"}})

    with pytest.raises(BackendDecodeError):
        run_with(handler, lambda backend: backend.plan_route(PlanRouteRequest(start="a", finish="b")))


def test_connection_failure_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendUnavailableError):
        run_with(handler, lambda backend: backend.plan_route(PlanRouteRequest(start="a", finish="b")))
