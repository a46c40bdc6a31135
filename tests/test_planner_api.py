# tests/test_planner_api.py
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app


def backend_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "geo.test":
        return httpx.Response(200, json={"results": [
            {"city": "Denver", "state_code": "CO"},
            {"city": "Denver", "state_code": "CO"},
            {"city": "Denver City", "state_code": "TX"},
        ]})

    body = json.loads(request.content)
    if request.url.path == "/api/route-through-stops/":
        return httpx.Response(200, json={"route": {"geometry": {
            "type": "LineString",
            "coordinates": body["waypoints"],
        }}})

    if body["start"] == "Broken":
        return httpx.Response(500, text="internal error")
    if body["start"] == "Garbled":
        return httpx.Response(200, text="<html>oops</html>")
    if body["start"] == "Nowhere":
        return httpx.Response(200, json={"error": "No route found"})
    return httpx.Response(200, json={
        "route": {
            "geometry": {"type": "LineString", "coordinates": [[-104.9, 39.7], [-104.8, 39.8]]},
            "distance_miles": 9.0,
        },
        "stops": [
            {"station_id": 1, "lat": 39.75, "lon": -104.85, "name": "Stop A"},
            {"station_id": 1, "lat": 39.75, "lon": -104.85, "name": "Stop A dup"},
        ],
        "summary": {"distance_miles": 9.0, "duration_hours": 0.2, "start": "Denver, CO"},
    })


@pytest.fixture
def client(test_settings):
    app = create_app(settings=test_settings, transport=httpx.MockTransport(backend_handler))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_id(client):
    response = client.post("/sessions/")
    assert response.status_code == 201
    return response.json()["session_id"]


def test_plan_returns_scene(client, session_id):
    response = client.post(f"/sessions/{session_id}/plan", json={"start": "Denver, CO", "finish": "Golden, CO"})
    assert response.status_code == 200

    scene = response.json()
    assert scene["route"] == [[39.7, -104.9], [39.8, -104.8]]
    assert [s["name"] for s in scene["stops"]] == ["Stop A"]
    assert scene["error"] is None
    assert "Stops: 1" in scene["summary_lines"]

    kinds = [m["kind"] for m in scene["markers"]]
    assert kinds == ["start", "finish", "stop"]
    assert scene["markers"][0]["popup_lines"] == ["Start: Denver, CO"]

    # the committed scene can be fetched again
    again = client.get(f"/sessions/{session_id}/scene")
    assert again.status_code == 200
    assert again.json()["route"] == scene["route"]


def test_plan_http_error_is_502_with_status_and_body(client, session_id):
    response = client.post(f"/sessions/{session_id}/plan", json={"start": "Broken", "finish": "Omaha"})
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert "500" in detail
    assert "internal error" in detail

    scene = client.get(f"/sessions/{session_id}/scene").json()
    assert scene["error"] == detail


def test_plan_decode_error(client, session_id):
    response = client.post(f"/sessions/{session_id}/plan", json={"start": "Garbled", "finish": "Omaha"})
    assert response.status_code == 502
    assert response.json()["detail"] == "Invalid JSON response: <html>oops</html>"


def test_plan_domain_error_is_part_of_the_scene(client, session_id):
    response = client.post(f"/sessions/{session_id}/plan", json={"start": "Nowhere", "finish": "Omaha"})
    assert response.status_code == 200
    assert response.json()["error"] == "No route found"


def test_plan_requires_both_inputs(client, session_id):
    response = client.post(f"/sessions/{session_id}/plan", json={"start": "Denver, CO"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Please enter both Start and Finish."


def test_suggestions(client, session_id):
    response = client.put(f"/sessions/{session_id}/inputs/start", json={"text": "Denv"})
    assert response.status_code == 200
    assert response.json() == {"suggestions": ["Denver, CO", "Denver City, TX"], "error": None}

    short = client.put(f"/sessions/{session_id}/inputs/start", json={"text": "D"})
    assert short.json() == {"suggestions": [], "error": None}


def test_unknown_session_and_field(client, session_id):
    assert client.get("/sessions/nope/scene").status_code == 404
    assert client.put(f"/sessions/{session_id}/inputs/middle", json={"text": "x"}).status_code == 422


def test_delete_session(client, session_id):
    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert client.get(f"/sessions/{session_id}/scene").status_code == 404
    assert client.delete(f"/sessions/{session_id}").status_code == 404
