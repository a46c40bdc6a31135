# app/api/v1/routes_planner.py
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.core.errors import InputValidationError, PlannerError
from app.models.planner import (
    InputField,
    InputUpdate,
    MapScene,
    PlanRouteRequest,
    SessionCreated,
    SuggestionsResponse,
)
from app.services.planner import PlannerSession, SessionRegistry

router = APIRouter(
    prefix="/sessions",
    tags=["planner"],
)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> PlannerSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown session")
    return session


@router.post(
    "/",
    response_model=SessionCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Start a planner session",
)
async def create_session(registry: SessionRegistry = Depends(get_registry)) -> SessionCreated:
    session = registry.create()
    return SessionCreated(session_id=session.session_id)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Tear a planner session down",
)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    if not registry.close(session_id):
        raise HTTPException(status_code=404, detail="Unknown session")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{session_id}/plan",
    response_model=MapScene,
    summary="Plan a truck route and return the map scene",
    responses={204: {"description": "Superseded by a newer plan on the same session"}},
)
async def plan_route(request: PlanRouteRequest, session: PlannerSession = Depends(get_session)):
    """
    Plan a route between start and finish through the routing backend.

    - Missing start/finish -> 422 with the user-facing message.
    - Backend unreachable, non-2xx or unreadable -> 502.
    - A planning failure reported by the backend comes back as a scene
      whose `error` is set.
    """
    try:
        scene = await session.plan(request)
    except InputValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc
    except PlannerError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc

    if scene is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return scene


@router.get(
    "/{session_id}/scene",
    response_model=MapScene,
    summary="Currently committed map scene",
)
async def get_scene(session: PlannerSession = Depends(get_session)) -> MapScene:
    return session.scene()


@router.put(
    "/{session_id}/inputs/{field}",
    response_model=SuggestionsResponse,
    summary="Update a location input and get its suggestions",
    responses={204: {"description": "Superseded by a later input on the same field"}},
)
async def update_input(
    field: InputField,
    body: InputUpdate,
    session: PlannerSession = Depends(get_session),
):
    suggestions = await session.type_into(field, body.text)
    if suggestions is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return suggestions
