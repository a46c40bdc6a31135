# app/api/v1/routes_health.py
from fastapi import APIRouter, Request

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check(request: Request):
    """
    Simple health check endpoint to verify that the API is running.
    """
    settings = request.app.state.settings
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "backend": settings.ROUTING_BACKEND_URL,
        "suggestions": settings.suggestions_enabled,
    }
