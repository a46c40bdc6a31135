# app/main.py

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from app.api.v1 import routes_health, routes_planner
from app.core.config import Settings, settings as default_settings
from app.core.logger import logger
from app.services.backend_client import RoutingBackendClient
from app.services.geocoding import GeocodingClient
from app.services.planner import SessionRegistry


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application. `transport` replaces the network for outbound
    calls (tests pass an httpx.MockTransport).
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_S, transport=transport)
        backend = RoutingBackendClient(
            client,
            settings.ROUTING_BACKEND_URL,
            excerpt_chars=settings.ERROR_EXCERPT_CHARS,
        )
        geocoder = None
        if settings.suggestions_enabled:
            geocoder = GeocodingClient(
                client,
                settings.GEOAPIFY_API_KEY,
                url=settings.GEOAPIFY_AUTOCOMPLETE_URL,
                country_code=settings.SUGGEST_COUNTRY_CODE,
                limit=settings.SUGGEST_LIMIT,
                excerpt_chars=settings.ERROR_EXCERPT_CHARS,
            )
        else:
            logger.info("No GEOAPIFY_API_KEY configured: location suggestions disabled.")

        app.state.sessions = SessionRegistry(backend, settings, geocoder=geocoder)
        logger.info(f"Routing backend at {settings.ROUTING_BACKEND_URL}")
        try:
            yield
        finally:
            app.state.sessions.close_all()
            await client.aclose()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Presentation service for truck route plans: reconciled "
                    "backend requests, normalized geometry and map scenes.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_planner.router, prefix="", tags=["planner"])

    return app


app = create_app()
