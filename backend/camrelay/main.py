from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import RedirectResponse
from loguru import logger

from camrelay.live.routes import router as live_router
from camrelay.logging_config import setup_logging
from camrelay.services import Services, get_services
from camrelay.settings import Settings, get_settings
from camrelay.telemetry.routes import router as telemetry_router
from camrelay.telemetry.schemas import CamelDTO


class ClientConfigDTO(CamelDTO):
    api_base: str
    camera_id: int
    stream_url: str


def create_app(
    settings: Settings | None = None, *, transport: httpx.AsyncBaseTransport | None = None
) -> FastAPI:
    """
    Build the relay app. ``transport`` replaces the network for the camera
    client (tests pass an ``httpx.MockTransport``).
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, json=settings.log_json)
    services = Services.build(settings, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("camera relay starting; upstream {}", settings.camera_host)
        if not settings.has_credentials:
            logger.warning("camera credentials not configured; requests go out unauthenticated")
        yield
        await services.aclose()
        logger.info("camera relay stopped")

    app = FastAPI(title="Apartment Cam Relay", lifespan=lifespan)
    app.state.services = services
    app.include_router(telemetry_router)
    app.include_router(live_router)

    @app.get("/", include_in_schema=False)
    def root(request: Request):
        # If a browser hits the root, take them to Swagger UI.
        # Keep the JSON response for API clients (e.g. curl, fetch).
        accept = (request.headers.get("accept") or "").lower()
        if "text/html" in accept:
            return RedirectResponse(url="/docs")
        return {
            "name": "Apartment Cam Relay",
            "docs": "/docs",
            "health": "/health",
            "endpoints": [
                "GET /api/config",
                "GET /api/status",
                "GET /api/ptz/capabilities",
                "GET /api/live?viewer=<id>",
                "POST /api/viewers/heartbeat",
                "GET /api/viewers",
            ],
        }

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/config", response_model=ClientConfigDTO)
    def client_config(services: Services = Depends(get_services)) -> ClientConfigDTO:
        s = services.settings
        return ClientConfigDTO(api_base=s.api_base, camera_id=s.camera_id, stream_url=s.stream_url)

    return app


app = create_app()
