"""FastAPI application exposing service health and wiring."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, status as http_status
from fastapi.responses import JSONResponse

from zap_assistant.core.config import AppSettings, load_app_settings
from zap_assistant.core.features import enabled_features
from zap_assistant.di.errors import token_name
from zap_assistant.di.factory import ServiceFactory

LOGGER = logging.getLogger(__name__)


def create_app(
    factory: ServiceFactory | None = None, settings: AppSettings | None = None
) -> FastAPI:
    """Build the web app around ``factory``, bootstrapping one if needed."""
    if factory is None:
        factory = ServiceFactory(settings or load_app_settings())
    factory.initialize()

    app = FastAPI(title="zap-assistant")
    app.state.factory = factory

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Close service clients on app shutdown."""
        factory.clear()
        LOGGER.info("Service factory cleared")

    @app.get("/health")
    async def health() -> JSONResponse:
        report = await asyncio.to_thread(factory.run_health_checks)
        payload: dict[str, Any] = {
            "status": "healthy" if report.healthy else "unhealthy",
            "checked_at": report.checked_at.isoformat(),
            "services": report.summary(),
            "disabled": factory.disabled_services,
        }
        status_code = (
            http_status.HTTP_200_OK
            if report.healthy
            else http_status.HTTP_503_SERVICE_UNAVAILABLE
        )
        if not report.healthy:
            LOGGER.warning("Health endpoint reporting unhealthy services")
        return JSONResponse(payload, status_code=status_code)

    @app.get("/services")
    async def services() -> dict[str, Any]:
        container = factory.get_container()
        return {
            "state": factory.state.value,
            "registered": [
                token_name(token) for token in container.get_registered_services()
            ],
            "features": enabled_features(factory.settings),
            "disabled": factory.disabled_services,
        }

    return app


__all__ = ["create_app"]
