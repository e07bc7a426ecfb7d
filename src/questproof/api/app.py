"""QuestProof FastAPI application factory.

Serve with any ASGI server, e.g. ``uvicorn --factory questproof.api.app:create_app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from questproof.api.v1 import admin, verification
from questproof.config import Settings, get_settings
from questproof.container import Services, build_services
from questproof.logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    if services is not None:
        settings = services.settings
    settings = settings or get_settings()
    if services is None:
        configure_logging(settings)
        services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.startup()
        logger.info(
            "QuestProof %s started (env=%s judge=%s)",
            settings.version,
            settings.env,
            services.pipeline.model_name,
        )
        yield
        await services.shutdown()

    app = FastAPI(title="QuestProof", version=settings.version, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "healthy",
            "version": settings.version,
            "judge": services.pipeline.model_name,
        }

    app.include_router(verification.router, prefix="/v1")
    app.include_router(admin.router, prefix="/v1")
    return app
