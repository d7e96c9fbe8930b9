from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from promscout.api.deps import reset_metrics_service
from promscout.api.routes import health, metrics
from promscout.config import get_settings
from promscout.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level.upper(), json_output=not settings.debug)
    yield
    reset_metrics_service()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="promscout",
        version="0.1.0",
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.cors_origins],
            allow_methods=["GET"],
            allow_headers=["*"],
            allow_credentials=True,
        )

    app.include_router(metrics.router, prefix=settings.api_prefix, tags=["metrics"])
    app.include_router(health.router, tags=["health"])
    return app
