"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pnlsync.api.routes import events, health, sync
from pnlsync.api.services import ServiceFactory
from pnlsync.core.config import AppSettings
from pnlsync.core.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    configure_logging(app.state.settings)
    logger.info("app_started", environment=app.state.settings.environment)
    yield
    logger.info("app_stopped")


def create_app(settings: AppSettings | None = None, services: ServiceFactory | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = services.settings if services is not None else AppSettings()

    app = FastAPI(
        title="pnlsync reconciliation jobs",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services or ServiceFactory(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )
    app.include_router(health.router)
    app.include_router(sync.router, prefix="/sync")
    app.include_router(events.router)
    return app
