"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from lensmap.agents.orchestrator.pipeline_executor import PipelineExecutor
from lensmap.api.routes import health, normalize
from lensmap.core.config import AppSettings
from lensmap.core.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings = getattr(app.state, "settings", None) or AppSettings()
    configure_logging(settings.log_level)
    app.state.settings = settings
    if getattr(app.state, "executor", None) is None:
        app.state.executor = PipelineExecutor(settings)
    yield
    await app.state.executor.aclose()


def create_app(
    settings: AppSettings | None = None,
    executor: PipelineExecutor | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="LensMap Catalog Normalization Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.executor = executor
    app.include_router(health.router)
    app.include_router(normalize.router)
    return app
