"""FastAPI application factory with lifespan management."""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from threatpulse import __version__
from threatpulse.api.routers import alerts, assets, cves, pipeline
from threatpulse.core.config import get_settings
from threatpulse.core.database import close_engine, get_engine
from threatpulse.core.limiter import limiter
from threatpulse.core.logging import configure_logging, get_logger
from threatpulse.core.scheduler import scheduler_loop

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    configure_logging()
    settings = get_settings()
    logger.info("Starting ThreatPulse", debug=settings.app_debug)

    # Warm up DB connection pool
    get_engine()

    scheduler_task: asyncio.Task | None = None
    if settings.pipeline_schedule_enabled:
        scheduler_task = asyncio.create_task(scheduler_loop(), name="pipeline-scheduler")

    yield

    # Cleanup
    if scheduler_task is not None:
        scheduler_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scheduler_task
    await close_engine()
    logger.info("ThreatPulse stopped")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="ThreatPulse",
        description="Vulnerability feed ingestion and asset correlation API",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routers
    api_prefix = "/api/v1"
    app.include_router(pipeline.router, prefix=api_prefix)
    app.include_router(cves.router, prefix=api_prefix)
    app.include_router(alerts.router, prefix=api_prefix)
    app.include_router(assets.router, prefix=api_prefix)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
