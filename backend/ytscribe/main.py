"""
FastAPI application for YouTube transcript extraction and translation.

Provides HTTP API for transcript jobs with SSE progress updates, plus the
plan and payment endpoints that gate them.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ytscribe import __version__
from ytscribe.api import payment_routes, routes
from ytscribe.api.dependencies import AppServices, build_services, get_services
from ytscribe.config import get_settings
from ytscribe.logging_config import setup_logging

# Configure logging before anything else
settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Builds the shared services once (unless they were injected) and
    closes provider clients on shutdown.
    """
    logger.info("Starting YouTube Transcript API")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Temp directory: {settings.temp_dir}")
    logger.info(f"Payment required: {settings.payment_required}")

    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)

    services: AppServices = app.state.services
    logger.info(f"Providers configured: {services.providers}")

    yield

    logger.info("Shutting down YouTube Transcript API")
    await services.close()


def create_app(services: AppServices | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        services: Prebuilt service container (tests); built in lifespan if None

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="YouTube Transcript API",
        description="Transcript extraction, translation and payments",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS middleware for web and mobile clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes.router)
    app.include_router(payment_routes.router)

    @app.get("/health")
    async def health_check(services: AppServices = Depends(get_services)) -> dict:
        """
        Health check endpoint.

        Returns:
            Liveness status, uptime in seconds, timestamp and configured providers
        """
        return {
            "status": "ok",
            "uptime": round(time.time() - services.started_at, 1),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "providers": services.providers,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ytscribe.main:app",
        host="0.0.0.0",
        port=settings.port,
    )
