"""FastAPI application entry point.

Start with:
    uvicorn app.main:app --reload

or through the ``stackpulse`` console script, which binds 0.0.0.0:$PORT.

The app skeleton has:
- Lifespan events for database handle creation and disposal
- CORS middleware configured
- The health router mounted under the API prefix
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.health import router as health_router
from app.config import Settings, configure_logging, get_settings
from app.core.database import Database

assert sys.version_info >= (3, 12), "Stackpulse requires Python 3.12+"

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around one explicitly owned database handle."""
    settings = settings or get_settings()

    # ---------------------------------------------------------------------
    #  Lifespan: startup / shutdown
    # ---------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan: initialize and tear down shared resources."""
        configure_logging(settings.log_level)
        logger.info(
            "Stackpulse starting up",
            extra={"environment": settings.environment},
        )

        database = Database.from_settings(settings)
        await database.connect()
        app.state.database = database

        try:
            yield
        finally:
            logger.info("Stackpulse shutting down")
            await database.close()

    app = FastAPI(
        title="Stackpulse",
        description="Database health endpoint for the Stackpulse scaffold",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )
    app.state.settings = settings

    # CORS: the status view is served from a different origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix=settings.api_prefix)
    return app


app = create_app()


def run() -> None:
    """Serve the application on all interfaces."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Server running on port %d", settings.port)
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
