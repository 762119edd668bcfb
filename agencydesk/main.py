# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from agencydesk import __version__
from agencydesk.config import get_settings
from agencydesk.database import SessionLocal, engine
from agencydesk.logging_config import configure_logging
from agencydesk.models.base import Base
from agencydesk.services.rate_provider import RateProvider, RateRefresher
from agencydesk.services.rate_store import SqlKeyValueStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)

    Base.metadata.create_all(bind=engine)

    provider = RateProvider.from_settings(SqlKeyValueStore(SessionLocal), settings)
    refresher = RateRefresher(
        provider, timedelta(hours=settings.rate_refresh_interval_hours)
    )
    app.state.rate_provider = provider
    app.state.rate_refresher = refresher

    if settings.rate_refresh_enabled:
        logger.info("Starting exchange rate refresher...")
        refresher.start()

    yield

    # Shutdown: Cleanup
    logger.info("Shutting down exchange rate refresher...")
    await refresher.stop()
    await provider.close()


app = FastAPI(
    title="agencydesk",
    description="Multi-currency analytics for freelance and agency dashboards",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include API router after it's created
from agencydesk.api.v1.router import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
