"""
BalloonWatch API v1.0.0

A FastAPI application that correlates WindBorne balloon telemetry with
OpenSky aircraft state vectors and serves the latest snapshot as JSON.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from balloonwatch import __version__
from balloonwatch.core import get_settings
from balloonwatch.services.poll_cycle import PollCycle, create_poll_cycle
from balloonwatch.routers import balloons, system

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, traces_sample_rate=0.1, release=f"balloonwatch@{__version__}")

# Background task handle
_background_task: Optional[asyncio.Task] = None


async def background_polling_task(cycle: PollCycle, interval: int):
    """Background task running one poll cycle per interval."""
    logger.info(f"Background polling started (interval: {interval}s)")

    while True:
        try:
            await cycle.run()
        except Exception as e:
            logger.error(f"Error in background polling: {e}")
            sentry_sdk.capture_exception(e)

        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global _background_task

    logger.info(f"Starting BalloonWatch API v{__version__}")
    cycle = create_poll_cycle(settings)

    if settings.refresh_mode == "background":
        _background_task = asyncio.create_task(background_polling_task(cycle, settings.polling_interval))
    else:
        # Prime the snapshot so the first request has data
        try:
            await cycle.run()
        except Exception as e:
            logger.error(f"Initial poll cycle failed: {e}")
            sentry_sdk.capture_exception(e)
        logger.info(f"Refreshing on request (min interval: {settings.min_refresh_interval}s)")

    logger.info(f"Balloon feed: {settings.balloon_feed_base_url} (unit: {settings.balloon_alt_unit})")
    logger.info(f"Aircraft feed: {settings.aircraft_feed_url}")

    yield

    # Shutdown
    logger.info("Shutting down...")

    if _background_task:
        _background_task.cancel()
        try:
            await _background_task
        except asyncio.CancelledError:
            pass
        _background_task = None

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="BalloonWatch API",
    version=__version__,
    description="""
## Overview
Correlates high-altitude balloon positions with nearby aircraft.

Each poll cycle:
1. Fetches the latest WindBorne balloon snapshot (falling back one hour)
2. Derives a padded bounding box and an altitude corridor from the swarm
3. Queries OpenSky for aircraft in the box
4. Keeps airborne aircraft inside the corridor
5. Pairs each with its nearest balloon within the correlation radius

Results are published as one immutable snapshot.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Balloons",
            "description": "Balloon positions, nearby aircraft and full snapshots"
        },
        {
            "name": "System",
            "description": "Health checks and configuration"
        },
    ]
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(balloons.router)
app.include_router(system.router)


@app.get("/")
async def root():
    """API entry point."""
    return JSONResponse({"message": f"BalloonWatch API v{__version__}", "docs": "/docs"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "balloonwatch.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True
    )
