"""Main application entry point for the Playlist Tracker service."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from artwork.router import router as artwork_router
from config.settings import get_settings
from core.dependencies import (
    close_clients,
    close_tracker,
    create_tracker,
    flush_posthog,
    shutdown_posthog,
)
from core.logging import setup_logging
from core.sentry import init_sentry
from playlist.router import router as playlist_router
from routers.health import router as health_router
from stream.router import router as stream_router

load_dotenv()

settings = get_settings()

init_sentry(
    dsn=settings.sentry_dsn,
    environment="production" if settings.log_level != "DEBUG" else "development",
    release=settings.app_version,
    upstream_urls={
        "archive": settings.playlist_log_url,
        "uptime": settings.stream_uptime_url,
    },
)

log_file = None
if settings.log_level != "DEBUG":
    log_dir = Path("/app/logs") if Path("/app/logs").exists() else Path("logs")
    log_file = log_dir / "playlist-tracker.log"
setup_logging(level=settings.log_level, log_file=log_file)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan with proper startup and shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Archive: {settings.playlist_log_url}")
    logger.info(f"Spotify artwork: {'configured' if settings.spotify_configured else 'disabled'}")

    if settings.enable_tracker:
        await create_tracker(settings).start()
    else:
        logger.info("Playlist tracker disabled")

    yield

    logger.info("Shutting down application")
    await close_tracker()
    await close_clients()
    shutdown_posthog()
    logger.info("All services shut down")


app = FastAPI(
    title=settings.app_name,
    description="Now playing and recently played songs reconstructed from the request log",
    version=settings.app_version,
    lifespan=lifespan,
)


@app.middleware("http")
async def posthog_flush_middleware(request: Request, call_next):
    """Flush PostHog events after each request to prevent data loss."""
    response = await call_next(request)
    flush_posthog()
    return response


app.include_router(health_router, prefix="", tags=["health"])
app.include_router(playlist_router, prefix="/api/v1", tags=["playlist"])
app.include_router(stream_router, prefix="/api/v1", tags=["stream"])
app.include_router(artwork_router, prefix="/api/v1", tags=["artwork"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
