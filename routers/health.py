"""Health check router with real upstream connectivity checks."""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from artwork.service import ArtworkService
from config.settings import Settings, get_settings
from core.dependencies import (
    get_archive_client,
    get_artwork_service,
    get_stream_status_service,
    get_tracker,
)
from playlist.archive import ArchiveClient
from playlist.tracker import PlaylistTracker
from stream.status import StreamStatusService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 3.0
CORE_SERVICES = {"archive"}


async def _check_archive(archive: ArchiveClient) -> str:
    """Ping the chat-log archive."""
    return "ok" if await archive.check_available() else "error"


async def _check_uptime(stream_status: StreamStatusService) -> str:
    """Ping the uptime service."""
    return "ok" if await stream_status.check_available() else "error"


async def _check_spotify(artwork_service: ArtworkService | None) -> str:
    """Request a Spotify token, if Spotify is configured."""
    if artwork_service is None or not artwork_service.spotify_configured:
        return "unavailable"
    return "ok" if await artwork_service.check_spotify() else "error"


async def _run_check(coro) -> str:
    """Run a single health check with a timeout."""
    try:
        return await asyncio.wait_for(coro, timeout=CHECK_TIMEOUT)
    except TimeoutError:
        return "timeout"


@router.get(
    "/health",
    summary="Health check",
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "Service is unhealthy (archive unreachable)"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    archive: ArchiveClient = Depends(get_archive_client),
    stream_status: StreamStatusService = Depends(get_stream_status_service),
    artwork_service: ArtworkService | None = Depends(get_artwork_service),
    tracker: PlaylistTracker | None = Depends(get_tracker),
):
    """Health check with real connectivity probes for every upstream."""
    results = await asyncio.gather(
        _run_check(_check_archive(archive)),
        _run_check(_check_uptime(stream_status)),
        _run_check(_check_spotify(artwork_service)),
    )

    services = {
        "archive": results[0],
        "uptime": results[1],
        "spotify": results[2],
    }

    core_ok = all(services[s] == "ok" for s in CORE_SERVICES)
    all_configured_ok = all(v in ("ok", "unavailable") for v in services.values())

    if core_ok and all_configured_ok:
        status = "healthy"
    elif core_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    body = {
        "status": status,
        "version": settings.app_version,
        "services": services,
        "tracker": "running" if tracker is not None and tracker.running else "stopped",
    }

    status_code = 200 if status in ("healthy", "degraded") else 503
    return JSONResponse(content=body, status_code=status_code)
