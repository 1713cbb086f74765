"""FastAPI router for artwork lookups."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from artwork.memory_cache import set_skip_cache
from artwork.models import ArtworkResponse
from artwork.service import ArtworkService
from core.dependencies import get_artwork_service
from core.telemetry import get_lookup_stats, init_lookup_stats
from playlist.parser import parse_song_info

logger = logging.getLogger(__name__)

router = APIRouter(tags=["artwork"])


def _require_service(service: ArtworkService | None) -> ArtworkService:
    """Raise 503 if service is not available."""
    if service is None:
        raise HTTPException(
            status_code=503,
            detail=(
                "Artwork lookup is not configured. Set SPOTIFY_CLIENT_ID and "
                "SPOTIFY_CLIENT_SECRET or enable the iTunes fallback."
            ),
        )
    return service


@router.get(
    "/artwork",
    response_model=ArtworkResponse,
    summary="Find album artwork for a song",
    responses={
        200: {"description": "Artwork found"},
        400: {"description": "Neither artist+track nor q provided"},
        404: {"description": "No artwork found"},
        503: {"description": "Artwork lookup not configured"},
    },
)
async def get_artwork(
    artist: str | None = Query(None, description="Artist name"),
    track: str | None = Query(None, description="Track title"),
    q: str | None = Query(None, description="Display string 'Artist - Title'"),
    skip_cache: bool = False,
    service: ArtworkService | None = Depends(get_artwork_service),
) -> ArtworkResponse:
    """Look up artwork by artist and track, or by a combined display string."""
    svc = _require_service(service)

    if artist and track:
        artist, track = artist.strip(), track.strip()
    elif q and q.strip():
        song = parse_song_info(q)
        artist, track = song.artist, song.title
    else:
        raise HTTPException(
            status_code=400,
            detail="Artist and track parameters are required",
        )

    init_lookup_stats()
    set_skip_cache(skip_cache)

    try:
        result = await svc.find_artwork(artist, track)
    except Exception as e:
        logger.error(f"Artwork lookup failed: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    if result is None:
        raise HTTPException(status_code=404, detail="No artwork found")

    return ArtworkResponse(
        artwork_url=result.artwork_url,
        source=result.source,
        attempts=result.attempts,
        cached=result.cached,
        lookup_stats=get_lookup_stats(),
    )
