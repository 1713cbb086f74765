"""Playlist API router."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException

from config.settings import Settings, get_settings
from core.dependencies import get_playlist_filters, get_tracker
from playlist.models import (
    HistoryItem,
    NowPlaying,
    ParseRequest,
    PlaylistResponse,
    PlaylistSnapshot,
    PlaylistState,
    SearchLinks,
)
from playlist.parser import PlaylistFilters, parse_playlist, parse_song_info
from playlist.tracker import PlaylistTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/playlist", tags=["playlist"])

SPOTIFY_SEARCH_LINK = "https://open.spotify.com/search/{query}"
YOUTUBE_SEARCH_LINK = "https://www.youtube.com/results?search_query={query}"
SKIPPED_MARKER = "skipped"


def search_links(title: str) -> SearchLinks:
    """Third-party search URLs for a display title."""
    query = quote(title, safe="!*'()")
    return SearchLinks(
        spotify=SPOTIFY_SEARCH_LINK.format(query=query),
        youtube=YOUTUBE_SEARCH_LINK.format(query=query),
    )


def build_playlist_response(state: PlaylistState) -> PlaylistResponse:
    """Decorate tracker state for display."""
    playlist = state.playlist
    now_playing = None
    if playlist.current_title:
        now_playing = NowPlaying(
            title=playlist.current_title,
            song=parse_song_info(playlist.current_title),
            album_art=state.album_art,
            search_links=search_links(playlist.current_title),
        )

    history = [
        HistoryItem(
            title=entry.title,
            timestamp=entry.timestamp,
            song=parse_song_info(entry.title),
            skipped=SKIPPED_MARKER in entry.title.lower(),
            search_links=search_links(entry.title),
        )
        for entry in playlist.history
    ]

    return PlaylistResponse(
        now_playing=now_playing,
        history=history,
        is_offline=playlist.is_offline,
        loading=state.loading,
        error=state.error,
        initial_load_complete=state.initial_load_complete,
        stream_live=state.stream_live,
        stream_status_checked=state.stream_status_checked,
        last_updated=state.last_updated,
    )


def _require_tracker(tracker: PlaylistTracker | None) -> PlaylistTracker:
    """Raise 503 if the tracker is not available."""
    if tracker is None:
        raise HTTPException(
            status_code=503,
            detail="Playlist tracker is not running. Set ENABLE_TRACKER=true.",
        )
    return tracker


@router.get(
    "",
    response_model=PlaylistResponse,
    summary="Current song and recently played history",
    responses={
        200: {"description": "Latest tracker state returned"},
        503: {"description": "Playlist tracker not running"},
    },
)
async def get_playlist(
    tracker: PlaylistTracker | None = Depends(get_tracker),
) -> PlaylistResponse:
    """Return the most recently polled playlist state."""
    return build_playlist_response(_require_tracker(tracker).state)


@router.post(
    "/refresh",
    response_model=PlaylistResponse,
    summary="Poll the archive now",
    responses={
        200: {"description": "Playlist refreshed (check the error flag)"},
        503: {"description": "Playlist tracker not running"},
    },
)
async def refresh_playlist(
    tracker: PlaylistTracker | None = Depends(get_tracker),
) -> PlaylistResponse:
    """Run one poll immediately and return the resulting state."""
    state = await _require_tracker(tracker).refresh()
    return build_playlist_response(state)


@router.post(
    "/parse",
    response_model=PlaylistSnapshot,
    summary="Parse archive lines into a playlist snapshot",
    description="""
    Stateless parse of newest-first archive lines using the configured
    request marker and exclusion filters.
    """,
)
async def parse_lines(
    request: ParseRequest,
    settings: Settings = Depends(get_settings),
    filters: PlaylistFilters = Depends(get_playlist_filters),
) -> PlaylistSnapshot:
    """Parse the given lines without touching tracker state."""
    return parse_playlist(
        request.lines,
        request.stream_is_live,
        filters=filters,
        max_history=settings.max_history_songs,
    )
