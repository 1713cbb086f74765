"""FastAPI dependency injection providers."""

import logging

from fastapi import Depends
from posthog import Posthog

from artwork.service import ArtworkService
from config.settings import Settings, get_settings
from core.exceptions import ServiceInitializationError
from playlist.archive import ArchiveClient
from playlist.parser import PlaylistFilters
from playlist.tracker import PlaylistTracker
from stream.status import StreamStatusService

logger = logging.getLogger(__name__)

# Module-level instances for lifecycle management
_archive_client: ArchiveClient | None = None
_stream_status: StreamStatusService | None = None
_artwork_service: ArtworkService | None = None
_tracker: PlaylistTracker | None = None
_posthog_client: Posthog | None = None


def get_playlist_filters(settings: Settings = Depends(get_settings)) -> PlaylistFilters:
    """Build the line filters from settings."""
    return PlaylistFilters.from_settings(settings)


def get_archive_client(settings: Settings = Depends(get_settings)) -> ArchiveClient:
    """Get the chat-log archive client."""
    global _archive_client
    if _archive_client is None:
        _archive_client = ArchiveClient(settings.playlist_log_url, timeout=settings.http_timeout)
        logger.info(f"Archive client initialized ({settings.playlist_log_url})")
    return _archive_client


def get_stream_status_service(settings: Settings = Depends(get_settings)) -> StreamStatusService:
    """Get the stream liveness service."""
    global _stream_status
    if _stream_status is None:
        _stream_status = StreamStatusService(
            settings.stream_uptime_url,
            timeout=settings.http_timeout,
            cache_ttl=settings.stream_status_cache_ttl,
        )
        logger.info(f"Stream status service initialized ({settings.stream_uptime_url})")
    return _stream_status


def get_artwork_service(settings: Settings = Depends(get_settings)) -> ArtworkService | None:
    """Get the artwork service.

    Args:
        settings: Application settings

    Returns:
        Optional[ArtworkService]: Artwork service if lookups are enabled and at
        least one provider is usable, None otherwise
    """
    global _artwork_service

    if not settings.enable_artwork_lookup:
        logger.debug("Artwork lookup disabled")
        return None

    if not settings.spotify_configured and not settings.enable_itunes_fallback:
        logger.debug("No artwork provider configured - artwork lookup disabled")
        return None

    if _artwork_service is None:
        _artwork_service = ArtworkService(
            spotify_client_id=settings.spotify_client_id,
            spotify_client_secret=settings.spotify_client_secret,
            itunes_search_url=settings.itunes_search_url,
            enable_itunes=settings.enable_itunes_fallback,
            timeout=settings.http_timeout,
            max_retries=settings.spotify_max_retries,
            token_expiry_margin=settings.token_expiry_margin_seconds,
        )
        logger.info(
            f"Artwork service initialized (spotify: "
            f"{'enabled' if settings.spotify_configured else 'disabled'}, itunes: "
            f"{'enabled' if settings.enable_itunes_fallback else 'disabled'})"
        )

    return _artwork_service


def get_posthog_client(settings: Settings = Depends(get_settings)) -> Posthog | None:
    """Get PostHog client instance.

    Args:
        settings: Application settings

    Returns:
        Optional[Posthog]: PostHog client if configured and enabled, None otherwise
    """
    global _posthog_client

    if not settings.enable_telemetry:
        logger.debug("Telemetry disabled")
        return None

    if not settings.posthog_api_key:
        logger.debug("POSTHOG_API_KEY not set - telemetry disabled")
        return None

    if _posthog_client is None:
        _posthog_client = Posthog(
            project_api_key=settings.posthog_api_key,
            host=settings.posthog_host,
        )
        logger.info(f"PostHog client initialized (host: {settings.posthog_host})")

    return _posthog_client


def create_tracker(settings: Settings) -> PlaylistTracker:
    """Create the playlist tracker singleton wired to the shared clients.

    Raises:
        ServiceInitializationError: If the tracker cannot be constructed
    """
    global _tracker

    if _tracker is None:
        try:
            _tracker = PlaylistTracker(
                archive=get_archive_client(settings),
                stream_status=get_stream_status_service(settings),
                artwork=get_artwork_service(settings),
                filters=PlaylistFilters.from_settings(settings),
                max_history=settings.max_history_songs,
                interval=settings.update_interval_seconds,
                posthog_client=get_posthog_client(settings),
            )
        except Exception as e:
            logger.error(f"Failed to initialize playlist tracker: {e}")
            raise ServiceInitializationError(f"Tracker initialization failed: {e}") from e

    return _tracker


def get_tracker() -> PlaylistTracker | None:
    """Get the playlist tracker, or None if it has not been created."""
    return _tracker


async def close_tracker() -> None:
    """Stop the tracker's background polling."""
    global _tracker
    if _tracker:
        await _tracker.stop()
        _tracker = None


async def close_clients() -> None:
    """Close every upstream HTTP client."""
    global _archive_client, _stream_status, _artwork_service
    if _archive_client:
        await _archive_client.close()
        _archive_client = None
    if _stream_status:
        await _stream_status.close()
        _stream_status = None
    if _artwork_service:
        await _artwork_service.close()
        _artwork_service = None


def flush_posthog() -> None:
    """Flush any buffered PostHog events."""
    global _posthog_client
    if _posthog_client:
        _posthog_client.flush()


def shutdown_posthog() -> None:
    """Shutdown PostHog client gracefully."""
    global _posthog_client
    if _posthog_client:
        _posthog_client.shutdown()
        _posthog_client = None
        logger.info("PostHog client shutdown")
