"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream Endpoints
    playlist_log_url: str = Field(
        default="https://logs.ivr.fi/channel/quin69/user/sheepfarmer/?reverse",
        description="Chat-log archive URL (queried newest-first)",
    )
    stream_uptime_url: str = Field(
        default="https://decapi.me/twitch/uptime/quin69",
        description="Uptime-check URL used to decide whether the stream is live",
    )
    itunes_search_url: str = Field(
        default="https://itunes.apple.com/search", description="iTunes search API URL"
    )

    # API Keys - Optional
    spotify_client_id: str | None = Field(None, description="Spotify client ID for artwork lookup")
    spotify_client_secret: str | None = Field(
        None, description="Spotify client secret for artwork lookup"
    )

    # Playlist Parsing
    max_history_songs: int = Field(
        default=50, ge=0, description="Maximum number of songs kept in the history"
    )
    request_marker: str = Field(default="🔊", description="Token marking a song-request line")
    excluded_markers: list[str] = Field(
        default=["VIBE", "Clearing the spotify"],
        description="Substrings that disqualify a line (case-sensitive)",
    )
    excluded_markers_case_insensitive: list[str] = Field(
        default=["offline"],
        description="Substrings that disqualify a line (case-insensitive)",
    )

    # Polling
    update_interval_seconds: float = Field(
        default=30.0, gt=0, description="Seconds between playlist polls"
    )
    http_timeout: float = Field(default=10.0, description="Timeout for upstream HTTP requests")
    stream_status_cache_ttl: int = Field(
        default=30, description="TTL in seconds for cached stream status checks"
    )

    # Application Configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to run the server on")
    log_level: str = Field(default="INFO", description="Logging level")

    # Feature Flags
    enable_tracker: bool = Field(
        default=True, description="Run the background playlist tracker on startup"
    )
    enable_artwork_lookup: bool = Field(
        default=True, description="Look up album artwork when the current song changes"
    )
    enable_itunes_fallback: bool = Field(
        default=True, description="Fall back to iTunes when Spotify has no artwork"
    )
    enable_telemetry: bool = Field(default=True, description="Enable PostHog telemetry")

    # PostHog Configuration
    posthog_api_key: str | None = Field(None, description="PostHog API key for telemetry")
    posthog_host: str = Field(default="https://us.i.posthog.com", description="PostHog host URL")

    # Sentry Configuration
    sentry_dsn: str | None = Field(None, description="Sentry DSN for error tracking")

    # Artwork Cache Configuration
    artwork_cache_ttl: int = Field(
        default=86400, description="TTL in seconds for artwork cache (default: 24 hours)"
    )
    artwork_cache_maxsize: int = Field(default=500, description="Maximum entries in artwork cache")

    # Spotify Rate Limiting Configuration
    spotify_rate_limit: int = Field(default=60, description="Max Spotify API requests per minute")
    spotify_max_concurrent: int = Field(
        default=3, description="Max concurrent Spotify API requests"
    )
    spotify_max_retries: int = Field(
        default=2, description="Max retry attempts on 429 rate limit errors"
    )
    token_expiry_margin_seconds: int = Field(
        default=60, description="Refresh the Spotify token this many seconds before it expires"
    )

    @property
    def spotify_configured(self) -> bool:
        """Whether both Spotify credentials are present."""
        return bool(self.spotify_client_id and self.spotify_client_secret)

    # Application Metadata
    app_name: str = Field(default="Playlist-Tracker", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
