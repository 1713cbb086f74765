"""Custom exception classes for the playlist tracker service."""


class PlaylistTrackerError(Exception):
    """Base exception for all playlist tracker errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ArchiveFetchError(PlaylistTrackerError):
    """Raised when the chat-log archive cannot be fetched."""

    pass


class StreamStatusError(PlaylistTrackerError):
    """Raised when the uptime service returns an unusable response."""

    pass


class ArtworkLookupError(PlaylistTrackerError):
    """Raised when an artwork provider request fails."""

    pass


class ServiceInitializationError(PlaylistTrackerError):
    """Raised when a service fails to initialize."""

    pass


class ConfigurationError(PlaylistTrackerError):
    """Raised when there's a configuration error."""

    pass
