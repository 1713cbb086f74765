"""Pydantic models for playlist snapshots and the playlist API."""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field


class SongEntry(BaseModel):
    """A song request extracted from one archive line."""

    title: str
    timestamp: str = ""  # "YYYY-MM-DD HH:MM:SS" (UTC) or "" when absent


class PlaylistSnapshot(BaseModel):
    """Current song and deduplicated history for one poll cycle."""

    current_title: str | None = None
    history: list[SongEntry] = []
    is_offline: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def history_titles(self) -> list[str]:
        """History titles in order, for consumers that only need the strings."""
        return [song.title for song in self.history]


class SongInfo(BaseModel):
    """Artist/title split of a display string."""

    artist: str
    title: str


class PlaylistState(BaseModel):
    """Latest tracker state, as served to consumers."""

    playlist: PlaylistSnapshot = Field(default_factory=PlaylistSnapshot)
    album_art: str | None = None
    loading: bool = True
    error: bool = False
    initial_load_complete: bool = False
    stream_live: bool = False
    stream_status_checked: bool = False
    last_updated: datetime | None = None


class ParseRequest(BaseModel):
    """Request body for the POST /playlist/parse endpoint."""

    lines: list[str]
    stream_is_live: bool = True


class SearchLinks(BaseModel):
    spotify: str
    youtube: str


class HistoryItem(BaseModel):
    """A history entry decorated for display."""

    title: str
    timestamp: str
    song: SongInfo
    skipped: bool = False
    search_links: SearchLinks


class NowPlaying(BaseModel):
    title: str
    song: SongInfo
    album_art: str | None = None
    search_links: SearchLinks


class PlaylistResponse(BaseModel):
    """Response from the GET /playlist endpoint."""

    now_playing: NowPlaying | None = None
    history: list[HistoryItem] = []
    is_offline: bool = False
    loading: bool = True
    error: bool = False
    initial_load_complete: bool = False
    stream_live: bool = False
    stream_status_checked: bool = False
    last_updated: datetime | None = None
