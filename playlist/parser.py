"""Playlist reconstruction from song-request chat-log lines.

The archive returns one chat message per line, newest first::

    [2025-11-02 16:09:47] #quin69 sheepfarmer: 🔊 Artist - Song Title

Every line carrying the request marker announces the song that started
playing. The newest qualifying line is the current song; the older ones,
deduplicated by title, form the history.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.exceptions import ConfigurationError
from playlist.models import PlaylistSnapshot, SongEntry, SongInfo

if TYPE_CHECKING:
    from config.settings import Settings

MAX_HISTORY_SONGS = 50

REQUEST_MARKER = "🔊"
EXCLUDED_MARKERS = ("VIBE", "Clearing the spotify")
EXCLUDED_MARKERS_CASE_INSENSITIVE = ("offline",)

UNKNOWN_ARTIST = "Unknown Artist"
ARTIST_TITLE_SEPARATOR = " - "

TIMESTAMP_PATTERN = re.compile(r"\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]")


@dataclass(frozen=True)
class PlaylistFilters:
    """Substring heuristics deciding which archive lines are song requests."""

    request_marker: str = REQUEST_MARKER
    excluded_markers: tuple[str, ...] = EXCLUDED_MARKERS
    excluded_markers_case_insensitive: tuple[str, ...] = EXCLUDED_MARKERS_CASE_INSENSITIVE

    def __post_init__(self) -> None:
        if not self.request_marker:
            raise ConfigurationError("Request marker must not be empty")
        # Lowercased once so matching a line needs a single lower() call
        object.__setattr__(
            self,
            "excluded_markers_case_insensitive",
            tuple(m.lower() for m in self.excluded_markers_case_insensitive),
        )

    @property
    def title_offset(self) -> int:
        """Characters to skip past the start of the marker to reach the title."""
        return len(self.request_marker)

    def is_request(self, line: str) -> bool:
        if self.request_marker not in line:
            return False
        if any(marker in line for marker in self.excluded_markers):
            return False
        lowered = line.lower()
        return not any(marker in lowered for marker in self.excluded_markers_case_insensitive)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PlaylistFilters":
        return cls(
            request_marker=settings.request_marker,
            excluded_markers=tuple(settings.excluded_markers),
            excluded_markers_case_insensitive=tuple(settings.excluded_markers_case_insensitive),
        )


DEFAULT_FILTERS = PlaylistFilters()


def split_log_lines(text: str) -> list[str]:
    """Split raw archive text into lines, dropping blank ones.

    Non-blank lines are returned untouched, in archive order.
    """
    return [line for line in text.split("\n") if line.strip()]


def extract_timestamp(line: str) -> str:
    """Return the bracketed ``YYYY-MM-DD HH:MM:SS`` timestamp of a line, or ""."""
    match = TIMESTAMP_PATTERN.search(line)
    return match.group(1) if match else ""


def extract_song(line: str, filters: PlaylistFilters = DEFAULT_FILTERS) -> SongEntry:
    """Build a SongEntry from a line known to contain the request marker."""
    start = line.index(filters.request_marker) + filters.title_offset
    return SongEntry(title=line[start:].strip(), timestamp=extract_timestamp(line))


def parse_playlist(
    lines: Sequence[str],
    stream_is_live: bool,
    *,
    filters: PlaylistFilters | None = None,
    max_history: int = MAX_HISTORY_SONGS,
) -> PlaylistSnapshot:
    """Reconstruct the current song and history from newest-first log lines.

    Args:
        lines: Non-blank archive lines, newest first. Order is trusted as-is.
        stream_is_live: Result of the external liveness check
        filters: Line qualification heuristics (defaults to the stock markers)
        max_history: Cap on history length, applied after deduplication

    Returns:
        PlaylistSnapshot: current title (None when no line qualifies), the
        history deduplicated by exact title with first occurrence kept, and
        ``is_offline`` derived only from ``stream_is_live``.
    """
    filters = filters or DEFAULT_FILTERS
    is_offline = not stream_is_live

    songs = [extract_song(line, filters) for line in lines if filters.is_request(line)]
    if not songs:
        return PlaylistSnapshot(current_title=None, history=[], is_offline=is_offline)

    current_title = songs[0].title
    return PlaylistSnapshot(
        current_title=current_title,
        history=_dedupe_history(songs[1:], exclude=current_title)[: max(max_history, 0)],
        is_offline=is_offline,
    )


def _dedupe_history(songs: Iterable[SongEntry], exclude: str) -> list[SongEntry]:
    seen = {exclude}
    history = []
    for song in songs:
        if song.title in seen:
            continue
        history.append(song)
        seen.add(song.title)
    return history


def parse_song_info(song: str) -> SongInfo:
    """Split an ``Artist - Title`` display string.

    Only the first separator splits; the rest stays in the title. Strings
    without a separator get ``Unknown Artist``.
    """
    parts = song.split(ARTIST_TITLE_SEPARATOR)
    if len(parts) > 1:
        return SongInfo(
            artist=parts[0].strip(),
            title=ARTIST_TITLE_SEPARATOR.join(parts[1:]).strip(),
        )
    return SongInfo(artist=UNKNOWN_ARTIST, title=song.strip())
