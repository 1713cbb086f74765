"""Pydantic models for artwork lookups."""

from pydantic import BaseModel


class ArtworkAttempt(BaseModel):
    """One provider query made while looking for artwork."""

    provider: str
    query: str
    status: int | None = None
    found: bool = False


class ArtworkResult(BaseModel):
    """Artwork found for a song."""

    artwork_url: str
    source: str
    artist: str
    track: str
    attempts: list[ArtworkAttempt] = []
    cached: bool = False


class ArtworkResponse(BaseModel):
    """Response from the GET /artwork endpoint."""

    artwork_url: str
    source: str
    attempts: list[ArtworkAttempt] = []
    cached: bool = False
    lookup_stats: dict | None = None
