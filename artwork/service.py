"""Album artwork lookup via Spotify with an iTunes fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from artwork.memory_cache import async_cached
from artwork.models import ArtworkAttempt, ArtworkResult
from artwork.ratelimit import get_rate_limiter, get_semaphore
from core.exceptions import ArtworkLookupError
from core.sentry import add_breadcrumb
from core.telemetry import record_artwork_api_call
from playlist.parser import UNKNOWN_ARTIST, parse_song_info

logger = logging.getLogger(__name__)

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_SEARCH_URL = "https://api.spotify.com/v1/search"
ITUNES_SEARCH_URL = "https://itunes.apple.com/search"

ITUNES_THUMBNAIL_SIZE = "100x100bb"
ITUNES_ARTWORK_SIZE = "600x600bb"


@dataclass
class SpotifyToken:
    """Client-credentials access token with an explicit expiry (monotonic seconds)."""

    access_token: str
    expires_at: float

    def is_valid(self, now: float | None = None) -> bool:
        return (time.monotonic() if now is None else now) < self.expires_at


def spotify_queries(artist: str, track: str) -> list[str]:
    """Search queries tried in order, most specific first."""
    if not artist or artist == UNKNOWN_ARTIST:
        return [track]
    return [f"artist:{artist} track:{track}", f"{track} {artist}", track]


class ArtworkService:
    """Best-effort album artwork lookup.

    Spotify is queried first when credentials are configured; iTunes needs no
    credentials and is used as a fallback. Provider failures are logged and
    never raised to the caller: a lookup either finds artwork or returns None.
    """

    def __init__(
        self,
        spotify_client_id: str | None = None,
        spotify_client_secret: str | None = None,
        itunes_search_url: str = ITUNES_SEARCH_URL,
        enable_itunes: bool = True,
        timeout: float = 10.0,
        max_retries: int = 2,
        token_expiry_margin: int = 60,
    ):
        self.spotify_client_id = spotify_client_id
        self.spotify_client_secret = spotify_client_secret
        self.itunes_search_url = itunes_search_url
        self.enable_itunes = enable_itunes
        self.timeout = timeout
        self.max_retries = max_retries
        self.token_expiry_margin = token_expiry_margin
        self._token: SpotifyToken | None = None
        self._client: httpx.AsyncClient | None = None

    @property
    def spotify_configured(self) -> bool:
        return bool(self.spotify_client_id and self.spotify_client_secret)

    @property
    def has_providers(self) -> bool:
        return self.spotify_configured or self.enable_itunes

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": "PlaylistTrackerService/1.0"},
                timeout=self.timeout,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Spotify
    # ------------------------------------------------------------------

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Make a rate-limited Spotify request, retrying on 429.

        Returns:
            httpx.Response on success, None on exhausted retries or error
        """
        client = await self._get_client()

        async with get_semaphore():
            for attempt in range(self.max_retries + 1):
                await get_rate_limiter().acquire()
                start = time.perf_counter()

                try:
                    response = await client.request(method, url, **kwargs)
                except httpx.RequestError as e:
                    logger.error(f"Spotify request failed: {e}")
                    return None
                finally:
                    record_artwork_api_call((time.perf_counter() - start) * 1000)

                if response.status_code == 429:
                    if attempt < self.max_retries:
                        retry_after = response.headers.get("Retry-After", "")
                        # Honor Retry-After, else exponential backoff: 1s, 2s, 4s...
                        delay = int(retry_after) if retry_after.isdigit() else 2**attempt
                        logger.warning(
                            f"Spotify rate limit hit, retrying in {delay}s "
                            f"(attempt {attempt + 1}/{self.max_retries + 1})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    logger.error("Spotify rate limit hit, max retries exhausted")
                    return None

                return response

        return None

    async def get_spotify_token(self) -> str:
        """Return a valid access token, requesting a new one when expired.

        Raises:
            ArtworkLookupError: If credentials are missing or the token request fails
        """
        if not self.spotify_configured:
            raise ArtworkLookupError(
                "Spotify credentials not configured",
                details={
                    "has_client_id": bool(self.spotify_client_id),
                    "has_client_secret": bool(self.spotify_client_secret),
                },
            )

        if self._token is not None and self._token.is_valid():
            return self._token.access_token

        add_breadcrumb("spotify", "get_token")
        response = await self._request_with_retry(
            "POST",
            SPOTIFY_TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(self.spotify_client_id, self.spotify_client_secret),
        )
        if response is None or response.status_code != 200:
            status = response.status_code if response is not None else None
            raise ArtworkLookupError("Failed to get Spotify token", details={"status": status})

        try:
            data = response.json()
            self._token = SpotifyToken(
                access_token=str(data["access_token"]),
                expires_at=time.monotonic() + int(data["expires_in"]) - self.token_expiry_margin,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ArtworkLookupError(
                "Unreadable Spotify token response", details={"error": type(e).__name__}
            ) from e
        logger.debug("Obtained new Spotify access token")
        return self._token.access_token

    async def check_spotify(self) -> bool:
        """Check that Spotify credentials yield a token."""
        try:
            await self.get_spotify_token()
            return True
        except ArtworkLookupError:
            return False

    async def _search_spotify(
        self, artist: str, track: str, attempts: list[ArtworkAttempt]
    ) -> str | None:
        token = await self.get_spotify_token()

        for query in spotify_queries(artist, track):
            add_breadcrumb("spotify", "search_track", {"query": query})
            response = await self._request_with_retry(
                "GET",
                SPOTIFY_SEARCH_URL,
                params={"q": query, "type": "track", "limit": "1"},
                headers={"Authorization": f"Bearer {token}"},
            )
            attempt = ArtworkAttempt(
                provider="spotify",
                query=query,
                status=response.status_code if response is not None else None,
            )
            attempts.append(attempt)

            if response is None:
                continue
            if response.status_code == 401:
                # Token revoked or expired early; next lookup fetches a new one
                self._token = None
                continue
            if response.status_code != 200:
                continue

            items = (response.json().get("tracks") or {}).get("items") or []
            if items:
                images = (items[0].get("album") or {}).get("images") or []
                url = images[0].get("url") if images else None
                if url:
                    attempt.found = True
                    return str(url)

        return None

    # ------------------------------------------------------------------
    # iTunes
    # ------------------------------------------------------------------

    async def _search_itunes(
        self, artist: str, track: str, attempts: list[ArtworkAttempt]
    ) -> str | None:
        term = track if not artist or artist == UNKNOWN_ARTIST else f"{artist} {track}"
        client = await self._get_client()
        add_breadcrumb("itunes", "search_track", {"term": term})

        start = time.perf_counter()
        try:
            response = await client.get(
                self.itunes_search_url,
                params={"term": term, "media": "music", "entity": "song", "limit": 1},
            )
        except httpx.RequestError as e:
            attempts.append(ArtworkAttempt(provider="itunes", query=term))
            raise ArtworkLookupError(f"iTunes request failed: {e}") from e
        finally:
            record_artwork_api_call((time.perf_counter() - start) * 1000)

        attempt = ArtworkAttempt(provider="itunes", query=term, status=response.status_code)
        attempts.append(attempt)
        if response.status_code != 200:
            return None

        results = response.json().get("results") or []
        url = results[0].get("artworkUrl100") if results else None
        if not url:
            return None

        attempt.found = True
        return str(url).replace(ITUNES_THUMBNAIL_SIZE, ITUNES_ARTWORK_SIZE)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @async_cached()
    async def find_artwork(self, artist: str, track: str) -> ArtworkResult | None:
        """Find artwork for a song, trying each configured provider in turn.

        Args:
            artist: Artist name (UNKNOWN_ARTIST or "" when not known)
            track: Track title

        Returns:
            ArtworkResult, or None if no provider has artwork
        """
        attempts: list[ArtworkAttempt] = []
        providers = []
        if self.spotify_configured:
            providers.append(("spotify", self._search_spotify))
        if self.enable_itunes:
            providers.append(("itunes", self._search_itunes))

        for name, search in providers:
            try:
                url = await search(artist, track, attempts)
            except ArtworkLookupError as e:
                logger.warning(f"{name} artwork lookup failed: {e.message}")
                continue
            except ValueError as e:
                # Malformed JSON from the provider
                logger.warning(f"{name} returned an unreadable response: {e}")
                continue

            if url:
                logger.info(f"Artwork found via {name} for '{artist} - {track}'")
                return ArtworkResult(
                    artwork_url=url,
                    source=name,
                    artist=artist,
                    track=track,
                    attempts=attempts,
                )

        logger.info(f"No artwork found for '{artist} - {track}'")
        return None

    async def find_artwork_for_title(self, title: str) -> ArtworkResult | None:
        """Find artwork for an ``Artist - Title`` display string."""
        if not title or not title.strip():
            return None
        song = parse_song_info(title)
        return await self.find_artwork(song.artist, song.title)
