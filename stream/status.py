"""Stream liveness check against the uptime service."""

import logging

import httpx
from cachetools import TTLCache  # type: ignore[import-untyped]

from core.exceptions import StreamStatusError
from core.sentry import add_breadcrumb

logger = logging.getLogger(__name__)

OFFLINE_INDICATOR = "offline"
ERROR_INDICATOR = "error"


def is_live_response(text: str) -> bool:
    """Classify an uptime-service response body.

    The service answers with a human-readable uptime ("2 hours, 5 minutes")
    when live and a sentence containing "offline" when not. Errors come back
    as text too, so anything mentioning "error" or an empty body is not live.
    """
    lowered = text.lower()
    if OFFLINE_INDICATOR in lowered or ERROR_INDICATOR in lowered:
        return False
    return text.strip() != ""


class StreamStatusService:
    """Checks whether the stream is live, with a short-lived result cache."""

    def __init__(self, url: str, timeout: float = 10.0, cache_ttl: int = 30):
        self.url = url
        self.timeout = timeout
        self._cache: TTLCache = TTLCache(maxsize=1, ttl=cache_ttl)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_status_text(self) -> str:
        """Fetch the raw uptime text.

        Raises:
            StreamStatusError: On transport errors or non-2xx responses
        """
        client = await self._get_client()
        add_breadcrumb("stream", "fetch_status_text", {"url": self.url})

        try:
            response = await client.get(self.url)
        except httpx.RequestError as e:
            raise StreamStatusError(
                f"Uptime request failed: {e}", details={"url": self.url}
            ) from e

        if response.status_code >= 400:
            raise StreamStatusError(
                f"Uptime service returned HTTP {response.status_code}",
                details={"url": self.url, "status": response.status_code},
            )
        return response.text

    async def check(self, use_cache: bool = True) -> bool:
        """Return True when the stream is live.

        Args:
            use_cache: Answer from a recent check if one is cached. The first
                check after startup passes False to always hit the network.

        Returns:
            bool: Liveness. Any failure to verify counts as not live.
        """
        if use_cache and self.url in self._cache:
            return bool(self._cache[self.url])

        try:
            text = await self.fetch_status_text()
        except StreamStatusError as e:
            logger.error(f"Error checking stream status: {e.message}")
            self._cache.pop(self.url, None)
            return False

        live = is_live_response(text)
        self._cache[self.url] = live
        logger.debug(f"Stream status: {'live' if live else 'offline'}")
        return live

    async def check_available(self) -> bool:
        """Check uptime service connectivity."""
        try:
            await self.fetch_status_text()
            return True
        except StreamStatusError:
            return False
