"""Chat-log archive client."""

import logging

import httpx

from core.exceptions import ArchiveFetchError
from core.sentry import add_breadcrumb
from playlist.parser import split_log_lines

logger = logging.getLogger(__name__)

USER_AGENT = "PlaylistTrackerService/1.0"


class ArchiveClient:
    """Fetches the raw request log from the chat-log archive.

    The archive URL is expected to request reverse order, so the lines come
    back newest first and can be handed to the parser as-is.
    """

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_text(self) -> str:
        """Fetch the raw archive text, bypassing any HTTP caches.

        Raises:
            ArchiveFetchError: On transport errors or non-2xx responses
        """
        client = await self._get_client()
        add_breadcrumb("archive", "fetch_text", {"url": self.url})

        try:
            response = await client.get(self.url, headers={"Cache-Control": "no-cache"})
        except httpx.RequestError as e:
            raise ArchiveFetchError(
                f"Archive request failed: {e}", details={"url": self.url}
            ) from e

        if response.status_code >= 400:
            raise ArchiveFetchError(
                f"Archive returned HTTP {response.status_code}",
                details={"url": self.url, "status": response.status_code},
            )

        return response.text

    async def fetch_lines(self) -> list[str]:
        """Fetch the archive and return its non-blank lines, newest first."""
        lines = split_log_lines(await self.fetch_text())
        logger.debug(f"Fetched {len(lines)} archive lines")
        return lines

    async def check_available(self) -> bool:
        """Check archive connectivity."""
        try:
            client = await self._get_client()
            resp = await client.get(self.url, headers={"Cache-Control": "no-cache"})
            return resp.status_code < 400
        except httpx.HTTPError:
            return False
