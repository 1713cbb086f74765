"""Unit tests for playlist/archive.py."""

import httpx
import pytest

from core.exceptions import ArchiveFetchError
from playlist.archive import ArchiveClient

ARCHIVE_URL = "https://logs.example.test/channel/quin69/user/sheepfarmer/?reverse"


def _client_with(handler):
    archive = ArchiveClient(ARCHIVE_URL)
    archive._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return archive


class TestArchiveClientInit:
    def test_init(self):
        archive = ArchiveClient(ARCHIVE_URL, timeout=5.0)
        assert archive.url == ARCHIVE_URL
        assert archive.timeout == 5.0
        assert archive._client is None

    @pytest.mark.asyncio
    async def test_get_client_creates_once(self):
        archive = ArchiveClient(ARCHIVE_URL)
        client = await archive._get_client()
        assert client is await archive._get_client()
        await archive.close()
        assert archive._client is None

    @pytest.mark.asyncio
    async def test_close_without_client(self):
        await ArchiveClient(ARCHIVE_URL).close()


class TestFetchLines:
    @pytest.mark.asyncio
    async def test_returns_non_blank_lines(self):
        archive = _client_with(lambda request: httpx.Response(200, text="one\n\n  \ntwo\n"))
        assert await archive.fetch_lines() == ["one", "two"]
        await archive.close()

    @pytest.mark.asyncio
    async def test_requests_uncached_archive_url(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="")

        archive = _client_with(handler)
        await archive.fetch_lines()
        await archive.close()

        assert str(seen[0].url) == ARCHIVE_URL
        assert seen[0].headers["Cache-Control"] == "no-cache"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        archive = _client_with(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(ArchiveFetchError) as exc_info:
            await archive.fetch_lines()
        assert exc_info.value.details["status"] == 502
        await archive.close()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        archive = _client_with(handler)
        with pytest.raises(ArchiveFetchError) as exc_info:
            await archive.fetch_lines()
        assert exc_info.value.details["url"] == ARCHIVE_URL
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        await archive.close()


class TestCheckAvailable:
    @pytest.mark.asyncio
    async def test_ok(self):
        archive = _client_with(lambda request: httpx.Response(200, text=""))
        assert await archive.check_available() is True

    @pytest.mark.asyncio
    async def test_server_error(self):
        archive = _client_with(lambda request: httpx.Response(500))
        assert await archive.check_available() is False

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        archive = _client_with(handler)
        assert await archive.check_available() is False
