"""Integration test fixtures.

Wires the real archive, stream status and artwork clients to an in-process
fake of every upstream (chat-log archive, uptime service, iTunes) so the
whole poll -> parse -> API path runs without the network.
"""

import httpx
import pytest
import pytest_asyncio

from artwork.memory_cache import clear_artwork_cache
from artwork.ratelimit import reset_rate_limiting
from artwork.service import ArtworkService
from config.settings import Settings
from playlist.archive import ArchiveClient
from playlist.parser import PlaylistFilters
from playlist.tracker import PlaylistTracker
from stream.status import StreamStatusService
from tests.factories import SAMPLE_ARCHIVE_TEXT

ARCHIVE_URL = "https://logs.example.test/channel/quin69/user/sheepfarmer/?reverse"
UPTIME_URL = "https://uptime.example.test/twitch/uptime/quin69"
ITUNES_URL = "https://itunes.example.test/search"


class FakeUpstreams:
    """MockTransport handler serving archive text, uptime text and iTunes results."""

    def __init__(self):
        self.archive_text = SAMPLE_ARCHIVE_TEXT
        self.archive_status = 200
        self.uptime_text = "2 hours, 14 minutes"
        self.itunes_status = 200
        self.requests: list[httpx.Request] = []

    def requests_to(self, host):
        return [r for r in self.requests if r.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host == "logs.example.test":
            return httpx.Response(self.archive_status, text=self.archive_text)
        if host == "uptime.example.test":
            return httpx.Response(200, text=self.uptime_text)
        if host == "itunes.example.test":
            term = request.url.params["term"]
            slug = term.lower().replace(" ", "-")
            results = [{"artworkUrl100": f"https://is1.example.test/{slug}/100x100bb.jpg"}]
            return httpx.Response(self.itunes_status, json={"results": results})
        return httpx.Response(404)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_caches():
    yield
    clear_artwork_cache()
    reset_rate_limiting()


@pytest.fixture
def upstreams():
    return FakeUpstreams()


@pytest.fixture
def test_settings():
    """Settings pointed at the fake upstreams, telemetry and Spotify disabled."""
    return Settings(
        playlist_log_url=ARCHIVE_URL,
        stream_uptime_url=UPTIME_URL,
        itunes_search_url=ITUNES_URL,
        spotify_client_id=None,
        spotify_client_secret=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
        enable_tracker=False,
    )


def _transport_client(upstreams):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstreams))


@pytest_asyncio.fixture
async def clients(upstreams, test_settings):
    """Real upstream clients sharing the fake transport."""
    archive = ArchiveClient(test_settings.playlist_log_url)
    archive._client = _transport_client(upstreams)

    stream_status = StreamStatusService(test_settings.stream_uptime_url)
    stream_status._client = _transport_client(upstreams)

    artwork = ArtworkService(itunes_search_url=test_settings.itunes_search_url, enable_itunes=True)
    artwork._client = _transport_client(upstreams)

    yield archive, stream_status, artwork

    await archive.close()
    await stream_status.close()
    await artwork.close()


@pytest_asyncio.fixture
async def tracker(clients, test_settings):
    archive, stream_status, artwork = clients
    t = PlaylistTracker(
        archive,
        stream_status,
        artwork,
        filters=PlaylistFilters.from_settings(test_settings),
        max_history=test_settings.max_history_songs,
        interval=3600,
    )
    yield t
    await t.stop()


@pytest_asyncio.fixture
async def app_client(clients, tracker, test_settings):
    """httpx AsyncClient against the app with real clients on fake upstreams."""
    from httpx import ASGITransport, AsyncClient

    from config.settings import get_settings
    from core.dependencies import (
        get_archive_client,
        get_artwork_service,
        get_posthog_client,
        get_stream_status_service,
        get_tracker,
    )
    from main import app

    archive, stream_status, artwork = clients
    app.dependency_overrides[get_archive_client] = lambda: archive
    app.dependency_overrides[get_stream_status_service] = lambda: stream_status
    app.dependency_overrides[get_artwork_service] = lambda: artwork
    app.dependency_overrides[get_tracker] = lambda: tracker
    app.dependency_overrides[get_posthog_client] = lambda: None
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
