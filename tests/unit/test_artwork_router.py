"""Unit tests for artwork/router.py."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from artwork.memory_cache import should_skip_cache
from artwork.models import ArtworkAttempt
from core.dependencies import get_artwork_service, get_posthog_client
from tests.factories import make_artwork_result
from tests.unit.conftest import override_deps


async def _get(service, params):
    from main import app

    with override_deps(app, {get_artwork_service: service, get_posthog_client: None}):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.get("/api/v1/artwork", params=params)


class TestGetArtwork:
    @pytest.mark.asyncio
    async def test_found(self, mock_artwork_service):
        mock_artwork_service.find_artwork = AsyncMock(
            return_value=make_artwork_result(
                "https://i.scdn.co/image/abc",
                attempts=[ArtworkAttempt(provider="spotify", query="x", status=200, found=True)],
            )
        )

        resp = await _get(mock_artwork_service, {"artist": " Queen ", "track": "Bohemian Rhapsody"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["artwork_url"] == "https://i.scdn.co/image/abc"
        assert body["source"] == "spotify"
        assert body["cached"] is False
        assert body["attempts"][0]["found"] is True
        assert body["lookup_stats"] == {"memory_hits": 0, "api_calls": 0, "api_time_ms": 0.0}
        mock_artwork_service.find_artwork.assert_awaited_once_with("Queen", "Bohemian Rhapsody")

    @pytest.mark.asyncio
    async def test_display_string_query(self, mock_artwork_service):
        mock_artwork_service.find_artwork = AsyncMock(return_value=make_artwork_result())

        resp = await _get(mock_artwork_service, {"q": "Daft Punk - One More Time - Radio Edit"})

        assert resp.status_code == 200
        mock_artwork_service.find_artwork.assert_awaited_once_with(
            "Daft Punk", "One More Time - Radio Edit"
        )

    @pytest.mark.asyncio
    async def test_display_string_without_artist(self, mock_artwork_service):
        mock_artwork_service.find_artwork = AsyncMock(return_value=make_artwork_result())
        await _get(mock_artwork_service, {"q": "Sandstorm"})
        mock_artwork_service.find_artwork.assert_awaited_once_with("Unknown Artist", "Sandstorm")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [{}, {"artist": "Queen"}, {"track": "Song"}, {"q": "   "}],
        ids=["none", "artist-only", "track-only", "blank-q"],
    )
    async def test_missing_params_400(self, mock_artwork_service, params):
        resp = await _get(mock_artwork_service, params)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Artist and track parameters are required"
        mock_artwork_service.find_artwork.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_found_404(self, mock_artwork_service):
        mock_artwork_service.find_artwork = AsyncMock(return_value=None)
        resp = await _get(mock_artwork_service, {"artist": "A", "track": "B"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "No artwork found"

    @pytest.mark.asyncio
    async def test_unexpected_error_500(self, mock_artwork_service):
        mock_artwork_service.find_artwork = AsyncMock(side_effect=RuntimeError("boom"))
        resp = await _get(mock_artwork_service, {"artist": "A", "track": "B"})
        assert resp.status_code == 500

    @pytest.mark.asyncio
    async def test_not_configured_503(self):
        resp = await _get(None, {"artist": "A", "track": "B"})
        assert resp.status_code == 503

    @pytest.mark.asyncio
    async def test_skip_cache_flag_set_for_lookup(self, mock_artwork_service):
        seen = []

        async def find(artist, track):
            seen.append(should_skip_cache())
            return make_artwork_result()

        mock_artwork_service.find_artwork = AsyncMock(side_effect=find)
        await _get(mock_artwork_service, {"artist": "A", "track": "B", "skip_cache": "true"})
        await _get(mock_artwork_service, {"artist": "A", "track": "B"})

        assert seen == [True, False]
