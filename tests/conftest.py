"""Shared test fixtures for pytest."""

from unittest.mock import AsyncMock

import pytest

from artwork.service import ArtworkService
from playlist.archive import ArchiveClient
from stream.status import StreamStatusService
from tests.factories import make_log_line


@pytest.fixture
def mock_archive():
    """Create a mock archive client."""
    archive = AsyncMock(spec=ArchiveClient)
    archive.fetch_lines = AsyncMock(return_value=[])
    archive.check_available = AsyncMock(return_value=True)
    return archive


@pytest.fixture
def mock_stream_status():
    """Create a mock stream status service."""
    service = AsyncMock(spec=StreamStatusService)
    service.check = AsyncMock(return_value=True)
    service.check_available = AsyncMock(return_value=True)
    return service


@pytest.fixture
def mock_artwork_service():
    """Create a mock artwork service."""
    service = AsyncMock(spec=ArtworkService)
    service.find_artwork = AsyncMock(return_value=None)
    service.find_artwork_for_title = AsyncMock(return_value=None)
    service.check_spotify = AsyncMock(return_value=True)
    service.spotify_configured = False
    return service


@pytest.fixture
def sample_lines():
    """Newest-first archive lines with a duplicate of the current song."""
    return [
        make_log_line("A - X", "2025-01-01 10:00:00"),
        make_log_line("B - Y", "2025-01-01 09:59:00"),
        make_log_line("A - X", "2025-01-01 09:58:00"),
    ]
