"""Unit test fixtures."""

from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from artwork.memory_cache import clear_artwork_cache, set_skip_cache
from artwork.ratelimit import reset_rate_limiting
from config.settings import Settings


@contextmanager
def override_deps(app, overrides):
    """Set FastAPI dependency overrides and clear them on exit.

    Args:
        app: The FastAPI application.
        overrides: A dict mapping dependency functions to their replacement values.
    """

    def _make_override(val):
        return lambda: val

    for dep_fn, provider in overrides.items():
        app.dependency_overrides[dep_fn] = _make_override(provider)
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with safe test defaults (no real credentials/DSNs)."""
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "")
    monkeypatch.setenv("SENTRY_DSN", "")
    monkeypatch.setenv("POSTHOG_API_KEY", "")
    monkeypatch.setenv("ENABLE_TELEMETRY", "false")
    return Settings(
        spotify_client_id=None,
        spotify_client_secret=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
        enable_tracker=False,
    )


@pytest.fixture
def mock_posthog_client():
    """Mock PostHog client."""
    client = Mock()
    client.capture = Mock()
    client.flush = Mock()
    client.shutdown = Mock()
    return client


@pytest.fixture(autouse=True)
def reset_caches():
    """Clear the artwork cache, rate limiting state, and ContextVars between tests."""
    from core.telemetry import _lookup_stats_var

    lookup_stats_token = _lookup_stats_var.set(None)
    set_skip_cache(False)
    yield
    clear_artwork_cache()
    reset_rate_limiting()
    _lookup_stats_var.reset(lookup_stats_token)
