"""Sentry error tracking for the tracker and its upstream calls.

Poll failures are captured with the step that failed; every upstream request
(archive, uptime, Spotify, iTunes) leaves a breadcrumb so an error report
shows what the tracker was talking to just before it broke.
"""

import logging
from typing import Any
from urllib.parse import urlparse

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

logger = logging.getLogger(__name__)

# Polls run on a fixed interval; sampling every one would swamp the quota
TRACES_SAMPLE_RATE = 0.1


def init_sentry(
    dsn: str | None,
    environment: str = "production",
    release: str | None = None,
    upstream_urls: dict[str, str] | None = None,
) -> None:
    """Initialize Sentry SDK with FastAPI integration.

    Args:
        dsn: Sentry DSN. If None or empty, Sentry is not initialized.
        environment: Deployment environment ("production", "development")
        release: Optional release version string
        upstream_urls: Upstream name -> URL; each host is attached as an
            ``upstream.<name>`` tag so reports can be filtered by source
    """
    if not dsn:
        logger.info("Sentry DSN not configured, skipping initialization")
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[FastApiIntegration()],
        traces_sample_rate=TRACES_SAMPLE_RATE,
    )

    for name, url in (upstream_urls or {}).items():
        sentry_sdk.set_tag(f"upstream.{name}", urlparse(url).netloc or url)

    logger.info(f"Sentry initialized (environment: {environment})")


def add_breadcrumb(
    category: str,
    operation: str,
    data: dict[str, Any] | None = None,
    level: str = "info",
) -> None:
    """Add a breadcrumb for an upstream operation.

    Breadcrumbs are recorded events leading up to an error.

    Args:
        category: Upstream being called ("archive", "stream", "spotify", "itunes")
        operation: Name of the operation (e.g., "fetch_lines", "search_track")
        data: Optional dictionary of contextual data
        level: Severity level ("debug", "info", "warning", "error")
    """
    sentry_sdk.add_breadcrumb(
        category=category,
        message=operation,
        data=data or {},
        level=level,
    )


def capture_exception(
    error: BaseException,
    context: dict[str, Any] | None = None,
) -> None:
    """Capture an exception and send it to Sentry.

    Args:
        error: The exception to capture
        context: Optional dictionary of contextual data to attach
    """
    if context:
        sentry_sdk.set_context("playlist_tracker", context)

    sentry_sdk.capture_exception(error)
