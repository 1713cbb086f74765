"""Rate limiting for Spotify API requests.

Implements:
- Semaphore for concurrent request limiting
- Token bucket rate limiter for requests per minute
- Reset function for testing
"""

import asyncio
import logging

from aiolimiter import AsyncLimiter

from config.settings import get_settings

logger = logging.getLogger(__name__)

# Primitives bind to the loop they are first used on, so keep one per loop
_rate_limiters: dict[asyncio.AbstractEventLoop, AsyncLimiter] = {}
_semaphores: dict[asyncio.AbstractEventLoop, asyncio.Semaphore] = {}


def get_rate_limiter() -> AsyncLimiter:
    """Get or create the Spotify rate limiter for the current event loop."""
    loop = asyncio.get_running_loop()
    if loop not in _rate_limiters:
        rate = get_settings().spotify_rate_limit
        _rate_limiters[loop] = AsyncLimiter(rate, 60)
        logger.debug(f"Created Spotify rate limiter: {rate} req/min")
    return _rate_limiters[loop]


def get_semaphore() -> asyncio.Semaphore:
    """Get or create the Spotify concurrency semaphore for the current event loop."""
    loop = asyncio.get_running_loop()
    if loop not in _semaphores:
        limit = get_settings().spotify_max_concurrent
        _semaphores[loop] = asyncio.Semaphore(limit)
        logger.debug(f"Created Spotify semaphore: {limit} concurrent")
    return _semaphores[loop]


def reset_rate_limiting() -> None:
    """Reset rate limiting state for testing."""
    _rate_limiters.clear()
    _semaphores.clear()
