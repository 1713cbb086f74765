"""Caching utilities for artwork lookups using a TTL-based LRU cache."""

import hashlib
import json
import logging
from collections.abc import Callable
from contextvars import ContextVar
from functools import wraps
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]
from pydantic import BaseModel

from core.telemetry import record_memory_cache_hit

logger = logging.getLogger(__name__)

_artwork_cache: TTLCache | None = None

T = TypeVar("T")

# Per-request flag to bypass the artwork cache.
_skip_cache_var: ContextVar[bool] = ContextVar("skip_cache", default=False)


def set_skip_cache(skip: bool) -> None:
    """Set the per-request skip_cache flag."""
    _skip_cache_var.set(skip)


def should_skip_cache() -> bool:
    """Check whether the cache should be bypassed for the current request."""
    return _skip_cache_var.get(False)


def make_cache_key(func_name: str, *args, **kwargs) -> str:
    """Generate a deterministic cache key from function name and arguments.

    Args:
        func_name: Name of the function being cached
        *args: Positional arguments to the function
        **kwargs: Keyword arguments to the function

    Returns:
        MD5 hash of the serialized arguments
    """
    key_data = {
        "fn": func_name,
        "args": list(args),
        "kwargs": dict(sorted(kwargs.items())),
    }
    key_string = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.md5(key_string.encode()).hexdigest()


def get_artwork_cache() -> TTLCache:
    """Get or create the artwork cache using settings."""
    global _artwork_cache
    if _artwork_cache is None:
        from config.settings import get_settings

        settings = get_settings()
        _artwork_cache = TTLCache(
            maxsize=settings.artwork_cache_maxsize,
            ttl=settings.artwork_cache_ttl,
        )
    return _artwork_cache


def clear_artwork_cache() -> None:
    """Clear the artwork cache and drop it so it is recreated with fresh settings."""
    global _artwork_cache
    if _artwork_cache is not None:
        _artwork_cache.clear()
    _artwork_cache = None


def _mark_cached(result: Any) -> Any:
    if isinstance(result, BaseModel) and hasattr(result, "cached"):
        return result.model_copy(update={"cached": True})
    return result


def async_cached(
    cache_getter: Callable[[], TTLCache] = get_artwork_cache,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for caching async method results.

    The cache is resolved through ``cache_getter`` on every call so that
    clearing it (or changing settings in tests) takes effect immediately.
    Results with a ``cached`` field are returned with it set on hits. None
    results are not cached, so misses are retried on the next call.

    Args:
        cache_getter: Callable returning the TTLCache to use

    Returns:
        Decorator function
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            if should_skip_cache():
                return await func(*args, **kwargs)  # type: ignore[misc, no-any-return]

            # Skip 'self' (first arg of instance methods)
            cache_args = args
            if args and hasattr(args[0], func.__name__):
                cache_args = args[1:]

            cache = cache_getter()
            key = make_cache_key(func.__name__, *cache_args, **kwargs)

            if key in cache:
                logger.debug(f"Cache hit for {func.__name__}")
                record_memory_cache_hit()
                return _mark_cached(cache[key])  # type: ignore[no-any-return]

            logger.debug(f"Cache miss for {func.__name__}")
            result = await func(*args, **kwargs)  # type: ignore[misc]

            if result is not None:
                cache[key] = result

            return result  # type: ignore[no-any-return]

        return wrapper  # type: ignore[return-value]

    return decorator
