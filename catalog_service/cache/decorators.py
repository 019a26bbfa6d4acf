"""
Helpers for caching coroutine results in a TTLCache.
"""

import functools
import json
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from catalog_service.cache.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


def make_cache_key(*parts: Any) -> str:
    """
    Build a cache key from its parts.

    Examples:
        >>> make_cache_key("categories", "L1")
        'categories_L1'
    """
    return "_".join(str(part) for part in parts)


def cached(
    cache: TTLCache,
    key_builder: Optional[Callable[..., str]] = None,
    ttl: Optional[float] = None,
    key: Optional[str] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Cache the results of an async function.

    Exceptions are propagated and never cached.

    Args:
        cache: Cache receiving the results
        key_builder: Builds the key suffix from the call arguments (JSON of
            args by default); the function name is the prefix
        ttl: TTL for stored results (cache default if None)
        key: Fixed key used verbatim for every call, for argument-less loaders
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            if key is not None:
                cache_key = key
            else:
                if key_builder is not None:
                    suffix = key_builder(*args, **kwargs)
                else:
                    suffix = json.dumps([args, kwargs], default=str, sort_keys=True)
                cache_key = make_cache_key(func.__name__, suffix)

            hit = cache.get(cache_key)
            if hit is not None:
                logger.debug(f"Cache hit: {cache_key}")
                return hit

            logger.debug(f"Cache miss: {cache_key}")
            result = await func(*args, **kwargs)
            cache.put(cache_key, result, ttl)
            return result

        return wrapper

    return decorator
