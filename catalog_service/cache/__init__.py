"""Cache module initialization."""

from catalog_service.cache.backends import CacheBackend, RedisCacheBackend
from catalog_service.cache.decorators import cached, make_cache_key
from catalog_service.cache.janitor import CacheJanitor
from catalog_service.cache.ttl_cache import CacheEntry, TTLCache

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheJanitor",
    "RedisCacheBackend",
    "TTLCache",
    "cached",
    "make_cache_key",
]
