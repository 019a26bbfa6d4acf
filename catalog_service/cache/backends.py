"""
Durable backends for the TTL cache.

A backend stores one opaque snapshot per cache under a namespaced key. The
cache is a derived optimization, so a lost or stale snapshot is harmless.
"""

import logging
from typing import Optional, Protocol

import redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Storage for serialized cache snapshots."""

    def load(self, key: str) -> Optional[bytes]:
        """Return the snapshot stored under key, or None."""
        ...

    def save(self, key: str, payload: bytes) -> None:
        """Replace the snapshot stored under key."""
        ...


class RedisCacheBackend:
    """
    Redis-backed snapshot storage.

    Uses the synchronous client so that the snapshot write completes right
    after the in-memory mutation that triggered it.
    """

    def __init__(self, client: "redis.Redis", snapshot_ttl: Optional[int] = None):
        """
        Initialize Redis backend.

        Args:
            client: Connected Redis client
            snapshot_ttl: Optional expiry (seconds) of the stored snapshot
        """
        self.client = client
        self.snapshot_ttl = snapshot_ttl

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        socket_timeout: int = 5,
        socket_connect_timeout: int = 5,
        snapshot_ttl: Optional[int] = None,
    ) -> "RedisCacheBackend":
        """Create a backend from a Redis connection URL."""
        client = redis.Redis.from_url(
            redis_url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
            decode_responses=False,
        )
        logger.info(f"Redis cache backend configured: {redis_url.split('@')[-1]}")
        return cls(client, snapshot_ttl=snapshot_ttl)

    def load(self, key: str) -> Optional[bytes]:
        try:
            return self.client.get(key)
        except RedisError as e:
            logger.warning(f"Redis GET failed for {key}: {e}")
            return None

    def save(self, key: str, payload: bytes) -> None:
        if self.snapshot_ttl:
            self.client.set(key, payload, ex=self.snapshot_ttl)
        else:
            self.client.set(key, payload)

    def ping(self) -> bool:
        """Return True if Redis answers."""
        try:
            return bool(self.client.ping())
        except RedisError:
            return False
