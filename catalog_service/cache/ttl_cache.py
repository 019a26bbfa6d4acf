"""
In-memory TTL cache for upstream catalog responses.

Entries expire individually, are swept lazily on access and eagerly by
``cleanup``. When the cache is full, inserting a new key evicts the entry
with the oldest creation time. An optional durable backend receives a full
snapshot of the store after every mutation.
"""

import logging
import pickle
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from cachetools import FIFOCache  # type: ignore[import-untyped]

from catalog_service import metrics
from catalog_service.cache.backends import CacheBackend

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Cached value with its creation and expiry timestamps (epoch seconds)."""

    value: V
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class _EntryStore(FIFOCache):
    """
    FIFO store that reports evictions.

    Re-inserting a key moves it to the back, so iteration order is
    creation order and ``popitem`` drops the oldest entry.
    """

    def __init__(self, maxsize: int, on_evict: Callable[[Any, CacheEntry], None]):
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self):
        key, entry = super().popitem()
        self._on_evict(key, entry)
        return key, entry


class TTLCache(Generic[K, V]):
    """
    Expiring key/value store with bounded size.

    Attributes:
        name: Cache name used for metrics, logs and the durable key
        default_ttl: TTL in seconds applied when ``put`` gets none
        max_size: Maximum number of entries
        hits: Number of cache hits
        misses: Number of cache misses
        evictions: Number of entries evicted due to size limit
    """

    def __init__(
        self,
        name: str = "default",
        default_ttl: float = 300,
        max_size: int = 100,
        backend: Optional[CacheBackend] = None,
        namespace: str = "catalog-cache",
        timer: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            name: Cache name
            default_ttl: Default time-to-live in seconds
            max_size: Maximum number of entries before eviction
            backend: Durable backend; None keeps the cache purely in memory
            namespace: Prefix of the durable storage key
            timer: Clock returning epoch seconds
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")

        self.name = name
        self.default_ttl = default_ttl
        self.max_size = max_size
        self.backend = backend
        self.storage_key = f"{namespace}:{name}"
        self._timer = timer
        self._lock = threading.RLock()
        self._store = _EntryStore(maxsize=max_size, on_evict=self._record_eviction)

        self.hits = 0
        self.misses = 0
        self.evictions = 0

        if self.backend is not None:
            self._load()

        logger.info(
            f"Initialized TTLCache '{name}' with max_size={max_size}, "
            f"default_ttl={default_ttl}s, durable={backend is not None}"
        )

    def put(self, key: K, value: V, ttl: Optional[float] = None) -> None:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (defaults to ``default_ttl``)
        """
        now = self._timer()
        entry = CacheEntry(value=value, created_at=now, expires_at=now + (ttl or self.default_ttl))

        with self._lock:
            self._store[key] = entry
            self._persist()

        metrics.update_cache_size(self.name, len(self._store))
        logger.debug(f"Cached: {key} (TTL: {ttl or self.default_ttl}s)")

    def get(self, key: K) -> Optional[V]:
        """
        Get a value.

        Args:
            key: Cache key

        Returns:
            The cached value, or None if missing or expired
        """
        with self._lock:
            entry = self._live_entry(key)

        if entry is None:
            self.misses += 1
            metrics.track_cache_miss(self.name)
            logger.debug(f"Cache MISS: {key}")
            return None

        self.hits += 1
        metrics.track_cache_hit(self.name)
        logger.debug(f"Cache HIT: {key}")
        return entry.value

    def has(self, key: K) -> bool:
        """Return True if the key holds an unexpired entry."""
        with self._lock:
            return self._live_entry(key) is not None

    def delete(self, key: K) -> bool:
        """
        Delete an entry.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._store.pop(key, None) is not None
            self._persist()

        if removed:
            logger.debug(f"Deleted from cache: {key}")
        return removed

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._persist()

        metrics.update_cache_size(self.name, 0)
        logger.info(f"Cleared {count} items from cache '{self.name}'")

    def cleanup(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._timer()
        with self._lock:
            expired = [key for key, entry in self._store.items() if entry.is_expired(now)]
            for key in expired:
                del self._store[key]
            if expired:
                self._persist()
            size = len(self._store)

        metrics.update_cache_size(self.name, size)
        if expired:
            logger.debug(f"Swept {len(expired)} expired entries from '{self.name}'")
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with total/valid/expired counts and configuration
        """
        now = self._timer()
        with self._lock:
            entries = list(self._store.values())

        expired = sum(1 for entry in entries if entry.is_expired(now))
        return {
            "total": len(entries),
            "valid": len(entries) - expired,
            "expired": expired,
            "max_size": self.max_size,
            "ttl": self.default_ttl,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    def _live_entry(self, key: K) -> Optional[CacheEntry]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._timer()):
            del self._store[key]
            self._persist()
            logger.debug(f"Cache entry expired: {key}")
            return None
        return entry

    def _record_eviction(self, key: Any, entry: CacheEntry) -> None:
        self.evictions += 1
        metrics.track_cache_eviction(self.name)
        logger.debug(f"Evicted oldest entry from '{self.name}': {key}")

    def _snapshot(self) -> List[Tuple[Any, Dict[str, Any]]]:
        return [
            (
                key,
                {
                    "value": entry.value,
                    "created_at": entry.created_at,
                    "expires_at": entry.expires_at,
                },
            )
            for key, entry in self._store.items()
        ]

    def _persist(self) -> None:
        if self.backend is None:
            return

        try:
            self.backend.save(self.storage_key, pickle.dumps(self._snapshot()))
        except Exception as e:
            logger.warning(f"Failed to save cache '{self.name}' to durable storage: {e}")

    def _load(self) -> None:
        try:
            payload = self.backend.load(self.storage_key)  # type: ignore[union-attr]
            if not payload:
                return
            snapshot = pickle.loads(payload)
        except Exception as e:
            logger.warning(f"Failed to load cache '{self.name}' from durable storage: {e}")
            return

        with self._lock:
            for key, raw in sorted(snapshot, key=lambda item: item[1]["created_at"]):
                self._store[key] = CacheEntry(
                    value=raw["value"],
                    created_at=raw["created_at"],
                    expires_at=raw["expires_at"],
                )

        removed = self.cleanup()
        logger.info(
            f"Restored {len(self._store)} entries into '{self.name}' "
            f"({removed} expired on load)"
        )
