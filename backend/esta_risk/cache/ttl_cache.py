"""Time-To-Live (TTL) cache for per-tenant risk scores."""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, Optional
import threading

from esta_risk.cache.cache_key import tenant_from_cache_key
from esta_risk.utils import utcnow


class TTLCache:
    """
    In-memory cache with configurable time-to-live (TTL) expiry.

    Thread-safe cache that stores values with timestamps and invalidates
    entries after TTL seconds. When full, expired entries are evicted first,
    then the oldest ones.

    Single get/set calls are atomic. Compound read-compute-write sequences
    on one key should run under `key_lock(key)` so two writers for the same
    tenant cannot interleave.

    Attributes:
        ttl_seconds: Time-to-live duration in seconds (default: 3600 = 1 hour)
        max_size: Maximum number of entries held (default: 1000)

    Example:
        >>> cache = TTLCache(ttl_seconds=3600)
        >>> cache.set("tenant:acme:score:1.0.0", score)
        >>> cache.get("tenant:acme:score:1.0.0") is score
        True
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        max_size: int = 1000,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize TTL cache.

        Args:
            ttl_seconds: Time-to-live in seconds
            max_size: Entry limit before eviction kicks in
            clock: Time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._cache: Dict[str, tuple] = {}  # {key: (value, timestamp)}, insertion ordered
        self._lock = threading.Lock()
        # {key: [lock, holders_and_waiters]}, dropped once nobody uses the lock
        self._key_locks: Dict[str, list] = {}

    def _is_expired(self, timestamp: datetime, now: datetime) -> bool:
        return (now - timestamp).total_seconds() > self.ttl_seconds

    def _evict_if_needed(self, now: datetime) -> None:
        # Caller holds self._lock
        for key in [k for k, (_, ts) in self._cache.items() if self._is_expired(ts, now)]:
            del self._cache[key]

        while self._cache and len(self._cache) >= self.max_size:
            oldest_key = next(iter(self._cache))
            del self._cache[oldest_key]

    @contextmanager
    def key_lock(self, key: str) -> Iterator[None]:
        """
        Serialize a compound operation on one key.

        The lock exists only while some thread holds or waits for it, so
        per-key locks never outlive their callers.

        Example:
            >>> with cache.key_lock(key):
            ...     if cache.get(key) is None:
            ...         cache.set(key, compute())
        """
        with self._lock:
            entry = self._key_locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._key_locks[key]

    def set(self, key: str, value: Any) -> None:
        """
        Store a value in cache with current timestamp.

        Overwriting a key moves it to the newest position.
        """
        with self._lock:
            now = self._clock()
            self._cache.pop(key, None)
            self._evict_if_needed(now)
            self._cache[key] = (value, now)

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a value from cache if it exists and hasn't expired.

        Returns:
            Cached value if key exists and TTL not exceeded, None otherwise
        """
        with self._lock:
            if key not in self._cache:
                return None

            value, timestamp = self._cache[key]
            if self._is_expired(timestamp, self._clock()):
                del self._cache[key]
                return None

            return value

    def get_with_timestamp(self, key: str) -> Optional[tuple]:
        """Like get(), but returns (value, stored_at)."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if self._is_expired(entry[1], self._clock()):
                del self._cache[key]
                return None
            return entry

    def clear(self, key: str) -> None:
        """
        Manually invalidate a cache entry.

        Used when upstream data changes (e.g., new leave request recorded).
        """
        with self._lock:
            self._cache.pop(key, None)

    def clear_tenant(self, tenant_id: str) -> int:
        """
        Invalidate all cache entries for a tenant, across model versions.

        Returns:
            Number of entries removed
        """
        with self._lock:
            keys_to_delete = [k for k in self._cache if tenant_from_cache_key(k) == tenant_id]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    def clear_all(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with 'size', 'max_size' and 'ttl_seconds' keys
        """
        with self._lock:
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
            }

    def prune_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired_keys = [k for k, (_, ts) in self._cache.items() if self._is_expired(ts, now)]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)
